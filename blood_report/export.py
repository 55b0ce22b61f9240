"""CSV and PDF export of parsed blood reports."""

import csv
import io

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import (
    Flowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from blood_report.storage.report_store import Report
from blood_report.utils.logger import get_logger

logger = get_logger(__name__)

HEADER = ("Parameter", "Value")

CSV_MEDIA_TYPE = "text/csv"
PDF_MEDIA_TYPE = "application/pdf"


def report_rows(report: Report) -> list[tuple[str, str]]:
    """Return the ``(parameter, value)`` pairs of a report in extraction order."""
    return list(report.extracted_values.items())


def to_csv(rows: list[tuple[str, str]]) -> bytes:
    """Render rows as CSV with a ``Parameter,Value`` header.

    Args:
        rows: Ordered ``(parameter, value)`` pairs.

    Returns:
        UTF-8 encoded CSV content.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(HEADER)
    writer.writerows(rows)
    return buf.getvalue().encode("utf-8")


def pdf_table_data(rows: list[tuple[str, str]]) -> list[list[str]]:
    """Return the PDF table cells: the header row followed by ``rows``."""
    return [list(HEADER), *[list(row) for row in rows]]


def pdf_story(
    rows: list[tuple[str, str]], title: str = "Blood Report"
) -> list[Flowable]:
    """Build the flowables of the PDF export: title, spacer and table."""
    styles = getSampleStyleSheet()

    table = Table(pdf_table_data(rows), hAlign="LEFT")
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2980b9")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
            ]
        )
    )

    return [Paragraph(title, styles["Title"]), Spacer(1, 12), table]


def to_pdf(rows: list[tuple[str, str]], title: str = "Blood Report") -> bytes:
    """Render rows as a one-page PDF table under ``title``.

    Args:
        rows: Ordered ``(parameter, value)`` pairs.
        title: Heading drawn above the table.

    Returns:
        PDF document bytes.
    """
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=A4, title=title)
    doc.build(pdf_story(rows, title=title))
    logger.debug("Rendered PDF export with %d rows", len(rows))
    return buf.getvalue()


def export_report(report: Report, fmt: str, title: str = "Blood Report") -> bytes:
    """Export a report as ``"csv"`` or ``"pdf"``.

    Raises:
        ValueError: If ``fmt`` is not a supported format.
    """
    rows = report_rows(report)
    if fmt == "csv":
        return to_csv(rows)
    if fmt == "pdf":
        return to_pdf(rows, title=title)
    raise ValueError(f"Unsupported export format: {fmt}")
