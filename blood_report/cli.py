"""Command-line interface for parsing report images and managing history.

Provides subcommands to extract parameters from a local image, list or
clear the stored history, and export a stored report to CSV or PDF.
"""

import argparse
import json
import sys
from pathlib import Path

from blood_report.exceptions import PipelineError
from blood_report.export import export_report
from blood_report.pipeline import ExtractionPipeline, UploadedFile
from blood_report.storage.report_store import Report, ReportStore
from blood_report.utils.config import AppConfig, load_config
from blood_report.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_FORMATS = ("json", "csv", "pdf")


def extract_single(file_path: Path, pipeline: ExtractionPipeline) -> Report:
    """Run a local image file through the extraction pipeline.

    Args:
        file_path: Path to the report image.
        pipeline: Pipeline used for OCR, extraction and storage.

    Returns:
        The stored report.
    """
    upload = UploadedFile(filename=file_path.name, content=file_path.read_bytes())
    return pipeline.run(upload)


def _write_output(
    report: Report,
    fmt: str,
    output: Path | None,
    config: AppConfig,
) -> None:
    """Print a report as JSON or write it as a CSV/PDF export."""
    if fmt == "json":
        output_str = json.dumps(
            {"file_name": report.file_name, "extracted_values": report.extracted_values},
            indent=2,
        )
        if output:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(output_str)
            print(f"Output written to {output}")
        else:
            print(output_str)
        return

    if output is None:
        default_name = (
            config.export.pdf_filename if fmt == "pdf" else config.export.csv_filename
        )
        output = Path(default_name)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(export_report(report, fmt, title=config.export.pdf_title))
    print(f"Output written to {output}")


def _print_history(store: ReportStore) -> None:
    summaries = store.summarize()
    if not summaries:
        print("No past reports.")
        return

    print(f"{'=' * 50}")
    print("Past Reports")
    print(f"{'=' * 50}")
    for s in summaries:
        stamp = f"  ({s.created_at:%Y-%m-%d %H:%M})" if s.created_at else ""
        print(f"[{s.index}] {s.file_name}{stamp}")
        print(f"    Hemoglobin: {s.hemoglobin}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Blood Report Parser",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="Configuration YAML file"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    extract_parser = subparsers.add_parser(
        "extract", help="Extract parameters from a report image"
    )
    extract_parser.add_argument("file", type=Path, help="Report image to process")
    extract_parser.add_argument(
        "-f",
        "--format",
        choices=_FORMATS,
        default="json",
        dest="fmt",
        help="Output format (default: json)",
    )
    extract_parser.add_argument("-o", "--output", type=Path, help="Output file")

    subparsers.add_parser("history", help="List stored reports")
    subparsers.add_parser("clear", help="Clear stored reports")

    export_parser = subparsers.add_parser("export", help="Export a stored report")
    export_parser.add_argument("index", type=int, help="Report index (see history)")
    export_parser.add_argument(
        "-f",
        "--format",
        choices=("csv", "pdf"),
        default="csv",
        dest="fmt",
        help="Export format (default: csv)",
    )
    export_parser.add_argument("-o", "--output", type=Path, help="Output file")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging("DEBUG" if args.verbose else config.log_level)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    store = ReportStore.from_config(config.storage)
    store.load()

    if args.command == "extract":
        if not args.file.is_file():
            print(f"Error: {args.file} is not a file", file=sys.stderr)
            sys.exit(1)
        pipeline = ExtractionPipeline.from_config(config, store=store)
        logger.info("Processing %s", args.file)
        try:
            report = extract_single(args.file, pipeline)
        except PipelineError as exc:
            print(f"Error: {exc.user_message}", file=sys.stderr)
            sys.exit(1)
        _write_output(report, args.fmt, args.output, config)
    elif args.command == "history":
        _print_history(store)
    elif args.command == "clear":
        store.clear()
        print("Past reports cleared.")
    elif args.command == "export":
        try:
            report = store.get(args.index)
        except IndexError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        _write_output(report, args.fmt, args.output, config)


if __name__ == "__main__":
    main()
