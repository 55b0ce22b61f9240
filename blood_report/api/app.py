"""FastAPI application for the Blood Report Parser API.

Provides REST endpoints for report extraction, history listing and
clearing, CSV/PDF export, and health checks.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from blood_report import __version__
from blood_report.exceptions import BadRequestError, OCRFailedError, PipelineError
from blood_report.export import CSV_MEDIA_TYPE, PDF_MEDIA_TYPE, export_report
from blood_report.pipeline import ExtractionPipeline, UploadedFile
from blood_report.storage.report_store import Report
from blood_report.utils.config import AppConfig, load_config
from blood_report.utils.logger import get_logger

from .schemas import (
    ExportFormat,
    HealthResponse,
    HistoryResponse,
    ParameterValue,
    ReportResponse,
    ReportSummaryResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Blood Report Parser API",
    description="Extract blood test parameters from report images",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def _get_config() -> AppConfig:
    return load_config()


@lru_cache(maxsize=1)
def _get_pipeline() -> ExtractionPipeline:
    """Build the shared pipeline and load the stored history once."""
    pipeline = ExtractionPipeline.from_config(_get_config())
    pipeline.store.load()
    return pipeline


def _to_response(report: Report) -> ReportResponse:
    return ReportResponse(
        file_name=report.file_name,
        extracted_values=report.extracted_values,
        parameters=[
            ParameterValue(parameter=name, value=value)
            for name, value in report.extracted_values.items()
        ],
        created_at=report.created_at,
    )


def _history_response(pipeline: ExtractionPipeline) -> HistoryResponse:
    store = pipeline.store
    return HistoryResponse(
        count=len(store.history),
        reports=[_to_response(r) for r in store.history],
        summaries=[
            ReportSummaryResponse(
                index=s.index,
                file_name=s.file_name,
                hemoglobin=s.hemoglobin,
                created_at=s.created_at,
            )
            for s in store.summarize()
        ],
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=_get_pipeline().ocr_engine.is_available(),
    )


@app.post("/extract", response_model=ReportResponse)
async def extract_report(
    file: Annotated[UploadFile | None, File()] = None,
) -> ReportResponse:
    """Extract blood test parameters from an uploaded report image.

    Args:
        file: Uploaded report image.

    Returns:
        The parsed report, also appended to the history.
    """
    pipeline = _get_pipeline()

    # Browsers send an empty, unnamed part when no file is chosen.
    upload = None
    if file is not None and file.filename:
        upload = UploadedFile(
            filename=file.filename,
            content=await file.read(),
        )

    try:
        report = await run_in_threadpool(pipeline.run, upload)
    except BadRequestError as exc:
        raise HTTPException(status_code=400, detail=exc.user_message) from exc
    except OCRFailedError as exc:
        raise HTTPException(status_code=422, detail=exc.user_message) from exc
    except PipelineError as exc:
        raise HTTPException(status_code=500, detail=exc.user_message) from exc

    return _to_response(report)


@app.get("/reports", response_model=HistoryResponse)
async def list_reports() -> HistoryResponse:
    """List the stored reports with their summaries."""
    return _history_response(_get_pipeline())


@app.delete("/reports", response_model=HistoryResponse)
async def clear_reports() -> HistoryResponse:
    """Erase the stored report history."""
    pipeline = _get_pipeline()
    pipeline.store.clear()
    return _history_response(pipeline)


@app.get("/reports/{index}/export")
async def export_stored_report(
    index: int,
    format: Annotated[ExportFormat, Query()] = ExportFormat.CSV,
) -> Response:
    """Download a stored report as CSV or PDF.

    Args:
        index: Position of the report in the history.
        format: Export format.

    Returns:
        The exported file as an attachment.
    """
    pipeline = _get_pipeline()
    try:
        report = pipeline.store.get(index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    export_config = _get_config().export
    content = export_report(report, format.value, title=export_config.pdf_title)
    if format == ExportFormat.PDF:
        media_type, filename = PDF_MEDIA_TYPE, export_config.pdf_filename
    else:
        media_type, filename = CSV_MEDIA_TYPE, export_config.csv_filename

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
