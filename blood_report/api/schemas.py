"""Pydantic request/response schemas for the FastAPI endpoints."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class ExportFormat(StrEnum):
    """Supported export formats."""

    CSV = "csv"
    PDF = "pdf"


class ParameterValue(BaseModel):
    """A single extracted parameter."""

    parameter: str
    value: str


class ReportResponse(BaseModel):
    """Response schema for one parsed report."""

    file_name: str
    extracted_values: dict[str, str]
    parameters: list[ParameterValue]
    created_at: datetime | None = None


class ReportSummaryResponse(BaseModel):
    """Response schema for one line of the past-reports listing."""

    index: int
    file_name: str
    hemoglobin: str
    created_at: datetime | None = None


class HistoryResponse(BaseModel):
    """Response schema for the stored report history."""

    count: int
    reports: list[ReportResponse]
    summaries: list[ReportSummaryResponse]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
