"""Configuration management for the blood report parser.

Loads and validates YAML configuration with sensible defaults
for OCR, report history storage, and export settings.
"""

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3


class StorageConfig(BaseModel):
    """Configuration for the persisted report history."""

    backend: Literal["file", "memory"] = "file"
    history_dir: str = "data/history"
    slot_name: str = "pastReports"


class ExportConfig(BaseModel):
    """Configuration for CSV and PDF exports."""

    pdf_title: str = "Blood Report"
    csv_filename: str = "blood_report.csv"
    pdf_filename: str = "blood_report.pdf"


class ServerConfig(BaseModel):
    """Configuration for the API server."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
