"""Shared test fixtures for the blood report parser test suite."""

import io
from pathlib import Path

import pytest
from PIL import Image

from blood_report.storage.report_store import MemorySlot, Report, ReportStore

SAMPLE_VALUES = {
    "Hemoglobin": "13.5",
    "RBC": "4.8",
    "WBC": "6000",
    "PlateletCount": "250,000",
}


@pytest.fixture
def sample_png_bytes() -> bytes:
    """Create a minimal white PNG image as bytes."""
    img = Image.new("RGB", (200, 100), color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def sample_report() -> Report:
    """Create a fully populated report."""
    return Report(file_name="cbc.png", extracted_values=dict(SAMPLE_VALUES))


@pytest.fixture
def memory_store() -> ReportStore:
    """Create a report store backed by an in-memory slot."""
    return ReportStore(MemorySlot())


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
