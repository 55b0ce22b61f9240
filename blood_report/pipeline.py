"""Extraction pipeline: upload -> OCR -> parameter extraction -> history.

The pipeline is the only boundary the API and CLI talk to. It classifies
every failure into a :class:`PipelineError` subclass and always removes
the temporary copy of the upload, whatever the outcome.
"""

import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from blood_report.exceptions import (
    BadRequestError,
    InternalPipelineError,
    OCRError,
    OCRFailedError,
    PipelineError,
)
from blood_report.extraction.rule_extractor import RuleExtractor
from blood_report.ocr.tesseract_engine import TesseractEngine
from blood_report.storage.report_store import Report, ReportStore
from blood_report.utils.config import AppConfig
from blood_report.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class UploadedFile:
    """An uploaded image and the name it was uploaded under."""

    filename: str
    content: bytes


class ExtractionPipeline:
    """Runs one upload through OCR and extraction and records the result.

    Args:
        ocr_engine: Engine used to recognize the image text.
        extractor: Extractor applied to the recognized text.
        store: History that successful reports are appended to.
        temp_dir: Directory for temporary upload copies.
            Defaults to the system temp directory.
    """

    def __init__(
        self,
        ocr_engine: TesseractEngine,
        extractor: RuleExtractor,
        store: ReportStore,
        temp_dir: Path | None = None,
    ) -> None:
        self.ocr_engine = ocr_engine
        self.extractor = extractor
        self.store = store
        self.temp_dir = temp_dir

    @classmethod
    def from_config(
        cls, config: AppConfig, store: ReportStore | None = None
    ) -> "ExtractionPipeline":
        """Assemble a pipeline from the application config."""
        return cls(
            ocr_engine=TesseractEngine.from_config(config.ocr),
            extractor=RuleExtractor(),
            store=store or ReportStore.from_config(config.storage),
        )

    def run(self, upload: UploadedFile | None) -> Report:
        """Process an uploaded report image.

        Args:
            upload: The uploaded file, or ``None`` if the request had none.

        Returns:
            The stored report.

        Raises:
            BadRequestError: If no file was supplied.
            OCRFailedError: If OCR could not read the image.
            InternalPipelineError: For any other failure.
        """
        if upload is None:
            logger.warning("Extraction requested without a file")
            raise BadRequestError()

        logger.info("Processing upload: %s", upload.filename)
        try:
            with self._materialize(upload) as image_path:
                try:
                    text = self.ocr_engine.recognize(image_path)
                except OCRError as exc:
                    raise OCRFailedError() from exc

                report = Report(
                    file_name=upload.filename,
                    extracted_values=self.extractor.extract(text),
                    created_at=datetime.now(timezone.utc),
                )
                self.store.append(report)
        except PipelineError as exc:
            logger.error("Extraction failed for %s: %s", upload.filename, exc)
            raise
        except Exception as exc:
            logger.error("Unexpected error processing %s: %s", upload.filename, exc)
            raise InternalPipelineError() from exc

        logger.info("Extracted report for %s", upload.filename)
        return report

    @contextmanager
    def _materialize(self, upload: UploadedFile) -> Iterator[Path]:
        """Write the upload to a temporary file, removed on exit."""
        fd, name = tempfile.mkstemp(
            suffix=Path(upload.filename).suffix, dir=self.temp_dir
        )
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(upload.content)
            yield path
        finally:
            self._release(path)

    def _release(self, path: Path) -> None:
        path.unlink(missing_ok=True)
        logger.debug("Removed temporary file %s", path)
