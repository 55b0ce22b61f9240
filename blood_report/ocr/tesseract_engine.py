"""Tesseract OCR engine wrapper.

Turns an image (file path or raw bytes) into recognized text and
reports every engine or decoding failure as :class:`OCRError`.
"""

import io
import shutil
from pathlib import Path

import pytesseract
from PIL import Image

from blood_report.exceptions import OCRError
from blood_report.utils.config import OCRConfig
from blood_report.utils.logger import get_logger

logger = get_logger(__name__)


class TesseractEngine:
    """Wrapper around Tesseract OCR for blood report images.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        psm: Tesseract page segmentation mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.tesseract_cmd = tesseract_cmd or "tesseract"
        self.default_lang = default_lang
        self.psm = psm

    @classmethod
    def from_config(cls, config: OCRConfig) -> "TesseractEngine":
        """Build an engine from the ``ocr`` section of the app config."""
        return cls(
            tesseract_cmd=config.tesseract_cmd,
            default_lang=config.default_lang,
            psm=config.psm,
        )

    def is_available(self) -> bool:
        """Return whether the Tesseract executable can be found."""
        return shutil.which(self.tesseract_cmd) is not None

    def recognize(self, source: Path | str | bytes, lang: str | None = None) -> str:
        """Recognize the text in an image.

        The source is only read, never modified or deleted.

        Args:
            source: Path to an image file, or the raw image bytes.
            lang: OCR language code. Defaults to the engine default.

        Returns:
            The recognized text, possibly empty.

        Raises:
            OCRError: If the image cannot be decoded or Tesseract fails.
        """
        lang = lang or self.default_lang
        try:
            image = self._open_image(source)
            text = pytesseract.image_to_string(
                image, lang=lang, config=f"--psm {self.psm}"
            )
        except (
            pytesseract.TesseractError,
            Image.DecompressionBombError,
            OSError,
            ValueError,
        ) as exc:
            logger.error("OCR failed: %s", exc)
            raise OCRError(str(exc)) from exc

        if text is None:
            raise OCRError("OCR engine returned no result")

        logger.info("OCR recognized %d characters (lang=%s)", len(text), lang)
        return text

    @staticmethod
    def _open_image(source: Path | str | bytes) -> Image.Image:
        """Decode an image fully so no file handle outlives the call."""
        if isinstance(source, bytes):
            with Image.open(io.BytesIO(source)) as img:
                img.load()
                return img.copy()

        with Image.open(Path(source)) as img:
            img.load()
            return img.copy()
