class OCRError(Exception):
    """Raised when the OCR engine cannot produce text for an image."""


class PipelineError(Exception):
    """Base exception for failures surfaced by the extraction pipeline."""

    user_message = "File upload failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class BadRequestError(PipelineError):
    """Raised when a request does not supply a file."""

    user_message = "Please select a file"


class OCRFailedError(PipelineError):
    """Raised when OCR fails for the uploaded image."""

    user_message = "OCR Processing Failed"


class InternalPipelineError(PipelineError):
    """Raised for unexpected faults while processing an upload."""
