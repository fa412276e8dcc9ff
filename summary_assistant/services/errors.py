"""Error kinds raised by the document pipeline.

Every error carries a human-readable ``message`` that can be shown to the
end user as-is.
"""


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UploadError(PipelineError):
    """Storing the raw file in object storage failed."""


class UnsupportedTypeError(PipelineError):
    """The declared MIME type is neither a PDF nor an image."""

    def __init__(self, mime_type: str | None):
        super().__init__(f"Unsupported file type: {mime_type or 'unknown'}")
        self.mime_type = mime_type


class ExtractionError(PipelineError):
    """PDF parsing or OCR failed."""


class EmptyExtractionError(PipelineError):
    def __init__(self, message: str = "No text could be extracted from the document"):
        super().__init__(message)


class SummaryServiceError(PipelineError):
    """The generative-text service answered with an error (or not at all)."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PersistenceError(PipelineError):
    """A document store read or write failed."""


class IllegalTransitionError(PipelineError):
    def __init__(self, current, target):
        super().__init__(f"Illegal stage transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target
