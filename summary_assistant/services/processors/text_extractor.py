import logging
from typing import Callable, Optional

from summary_assistant.services.errors import UnsupportedTypeError
from summary_assistant.services.processors.image_processor import OCRService
from summary_assistant.services.processors.pdf_processor import extract_pdf_text, ocr_pdf_pages

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_PREFIX = "image/"

PDF = "pdf"
IMAGE = "image"


def route_for(mime_type: str | None) -> str:
    """
    Pick the extraction path from the declared MIME type alone.

    Raises:
        UnsupportedTypeError: for anything that is neither a PDF nor an image
    """
    normalized = (mime_type or "").split(";")[0].strip().lower()
    if normalized == PDF_MIME_TYPE:
        return PDF
    if normalized.startswith(IMAGE_MIME_PREFIX):
        return IMAGE
    raise UnsupportedTypeError(mime_type)


class TextExtractor:
    """Format-dispatching text extraction: PDF text layer or OCR."""

    def __init__(self, ocr_service: OCRService, pdf_ocr_fallback: bool = False):
        self.ocr_service = ocr_service
        self.pdf_ocr_fallback = pdf_ocr_fallback

    @classmethod
    def from_config(cls, config) -> "TextExtractor":
        return cls(OCRService.from_config(config), pdf_ocr_fallback=config.pdf_ocr_fallback)

    def extract_pdf(self, data: bytes, on_progress: Optional[Callable[[int], None]] = None) -> str:
        text = extract_pdf_text(data)
        if not text and self.pdf_ocr_fallback:
            logger.info("PDF has no text layer, falling back to OCR")
            text = ocr_pdf_pages(data, self.ocr_service, on_progress)
        return text

    def extract_image(self, data: bytes, on_progress: Optional[Callable[[int], None]] = None) -> str:
        text, _ = self.ocr_service.extract_text(data, on_progress)
        return text.strip()

    def extract(self, data: bytes, mime_type: str,
                on_progress: Optional[Callable[[int], None]] = None) -> str:
        """
        Extract plain text from ``data``.

        Raises:
            UnsupportedTypeError: before touching the data, for non PDF/image types
            ExtractionError: when parsing or OCR fails
        """
        route = route_for(mime_type)
        logger.info(f"Extracting text ({route} path, {len(data)} bytes, type: {mime_type})")
        if route == PDF:
            return self.extract_pdf(data, on_progress)
        return self.extract_image(data, on_progress)
