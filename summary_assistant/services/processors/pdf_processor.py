import logging
import re
from typing import Callable, Optional

import fitz  # PyMuPDF
from pdf2image import convert_from_bytes
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFSyntaxError
)

from summary_assistant.services.errors import ExtractionError

logger = logging.getLogger(__name__)

# Literal string operand followed by the Tj show-text operator, e.g. "(Hello) Tj"
SHOW_TEXT_PATTERN = re.compile(rb"\(([^)]+)\)\s*Tj")
BYTE_SCAN_PLACEHOLDER = (
    "PDF text extraction requires advanced parsing. "
    "Please use a simpler PDF or consider using the image upload option."
)


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """
    Read the PDF's text layer page by page.

    Page texts are joined in page order with newlines and the result is
    trimmed. Scanned PDFs without a text layer yield an empty string.
    """
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            page_texts = [page.get_text("text").strip() for page in doc]
    except Exception as e:
        logger.error(f"PDF parsing failed: {e}", exc_info=True)
        raise ExtractionError(f"Failed to extract text from PDF: {e}") from e

    logger.info(f"Extracted text layer from {len(page_texts)} PDF pages")
    return "\n".join(page_texts).strip()


def ocr_pdf_pages(pdf_bytes: bytes, ocr_service,
                  on_progress: Optional[Callable[[int], None]] = None) -> str:
    """Rasterise every page and run it through OCR (for scans without a text layer)."""
    try:
        pages = convert_from_bytes(pdf_bytes)
    except PDFInfoNotInstalledError as e:
        raise ExtractionError(
            "PDF rasterisation requires poppler-utils. Install with: apt-get install poppler-utils "
            "(Linux) or brew install poppler (Mac)"
        ) from e
    except (PDFPageCountError, PDFSyntaxError) as e:
        raise ExtractionError(f"Invalid PDF file: {e}") from e

    if not pages:
        raise ExtractionError("No pages found in PDF")
    logger.info(f"Running OCR over {len(pages)} rasterised PDF pages")
    text, _ = ocr_service.recognize_images(pages, on_progress)
    return text.strip()


def scan_show_text_operators(pdf_bytes: bytes) -> str:
    """
    Best-effort text recovery straight from raw PDF bytes.

    Only finds literal ``(...) Tj`` operands in uncompressed content
    streams; compressed or hex-encoded streams are not decoded. Returns a
    placeholder message when nothing is found.
    """
    matches = SHOW_TEXT_PATTERN.findall(pdf_bytes)
    if not matches:
        logger.warning("Byte scan found no show-text operators")
        return BYTE_SCAN_PLACEHOLDER
    return " ".join(m.decode("latin-1") for m in matches).strip()
