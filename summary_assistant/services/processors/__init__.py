from .image_processor import OCRService
from .pdf_processor import extract_pdf_text, ocr_pdf_pages, scan_show_text_operators
from .text_extractor import TextExtractor, route_for
from .summary_processor import SummaryGenerator, SummaryResult, clean_key_points

__all__ = [
    "OCRService",
    "extract_pdf_text", "ocr_pdf_pages", "scan_show_text_operators",
    "TextExtractor", "route_for",
    "SummaryGenerator", "SummaryResult", "clean_key_points",
]
