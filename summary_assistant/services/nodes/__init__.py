from .upload_node import upload_document
from .extract_node import extract_text
from .summarize_node import summarize_document
from .persist_node import persist_summary

__all__ = ["upload_document", "extract_text", "summarize_document", "persist_summary"]
