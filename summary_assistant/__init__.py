"""Document Summary Assistant: text extraction and AI summaries for PDFs and images."""

__version__ = "0.1.0"
