"""
Server-side processing of a document that was already uploaded elsewhere.

The caller supplies the document id, a URL to the stored file, its MIME
type and the generative-service key to use. Unlike the upload pipeline,
any failure here is recorded on the document (status ``failed`` plus an
error-only summary) before the error is re-raised.
"""
import logging
from urllib.parse import unquote, urlparse

import requests

from summary_assistant.services.errors import (
    EmptyExtractionError,
    ExtractionError,
    PipelineError,
    UploadError,
)
from summary_assistant.services.processors import (
    SummaryGenerator,
    SummaryResult,
    TextExtractor,
    scan_show_text_operators,
)
from summary_assistant.services.processors.text_extractor import PDF, route_for
from summary_assistant.services.workflow import record_failure
from summary_assistant.storage import DocumentStatus, LocalObjectStorage
from summary_assistant.utils.llm_config import get_generative_client

logger = logging.getLogger(__name__)


def fetch_file(file_url: str, storage: LocalObjectStorage | None = None,
               timeout: float | None = 60.0) -> bytes:
    """
    Download ``file_url`` (http, https or file scheme).

    ``file`` URLs are only served from inside ``storage``; anything that
    resolves outside its root raises ``UploadError``.
    """
    parsed = urlparse(file_url)
    if parsed.scheme == "file":
        if storage is None:
            raise UploadError("Local file URLs are not accepted")
        return storage.get(unquote(parsed.path))
    try:
        if parsed.scheme in ("http", "https"):
            response = requests.get(file_url, timeout=timeout)
            response.raise_for_status()
            return response.content
    except (OSError, requests.exceptions.RequestException) as e:
        raise UploadError(f"Failed to fetch file: {e}") from e
    raise UploadError(f"Unsupported file URL: {file_url}")


def extract_remote_text(extractor: TextExtractor, data: bytes, file_type: str) -> str:
    """PDFs fall back to a raw byte scan when structural parsing fails."""
    if route_for(file_type) == PDF:
        try:
            return extractor.extract_pdf(data)
        except ExtractionError as e:
            logger.warning(f"PDF parsing failed ({e.message}), falling back to byte scan")
            return scan_show_text_operators(data)
    return extractor.extract_image(data)


def process_remote_document(document_id: str, file_url: str, file_type: str, api_key: str,
                            config, store, extractor: TextExtractor,
                            storage: LocalObjectStorage | None = None,
                            fetch=fetch_file) -> SummaryResult:
    """
    Extract, summarize and store a summary for an existing document.

    Raises:
        PipelineError: after the failure has been recorded on the document
    """
    storage = storage or LocalObjectStorage(config.storage_endpoint)
    try:
        store.update_document_status(document_id, DocumentStatus.PROCESSING.value)
        data = fetch(file_url, storage)
        logger.info(f"Fetched {len(data)} bytes for document {document_id}")

        text = extract_remote_text(extractor, data, file_type)
        if not text or not text.strip():
            raise EmptyExtractionError()

        with get_generative_client(config, api_key=api_key) as client:
            summaries = SummaryGenerator(client, concurrency=config.summary_concurrency).generate(text)

        store.insert_summary(
            document_id=document_id,
            extracted_text=text,
            summary_short=summaries.short,
            summary_medium=summaries.medium,
            summary_long=summaries.long,
            key_points=summaries.key_points,
        )
        store.update_document_status(document_id, DocumentStatus.COMPLETED.value)
        logger.info(f"Document {document_id} processed")
        return summaries
    except PipelineError as e:
        logger.error(f"Error processing document {document_id}: {e.message}", exc_info=True)
        record_failure(store, document_id, e.message)
        raise
    except Exception as e:
        logger.error(f"Error processing document {document_id}: {e}", exc_info=True)
        message = f"Failed to process document: {e}"
        record_failure(store, document_id, message)
        raise PipelineError(message) from e
