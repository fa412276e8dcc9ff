import json
import queue
import threading
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from summary_assistant.api.dependencies import (
    get_document_store,
    get_pipeline,
    get_pipeline_config,
    get_pipeline_factory,
    get_text_extractor,
)
from summary_assistant.api.models import (
    DocumentResponse,
    DocumentWithSummaries,
    ProcessDocumentRequest,
    ProcessDocumentResponse,
    ProcessedDocumentResponse,
    SummaryResponse,
)
from summary_assistant.config import logger
from summary_assistant.services.errors import (
    EmptyExtractionError,
    PipelineError,
    SummaryServiceError,
    UnsupportedTypeError,
)
from summary_assistant.services.remote_processor import process_remote_document

router = APIRouter(prefix="/api", tags=["documents"])


def _status_for(error: PipelineError) -> int:
    if isinstance(error, (UnsupportedTypeError, EmptyExtractionError)):
        return 400
    if isinstance(error, SummaryServiceError):
        return 502
    return 500


@router.post("/documents", response_model=ProcessedDocumentResponse)
async def upload_and_summarize(
    file: UploadFile = File(..., description="Document file (PDF or image)"),
    pipeline=Depends(get_pipeline),
):
    """
    Upload a document, extract its text and generate short, medium and long
    summaries plus key points. Returns the stored document and summary.
    """
    file_bytes = await file.read()
    filename = file.filename or "upload"
    content_type = file.content_type or ""
    logger.info(f"Processing upload: {filename} (type: {content_type}, {len(file_bytes)} bytes)")

    try:
        result = await run_in_threadpool(pipeline.process, filename, content_type, file_bytes)
    except PipelineError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.message)

    return _processed_response(result)


def _processed_response(result) -> ProcessedDocumentResponse:
    return ProcessedDocumentResponse(
        document=DocumentResponse.model_validate(result.document),
        summary=SummaryResponse.model_validate(result.summary),
        stage=result.stage.value,
    )


def stream_pipeline_events(make_pipeline, filename: str, content_type: str, data: bytes):
    """
    Run the pipeline on a worker thread and yield NDJSON events as they happen.

    Each stage change and progress update becomes one line:
    ``{"event": "stage" | "progress", "stage": ..., "progress": ...}``.
    The last line is either ``{"event": "result", ...}`` with the stored
    document and summary, or ``{"event": "error", "error": ..., "status": ...}``.
    """
    events = queue.Queue()
    pipeline = make_pipeline(
        on_stage=lambda stage: events.put({"event": "stage", "stage": stage.value, "progress": pipeline.progress}),
        on_progress=lambda value: events.put({"event": "progress", "stage": pipeline.stage.value, "progress": value}),
    )

    def run():
        try:
            result = pipeline.process(filename, content_type, data)
            events.put({"event": "result", **_processed_response(result).model_dump(mode="json")})
        except PipelineError as e:
            events.put({"event": "error", "error": e.message, "status": _status_for(e)})
        finally:
            events.put(None)

    threading.Thread(target=run, name=f"pipeline-{filename}", daemon=True).start()
    while True:
        event = events.get()
        if event is None:
            break
        yield json.dumps(event) + "\n"


@router.post("/documents/stream")
async def upload_and_summarize_stream(
    file: UploadFile = File(..., description="Document file (PDF or image)"),
    make_pipeline=Depends(get_pipeline_factory),
):
    """
    Same as ``POST /documents`` but streams stage and OCR progress as
    newline-delimited JSON, ending with the result or the error.
    """
    file_bytes = await file.read()
    filename = file.filename or "upload"
    content_type = file.content_type or ""
    logger.info(f"Streaming upload: {filename} (type: {content_type}, {len(file_bytes)} bytes)")

    return StreamingResponse(
        stream_pipeline_events(make_pipeline, filename, content_type, file_bytes),
        media_type="application/x-ndjson",
    )


@router.get("/documents", response_model=List[DocumentWithSummaries])
def list_documents(limit: int = Query(10, ge=1, le=100), store=Depends(get_document_store)):
    """Most recent completed documents with their summaries."""
    try:
        documents = store.list_completed_documents_with_summaries(limit=limit)
    except PipelineError as e:
        logger.error(f"Error loading documents: {e.message}", exc_info=True)
        raise HTTPException(status_code=500, detail=e.message)
    return [DocumentWithSummaries.model_validate(doc) for doc in documents]


@router.get("/documents/{document_id}/summary", response_model=SummaryResponse)
def get_summary(document_id: str, store=Depends(get_document_store)):
    try:
        summary = store.get_summary_by_document_id(document_id)
    except PipelineError as e:
        raise HTTPException(status_code=500, detail=e.message)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"No summary for document {document_id}")
    return SummaryResponse.model_validate(summary)


@router.post("/process-document", response_model=ProcessDocumentResponse)
async def process_document(
    request: Request,
    config=Depends(get_pipeline_config),
    store=Depends(get_document_store),
    extractor=Depends(get_text_extractor),
):
    """
    Server-side processing of an already uploaded document.
    Body: {"documentId", "fileUrl", "fileType", "apiKey"}.
    Failures are recorded on the document and returned as {"error": ...}.
    """
    # Parsed by hand so malformed bodies get the same {"error": ...} shape
    try:
        body = ProcessDocumentRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        logger.warning(f"Rejected process-document body: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    if not all([body.document_id, body.file_url, body.file_type, body.api_key]):
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})

    try:
        summaries = await run_in_threadpool(
            process_remote_document,
            body.document_id,
            body.file_url,
            body.file_type,
            body.api_key,
            config,
            store,
            extractor,
        )
    except PipelineError as e:
        return JSONResponse(status_code=500, content={"error": e.message or "Failed to process document"})

    return {"success": True, "summaries": summaries.to_dict()}
