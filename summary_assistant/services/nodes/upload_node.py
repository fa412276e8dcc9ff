import logging
from summary_assistant.services.states import PipelineState, Stage
from summary_assistant.storage.models import DocumentStatus
from summary_assistant.storage.object_storage import generate_storage_path

logger = logging.getLogger(__name__)

def upload_document(state: PipelineState, ctx) -> PipelineState:
    """Step 1: Store the raw file and create its document record"""
    ctx.machine.advance(Stage.UPLOADING)
    logger.info(f"Step 1: Uploading {state['filename']} ({len(state['file_bytes'])} bytes)")

    storage_path = generate_storage_path(state["filename"])
    state["file_url"] = ctx.storage.put(storage_path, state["file_bytes"])
    state["storage_path"] = storage_path

    document = ctx.store.insert_document(
        filename=state["filename"],
        file_type=state["content_type"],
        file_size=len(state["file_bytes"]),
        storage_path=storage_path,
        status=DocumentStatus.PROCESSING.value,
    )
    state["document_id"] = document.id
    return state
