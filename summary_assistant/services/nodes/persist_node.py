import logging
from summary_assistant.services.errors import PersistenceError
from summary_assistant.services.states import PipelineState, Stage
from summary_assistant.storage.models import DocumentStatus

logger = logging.getLogger(__name__)

def persist_summary(state: PipelineState, ctx) -> PipelineState:
    """Step 4: Save the summary, complete the document, read the summary back"""
    document_id = state["document_id"]
    summaries = state["summaries"]
    logger.info(f"Step 4: Saving summary for document {document_id}")

    ctx.store.insert_summary(
        document_id=document_id,
        extracted_text=state["extracted_text"],
        summary_short=summaries["short"],
        summary_medium=summaries["medium"],
        summary_long=summaries["long"],
        key_points=summaries["keyPoints"],
    )
    ctx.store.update_document_status(document_id, DocumentStatus.COMPLETED.value)

    stored = ctx.store.get_summary_by_document_id(document_id)
    if stored is None:
        raise PersistenceError(f"Summary for document {document_id} could not be read back")
    state["summary_id"] = stored.id

    ctx.machine.advance(Stage.COMPLETE)
    return state
