import logging
from summary_assistant.services.errors import EmptyExtractionError
from summary_assistant.services.states import PipelineState, Stage

logger = logging.getLogger(__name__)

def extract_text(state: PipelineState, ctx) -> PipelineState:
    """Step 2: Extract plain text from the PDF or image"""
    ctx.machine.advance(Stage.EXTRACTING)
    logger.info("Step 2: Extracting text")

    text = ctx.extractor.extract(
        state["file_bytes"],
        state["content_type"],
        on_progress=ctx.machine.set_progress,
    )

    # A summary of nothing is meaningless, whatever the extractor thinks
    if not text or not text.strip():
        logger.warning("Extraction returned empty text")
        raise EmptyExtractionError()

    state["extracted_text"] = text
    logger.info(f"Extraction completed: {len(text)} characters")
    return state
