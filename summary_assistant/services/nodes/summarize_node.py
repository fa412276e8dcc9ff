import logging
from summary_assistant.services.states import PipelineState, Stage

logger = logging.getLogger(__name__)

def summarize_document(state: PipelineState, ctx) -> PipelineState:
    """Step 3: Generate the three summaries and the key points"""
    ctx.machine.advance(Stage.SUMMARIZING)
    ctx.machine.set_progress(0)
    logger.info("Step 3: Running AI document summarization")

    result = ctx.generator.generate(state["extracted_text"])
    state["summaries"] = result.to_dict()
    return state
