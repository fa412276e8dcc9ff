import logging
from dataclasses import dataclass
from typing import Callable, Optional

from langgraph.graph import END, StateGraph

from summary_assistant.services.errors import PersistenceError, PipelineError
from summary_assistant.services.nodes import (
    extract_text,
    persist_summary,
    summarize_document,
    upload_document,
)
from summary_assistant.services.processors import SummaryGenerator, TextExtractor
from summary_assistant.services.states import PipelineState, Stage, StageMachine
from summary_assistant.storage import Document, DocumentStatus, LocalObjectStorage, SQLDocumentStore, Summary
from summary_assistant.utils.llm_config import get_generative_client

logger = logging.getLogger(__name__)

LEAVE = "leave"
MARK_FAILED = "mark_failed"
FAILURE_POLICIES = (LEAVE, MARK_FAILED)


@dataclass
class PipelineResult:
    document: Document
    summary: Summary
    stage: Stage = Stage.COMPLETE


def record_failure(store, document_id: str, message: str) -> None:
    """
    Mark a document failed and attach an error-only summary, best-effort.

    A document keeps at most one summary row: when one was already written
    before the failure, only the status changes.
    """
    try:
        store.update_document_status(document_id, DocumentStatus.FAILED.value)
        if store.get_summary_by_document_id(document_id) is not None:
            logger.info(f"Document {document_id} already has a summary, marked failed only")
            return
        store.insert_summary(document_id=document_id, error_message=message)
        logger.info(f"Recorded failure for document {document_id}")
    except PersistenceError as e:
        logger.error(f"Could not record failure for document {document_id}: {e}", exc_info=True)


def build_pipeline_graph(pipeline: "DocumentPipeline"):
    """Build and compile the LangGraph workflow for one pipeline instance"""
    workflow = StateGraph(PipelineState)

    workflow.add_node("upload", lambda state: upload_document(state, pipeline))
    workflow.add_node("extract", lambda state: extract_text(state, pipeline))
    workflow.add_node("summarize", lambda state: summarize_document(state, pipeline))
    workflow.add_node("persist", lambda state: persist_summary(state, pipeline))

    # upload -> extract -> summarize -> persist -> END
    workflow.set_entry_point("upload")
    workflow.add_edge("upload", "extract")
    workflow.add_edge("extract", "summarize")
    workflow.add_edge("summarize", "persist")
    workflow.add_edge("persist", END)

    return workflow.compile()


class DocumentPipeline:
    """
    Upload, extract, summarize and persist one document at a time.

    Collaborators are injected; ``from_config`` wires the default ones from
    an explicit ``PipelineConfig``. Stage changes and OCR progress are
    pushed to the optional ``on_stage`` / ``on_progress`` listeners.
    """

    def __init__(self, storage, store, extractor: TextExtractor, generator: SummaryGenerator,
                 failure_policy: str = LEAVE,
                 on_stage: Optional[Callable[[Stage], None]] = None,
                 on_progress: Optional[Callable[[int], None]] = None):
        if failure_policy not in FAILURE_POLICIES:
            raise ValueError(f"Unknown failure policy: {failure_policy}. Supported: {', '.join(FAILURE_POLICIES)}")
        self.storage = storage
        self.store = store
        self.extractor = extractor
        self.generator = generator
        self.failure_policy = failure_policy
        self.machine = StageMachine(on_stage=on_stage, on_progress=on_progress)
        self.graph = build_pipeline_graph(self)

    @classmethod
    def from_config(cls, config, store=None, extractor=None, generator=None, **kwargs) -> "DocumentPipeline":
        return cls(
            storage=LocalObjectStorage(config.storage_endpoint),
            store=store or SQLDocumentStore(config.database_endpoint),
            extractor=extractor or TextExtractor.from_config(config),
            generator=generator or SummaryGenerator(get_generative_client(config),
                                                    concurrency=config.summary_concurrency),
            failure_policy=config.failure_policy,
            **kwargs,
        )

    @property
    def stage(self) -> Stage:
        return self.machine.stage

    @property
    def progress(self) -> int:
        return self.machine.progress

    def process(self, filename: str, content_type: str, data: bytes) -> PipelineResult:
        """
        Run one file through the whole pipeline.

        Raises:
            PipelineError: the first failure, after the stage has moved to
                FAILED and progress has been reset
        """
        self.machine.reset()
        state: PipelineState = {
            "filename": filename,
            "content_type": content_type,
            "file_bytes": data,
            "storage_path": None,
            "file_url": None,
            "document_id": None,
            "extracted_text": "",
            "summaries": None,
            "summary_id": None,
        }

        try:
            # Keep the latest state so a failure still knows which document it hit
            for state in self.graph.stream(state, stream_mode="values"):
                pass
        except PipelineError as e:
            logger.error(f"Processing {filename} failed during {self.stage.value}: {e.message}", exc_info=True)
            self._handle_failure(state, e.message)
            raise
        except Exception as e:
            logger.error(f"Unexpected error processing {filename}: {e}", exc_info=True)
            message = f"Failed to process document: {e}"
            self._handle_failure(state, message)
            raise PipelineError(message) from e

        document = self.store.get_document(state["document_id"])
        summary = self.store.get_summary_by_document_id(state["document_id"])
        logger.info(f"Processing {filename} complete (document {document.id})")
        return PipelineResult(document=document, summary=summary, stage=self.stage)

    def _handle_failure(self, state: PipelineState, message: str) -> None:
        self.machine.fail()
        document_id = state.get("document_id")
        if document_id and self.failure_policy == MARK_FAILED:
            record_failure(self.store, document_id, message)
