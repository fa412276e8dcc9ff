import enum
import logging
from typing import Callable, Optional, TypedDict

from summary_assistant.services.errors import IllegalTransitionError

logger = logging.getLogger(__name__)


class Stage(str, enum.Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    EXTRACTING = "extracting"
    SUMMARIZING = "summarizing"
    COMPLETE = "complete"
    FAILED = "failed"


IN_PROGRESS = (Stage.UPLOADING, Stage.EXTRACTING, Stage.SUMMARIZING)

# target stage -> stages it may be entered from
LEGAL_PREDECESSORS = {
    Stage.UPLOADING: (Stage.IDLE,),
    Stage.EXTRACTING: (Stage.UPLOADING,),
    Stage.SUMMARIZING: (Stage.EXTRACTING,),
    Stage.COMPLETE: (Stage.SUMMARIZING,),
    Stage.FAILED: IN_PROGRESS,
}


class StageMachine:
    """Linear stage tracker for one pipeline run.

    ``on_stage`` and ``on_progress`` are optional listeners that receive the
    new stage and the current progress value (0-100) whenever they change.
    """

    def __init__(
        self,
        on_stage: Optional[Callable[[Stage], None]] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ):
        self.stage = Stage.IDLE
        self.progress = 0
        self._on_stage = on_stage
        self._on_progress = on_progress

    def advance(self, target: Stage) -> None:
        if self.stage not in LEGAL_PREDECESSORS.get(target, ()):
            raise IllegalTransitionError(self.stage, target)
        logger.info(f"Stage {self.stage.value} -> {target.value}")
        self.stage = target
        if self._on_stage:
            self._on_stage(target)

    def fail(self) -> None:
        """Move to FAILED if a run is in flight and clear progress."""
        if self.stage in IN_PROGRESS:
            self.advance(Stage.FAILED)
        self.set_progress(0)

    def set_progress(self, value: int) -> None:
        value = max(0, min(100, int(value)))
        self.progress = value
        if self._on_progress:
            self._on_progress(value)

    def reset(self) -> None:
        if self.stage in IN_PROGRESS:
            raise IllegalTransitionError(self.stage, Stage.IDLE)
        self.stage = Stage.IDLE
        self.progress = 0

    @property
    def is_running(self) -> bool:
        return self.stage in IN_PROGRESS


class PipelineState(TypedDict):
    """State that flows through the LangGraph pipeline"""
    filename: str  # Original filename
    content_type: str  # Declared MIME type
    file_bytes: bytes  # Raw upload
    storage_path: Optional[str]  # Object storage path, set by upload
    file_url: Optional[str]  # Object storage URL, set by upload
    document_id: Optional[str]  # Set once the document row exists
    extracted_text: str
    summaries: Optional[dict]  # short / medium / long / key_points
    summary_id: Optional[str]  # Set once the summary row is written
