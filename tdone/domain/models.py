from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


class MediaCategory(str, Enum):
    TV = "tv"
    MOVIE = "movie"
    UNKNOWN = "unknown"


class ActionMode(str, Enum):
    SIMULATE = "simulate"  # filebot --action test
    COMMIT = "commit"  # filebot --action move


class ReadinessReason(str, Enum):
    READY = "ready"
    NO_FILES = "no_files"
    OPEN_BY_WRITER = "open_by_writer"
    PARTIAL_MARKER = "partial_marker"
    INCOMPLETE_MARKER = "incomplete_marker"
    SIZE_UNSTABLE = "size_unstable"


class PipelineStage(str, Enum):
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    CHECKING_READINESS = "CHECKING_READINESS"
    CLEANING = "CLEANING"
    PROCESSING = "PROCESSING"
    POST_PROCESSING = "POST_PROCESSING"
    DONE = "DONE"


class MediaBatch(BaseModel):
    """Video files found under one source directory for a single run."""

    model_config = ConfigDict(frozen=True)

    source_dir: Path
    files: Tuple[Path, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.files

    @property
    def filenames(self) -> List[str]:
        return [f.name for f in self.files]


class ReadinessVerdict(BaseModel):
    path: Path
    ready: bool
    reason: ReadinessReason
    detail: Optional[str] = None


class ReadinessReport(BaseModel):
    ready: bool
    reason: ReadinessReason
    verdicts: List[ReadinessVerdict] = Field(default_factory=list)

    @property
    def blocking(self) -> Optional[ReadinessVerdict]:
        """First verdict that kept the batch from being ready."""
        return next((v for v in self.verdicts if not v.ready), None)


class ClassificationResult(BaseModel):
    category: MediaCategory
    tv_score: int = 0
    movie_score: int = 0
    file_count: int = 0

    @property
    def conclusive(self) -> bool:
        return self.category != MediaCategory.UNKNOWN


class EngineResult(BaseModel):
    """Interpreted outcome of one rename engine run.

    The engine's exit code is not a success signal on its own: FileBot exits
    1 when it is unsure about TV vs movie even though it moved files, and can
    exit 0 having done nothing. files_affected is authoritative.
    """

    files_affected: int = 0
    exit_code: int = 0
    output: str = ""
    action: ActionMode = ActionMode.COMMIT

    @property
    def succeeded(self) -> bool:
        return self.files_affected > 0

    @property
    def succeeded_despite_exit_code(self) -> bool:
        return self.succeeded and self.exit_code != 0


class Strategy(BaseModel):
    """One way of asking the engine to identify a batch.

    metadata_source=None lets the engine auto-detect; non_strict=False with no
    source makes it fall back on identification data cached from earlier runs.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    metadata_source: Optional[str] = None
    non_strict: bool = True
    category: Optional[MediaCategory] = None


class StrategyAttempt(BaseModel):
    strategy: Strategy
    result: EngineResult

    @property
    def succeeded(self) -> bool:
        return self.result.succeeded


class FallbackOutcome(BaseModel):
    succeeded: bool
    attempts: List[StrategyAttempt] = Field(default_factory=list)
    classification: Optional[ClassificationResult] = None
    winner: Optional[StrategyAttempt] = None
    category: MediaCategory = MediaCategory.UNKNOWN

    @property
    def combined_output(self) -> str:
        return "\n".join(a.result.output for a in self.attempts if a.result.output)


class RescanRequest(BaseModel):
    category: str
    section_id: int
    attempt: int = 0


class PipelineResult(BaseModel):
    succeeded: bool
    stage: PipelineStage
    message: str = ""
    outcome: Optional[FallbackOutcome] = None
    readiness: Optional[ReadinessReport] = None
    preview: Optional[EngineResult] = None
    rescan_triggered: bool = False
    junk_removed: int = 0

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1
