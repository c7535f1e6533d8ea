"""Pydantic data models and enumerations for ingestkit-checklist.

Defines the provider/tier/field enums, the ``Chunk`` unit of work, the
``ChecklistItem`` form-field descriptor, per-chunk ``ChunkResult`` records,
``ProgressEvent`` telemetry, and the final ``ExtractionResult``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ingestkit_checklist.errors import ErrorCode, IngestError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Provider(str, Enum):
    """LLM capability providers.

    ``ANTHROPIC`` is provider A (Claude), ``OPENAI`` is provider B.
    """

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class ModelTier(str, Enum):
    """Coarse size class used to pick a model for a chunk."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class FieldType(str, Enum):
    """Fixed, case-sensitive form-field kinds understood downstream."""

    TEXT_AREA = "textArea"
    TEXT_FIELD = "textField"
    DATE = "date"
    TIME = "time"
    DATE_TIME = "dateTime"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    MULTI_IMAGE = "multiImage"
    SIGNATURE = "signature"
    HEADER = "header"


CHOICE_FIELD_TYPES = frozenset({FieldType.DROPDOWN, FieldType.RADIO, FieldType.CHECKBOX})


class ProgressStatus(str, Enum):
    """Status carried by a :class:`ProgressEvent`."""

    ATTEMPTING = "attempting"
    SUCCESS = "success"
    RETRYING = "retrying"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Units of work
# ---------------------------------------------------------------------------


class Chunk(BaseModel):
    """A size-bounded contiguous slice of source data rows plus the shared header.

    ``start_index`` and ``end_index`` are 0-based, inclusive positions into the
    original data-row sequence.
    """

    model_config = ConfigDict(frozen=True)

    header: str
    rows: list[str]
    start_index: int
    end_index: int
    estimated_size: int

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def text(self) -> str:
        """Header followed by the data rows, one per line."""
        return "\n".join([self.header, *self.rows])


class ChecklistItem(BaseModel):
    """A typed form-field descriptor extracted from one spreadsheet row.

    Field names are snake_case in Python; ``model_dump(by_alias=True)``
    produces the camelCase shape expected by downstream payload builders.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(ge=1)
    question: str = Field(min_length=1)
    type: FieldType = FieldType.TEXT_FIELD
    options: str = ""
    required: bool = False
    is_dependent: bool = Field(default=False, alias="isDependent")
    dependent_on: str = Field(default="", alias="dependentOn")
    dependent_options: str = Field(default="", alias="dependentOptions")


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------


class ValidationReport(BaseModel):
    """Outcome of normalizing raw LLM item dicts into :class:`ChecklistItem`."""

    items: list[ChecklistItem] = []
    errors: list[IngestError] = []
    warnings: list[IngestError] = []

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ExecutionOutcome(BaseModel):
    """Successful output of one chunk execution."""

    items: list[ChecklistItem]
    errors: list[IngestError] = []
    warnings: list[IngestError] = []
    provider: Provider
    model: str
    fell_back: bool = False


class ChunkResult(BaseModel):
    """Final outcome for one chunk after all retry attempts.

    ``data`` carries items whose ids are placeholders until merged.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    chunk_index: int
    data: list[ChecklistItem] | None = None
    error: str | None = None
    error_code: ErrorCode | None = None
    start_index: int
    end_index: int
    row_count: int
    attempts: int = 0
    provider: Provider | None = None
    model: str | None = None
    errors: list[IngestError] = []
    warnings: list[IngestError] = []


class ProgressEvent(BaseModel):
    """Observational progress telemetry. Never persisted."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int
    total_chunks: int
    attempt: int
    max_attempts: int
    status: ProgressStatus
    message: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ChunkFailure(BaseModel):
    """A chunk whose rows were lost, with the original row range."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int
    error: str
    error_code: ErrorCode | None = None
    start_index: int
    end_index: int
    row_count: int

    @property
    def affected_row_range(self) -> tuple[int, int]:
        return (self.start_index, self.end_index)


class MergedResult(BaseModel):
    """Output of :func:`~ingestkit_checklist.merger.merge_results`."""

    model_config = ConfigDict(frozen=True)

    items: list[ChecklistItem]
    failures: list[ChunkFailure]
    errors: list[IngestError] = []
    warnings: list[IngestError] = []


class ExtractionResult(BaseModel):
    """Final result returned to the caller of an extraction run."""

    items: list[ChecklistItem]
    failures: list[ChunkFailure] = []
    errors: list[IngestError] = []
    warnings: list[IngestError] = []
    total_rows: int
    total_chunks: int
    succeeded_chunks: int
    processing_time_seconds: float = 0.0

    @property
    def is_partial(self) -> bool:
        """True when at least one chunk's rows were lost."""
        return bool(self.failures)
