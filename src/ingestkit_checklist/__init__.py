"""ingestkit-checklist -- chunked LLM extraction of checklist spreadsheets.

Public API exports for models, enums, errors, configuration, pipeline
components, and the ``ChecklistRouter`` orchestrator.
"""

from ingestkit_checklist.chunker import RowChunker
from ingestkit_checklist.config import ChecklistProcessorConfig
from ingestkit_checklist.errors import (
    ChecklistError,
    EmptyInput,
    ErrorCode,
    ExtractionFailure,
    IngestError,
    MalformedResponse,
    ProviderUnavailable,
    SpreadsheetReadError,
)
from ingestkit_checklist.estimator import SizeEstimator
from ingestkit_checklist.executor import ChunkExecutor
from ingestkit_checklist.extractor import SheetRows, check_header, extract_rows
from ingestkit_checklist.merger import merge_results
from ingestkit_checklist.models import (
    ChecklistItem,
    Chunk,
    ChunkFailure,
    ChunkResult,
    ExecutionOutcome,
    ExtractionResult,
    FieldType,
    MergedResult,
    ModelTier,
    ProgressEvent,
    ProgressStatus,
    Provider,
    ValidationReport,
)
from ingestkit_checklist.progress import ProgressBroadcaster, Subscription, format_sse
from ingestkit_checklist.protocols import LLMBackend, ProgressSink
from ingestkit_checklist.provider_selector import ProviderSelector
from ingestkit_checklist.response_parser import (
    Malformed,
    ParsedArray,
    ParsedWrapped,
    parse_response,
)
from ingestkit_checklist.retry import RetryCoordinator
from ingestkit_checklist.router import ChecklistRouter, create_default_router
from ingestkit_checklist.scheduler import SequentialScheduler
from ingestkit_checklist.validator import ItemValidator

__all__ = [
    # Enums
    "Provider",
    "ModelTier",
    "FieldType",
    "ProgressStatus",
    # Core models
    "Chunk",
    "ChecklistItem",
    "ChunkResult",
    "ChunkFailure",
    "ExecutionOutcome",
    "MergedResult",
    "ExtractionResult",
    "ProgressEvent",
    "ValidationReport",
    # Pipeline components
    "SizeEstimator",
    "RowChunker",
    "ProviderSelector",
    "ChunkExecutor",
    "RetryCoordinator",
    "SequentialScheduler",
    "merge_results",
    "ItemValidator",
    # Response parsing
    "ParsedArray",
    "ParsedWrapped",
    "Malformed",
    "parse_response",
    # Progress
    "ProgressBroadcaster",
    "Subscription",
    "format_sse",
    # Extractor
    "SheetRows",
    "extract_rows",
    "check_header",
    # Router
    "ChecklistRouter",
    "create_default_router",
    # Errors
    "ErrorCode",
    "IngestError",
    "ChecklistError",
    "ExtractionFailure",
    "MalformedResponse",
    "ProviderUnavailable",
    "EmptyInput",
    "SpreadsheetReadError",
    # Config
    "ChecklistProcessorConfig",
    # Protocols
    "LLMBackend",
    "ProgressSink",
]
