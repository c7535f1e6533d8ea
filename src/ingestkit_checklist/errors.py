"""Normalized error codes, structured error model and exceptions for ingestkit-checklist.

``ErrorCode`` values are stable strings suitable for metrics and programmatic
handling.  ``IngestError`` is the structured record attached to results.  The
exception classes carry an ``ErrorCode`` so callers can distinguish fatal
input-level failures from per-chunk extraction failures.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for the ingestkit-checklist pipeline.

    Codes prefixed with ``E_`` are errors; codes prefixed with ``W_`` are
    non-fatal warnings.
    """

    # Input errors (fatal)
    E_EMPTY_INPUT = "E_EMPTY_INPUT"
    E_PROVIDER_UNAVAILABLE = "E_PROVIDER_UNAVAILABLE"

    # Spreadsheet errors
    E_PARSE_CORRUPT = "E_PARSE_CORRUPT"
    E_PARSE_EMPTY = "E_PARSE_EMPTY"

    # LLM errors (recoverable by retry/fallback)
    E_LLM_MALFORMED_JSON = "E_LLM_MALFORMED_JSON"
    E_LLM_SCHEMA_INVALID = "E_LLM_SCHEMA_INVALID"
    E_LLM_TIMEOUT = "E_LLM_TIMEOUT"
    E_LLM_PROVIDER_ERROR = "E_LLM_PROVIDER_ERROR"

    # Chunk outcome errors
    E_CHUNK_EXHAUSTED = "E_CHUNK_EXHAUSTED"
    E_CANCELLED = "E_CANCELLED"

    # Item errors
    E_ITEM_INVALID = "E_ITEM_INVALID"

    # Warnings (non-fatal)
    W_LLM_RETRY = "W_LLM_RETRY"
    W_PROVIDER_FALLBACK = "W_PROVIDER_FALLBACK"
    W_TYPE_CORRECTED = "W_TYPE_CORRECTED"
    W_REQUIRED_COERCED = "W_REQUIRED_COERCED"
    W_DEPENDENT_INCOMPLETE = "W_DEPENDENT_INCOMPLETE"
    W_OPTIONS_MISSING = "W_OPTIONS_MISSING"
    W_HEADER_MISMATCH = "W_HEADER_MISMATCH"


class IngestError(BaseModel):
    """Structured error with code, message, and context.

    ``chunk_index`` locates the error within an extraction run; it is *None*
    for errors that are not tied to a single chunk.
    """

    code: ErrorCode
    message: str
    chunk_index: int | None = None
    stage: str | None = None
    recoverable: bool = False


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ChecklistError(Exception):
    """Base exception for the pipeline.

    Wraps an :class:`ErrorCode` and a human-readable message.
    """

    default_code = ErrorCode.E_LLM_PROVIDER_ERROR

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code

    def to_ingest_error(
        self,
        chunk_index: int | None = None,
        stage: str | None = None,
        recoverable: bool = False,
    ) -> IngestError:
        return IngestError(
            code=self.code,
            message=str(self),
            chunk_index=chunk_index,
            stage=stage,
            recoverable=recoverable,
        )


class ExtractionFailure(ChecklistError):
    """A single chunk could not be turned into checklist items."""


class MalformedResponse(ExtractionFailure):
    """The provider returned non-JSON or non-array-shaped content."""

    default_code = ErrorCode.E_LLM_MALFORMED_JSON


class ProviderUnavailable(ChecklistError):
    """No configured provider has an initialized backend."""

    default_code = ErrorCode.E_PROVIDER_UNAVAILABLE


class EmptyInput(ChecklistError):
    """The source contained no data rows."""

    default_code = ErrorCode.E_EMPTY_INPUT


class SpreadsheetReadError(ChecklistError):
    """The spreadsheet could not be opened or held no readable data."""

    default_code = ErrorCode.E_PARSE_CORRUPT


def error_code_for(exc: BaseException) -> ErrorCode:
    """Map an exception raised by a provider call to an :class:`ErrorCode`."""
    if isinstance(exc, ChecklistError):
        return exc.code
    if isinstance(exc, TimeoutError):
        return ErrorCode.E_LLM_TIMEOUT
    return ErrorCode.E_LLM_PROVIDER_ERROR
