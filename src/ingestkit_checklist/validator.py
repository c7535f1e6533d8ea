"""Structural validation and auto-correction of raw LLM checklist items.

Turns the untyped dicts parsed from a provider response into
:class:`ChecklistItem` models.  Recoverable problems are auto-corrected and
reported as warnings; an item with no usable question is dropped and
reported as an error.  Meaning is never checked, only structure.
"""

from __future__ import annotations

import logging
from typing import Any

from ingestkit_checklist.errors import ErrorCode, IngestError
from ingestkit_checklist.models import (
    CHOICE_FIELD_TYPES,
    ChecklistItem,
    FieldType,
    ValidationReport,
)

logger = logging.getLogger("ingestkit_checklist")

_TRUTHY_STRINGS = frozenset({"true", "yes", "1", "on", "enabled"})
_FIELD_TYPE_VALUES = {field_type.value: field_type for field_type in FieldType}


def coerce_bool(value: Any) -> bool:
    """Convert spreadsheet-style truthy values to ``bool``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return False


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(str(v).strip() for v in value if str(v).strip())
    return str(value).strip()


def _first_present(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


class ItemValidator:
    """Normalize raw item dicts for one chunk."""

    def validate(
        self,
        raw_items: list[Any],
        chunk_index: int | None = None,
    ) -> ValidationReport:
        """Build :class:`ChecklistItem` models from *raw_items*.

        Placeholder ids are assigned by position among the kept items; the
        merger replaces them with global ids.
        """
        items: list[ChecklistItem] = []
        errors: list[IngestError] = []
        warnings: list[IngestError] = []

        def _warn(code: ErrorCode, message: str) -> None:
            warnings.append(
                IngestError(
                    code=code,
                    message=message,
                    chunk_index=chunk_index,
                    stage="validate",
                    recoverable=True,
                )
            )

        for position, raw in enumerate(raw_items, start=1):
            label = f"Item {position}"

            if not isinstance(raw, dict):
                errors.append(
                    IngestError(
                        code=ErrorCode.E_ITEM_INVALID,
                        message=f"{label}: expected an object, got {type(raw).__name__}",
                        chunk_index=chunk_index,
                        stage="validate",
                    )
                )
                continue

            question = _as_text(raw.get("question"))
            if not question:
                errors.append(
                    IngestError(
                        code=ErrorCode.E_ITEM_INVALID,
                        message=f"{label}: question is required",
                        chunk_index=chunk_index,
                        stage="validate",
                    )
                )
                continue

            raw_type = raw.get("type")
            field_type = _FIELD_TYPE_VALUES.get(raw_type) if isinstance(raw_type, str) else None
            if field_type is None:
                _warn(
                    ErrorCode.W_TYPE_CORRECTED,
                    f'{label}: invalid type "{raw_type}", defaulting to textField',
                )
                logger.warning(
                    "Chunk %s %s: unrecognized type %r corrected to textField.",
                    chunk_index,
                    label,
                    raw_type,
                )
                field_type = FieldType.TEXT_FIELD

            raw_required = raw.get("required")
            required = coerce_bool(raw_required)
            if not isinstance(raw_required, bool):
                _warn(
                    ErrorCode.W_REQUIRED_COERCED,
                    f"{label}: required field {raw_required!r} converted to {required}",
                )

            options = _as_text(_first_present(raw, "options", "option"))
            if field_type in CHOICE_FIELD_TYPES and not options:
                _warn(
                    ErrorCode.W_OPTIONS_MISSING,
                    f"{label}: {field_type.value} should have options",
                )

            is_dependent = coerce_bool(_first_present(raw, "isDependent", "is_dependent"))
            dependent_on = _as_text(_first_present(raw, "dependentOn", "dependent_on"))
            dependent_options = _as_text(
                _first_present(raw, "dependentOptions", "dependent_options")
            )
            if is_dependent and not dependent_on:
                _warn(
                    ErrorCode.W_DEPENDENT_INCOMPLETE,
                    f"{label}: missing parent dependent question",
                )
            if is_dependent and not dependent_options:
                _warn(
                    ErrorCode.W_DEPENDENT_INCOMPLETE,
                    f"{label}: missing parent dependent options",
                )

            items.append(
                ChecklistItem(
                    id=len(items) + 1,
                    question=question,
                    type=field_type,
                    options=options,
                    required=required,
                    is_dependent=is_dependent,
                    dependent_on=dependent_on,
                    dependent_options=dependent_options,
                )
            )

        return ValidationReport(items=items, errors=errors, warnings=warnings)
