"""Pure merge of per-chunk results into the final ordered item list."""

from __future__ import annotations

from collections.abc import Sequence

from ingestkit_checklist.errors import IngestError
from ingestkit_checklist.models import (
    ChecklistItem,
    ChunkFailure,
    ChunkResult,
    MergedResult,
)


def merge_results(results: Sequence[ChunkResult]) -> MergedResult:
    """Concatenate successful chunk items in chunk order and assign ids 1..N.

    Placeholder ids on incoming items are overwritten.  Failed chunks
    contribute only a :class:`ChunkFailure` carrying their original row range.
    The input is not modified, so merging the same results twice yields
    identical output.
    """
    items: list[ChecklistItem] = []
    failures: list[ChunkFailure] = []
    errors: list[IngestError] = []
    warnings: list[IngestError] = []

    for result in sorted(results, key=lambda r: r.chunk_index):
        errors.extend(result.errors)
        warnings.extend(result.warnings)

        if not result.success:
            failures.append(
                ChunkFailure(
                    chunk_index=result.chunk_index,
                    error=result.error or "Unknown error",
                    error_code=result.error_code,
                    start_index=result.start_index,
                    end_index=result.end_index,
                    row_count=result.row_count,
                )
            )
            continue

        for item in result.data or []:
            items.append(item.model_copy(update={"id": len(items) + 1}))

    return MergedResult(items=items, failures=failures, errors=errors, warnings=warnings)
