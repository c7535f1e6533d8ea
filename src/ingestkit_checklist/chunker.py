"""Row-level chunking for checklist extraction.

Partitions an ordered sequence of data rows into contiguous chunks whose
estimated size stays under a per-chunk budget, without ever producing a chunk
smaller than the minimum-rows floor (unless it is the only chunk).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ingestkit_checklist.config import ChecklistProcessorConfig
from ingestkit_checklist.estimator import SizeEstimator
from ingestkit_checklist.models import Chunk

logger = logging.getLogger("ingestkit_checklist")


class RowChunker:
    """Greedy, size-bounded chunker over spreadsheet data rows."""

    def __init__(
        self,
        config: ChecklistProcessorConfig,
        estimator: SizeEstimator | None = None,
    ) -> None:
        self._config = config
        self._estimator = estimator or SizeEstimator(config)

    def chunk(
        self,
        header: str,
        data_rows: Sequence[str],
        max_chars_per_chunk: int,
        min_rows_per_chunk: int | None = None,
        model: str | None = None,
    ) -> list[Chunk]:
        """Split *data_rows* into contiguous chunks.

        A running chunk is closed when adding the next row would push its
        estimate over *max_chars_per_chunk* and it already holds at least
        *min_rows_per_chunk* rows.  Otherwise rows keep accumulating past the
        soft limit.

        Args:
            header: The header line shared by every chunk.
            data_rows: Ordered data rows (header excluded).
            max_chars_per_chunk: Soft per-chunk size budget in characters.
            min_rows_per_chunk: Rows floor; defaults to the config value.
            model: Target model, used for the fixed prompt overhead.

        Returns:
            Chunks in source order.  Empty when *data_rows* is empty.
        """
        if not data_rows:
            return []

        min_rows = (
            self._config.min_rows_per_chunk
            if min_rows_per_chunk is None
            else min_rows_per_chunk
        )
        rows = list(data_rows)

        if self._is_small_dataset(header, rows, max_chars_per_chunk, model):
            logger.info(
                "Small dataset (%d rows), processing as a single chunk.", len(rows)
            )
            return [self._make_chunk(header, rows, 0, model)]

        fixed_cost = self._estimator.estimate(header, [], model)
        groups: list[list[str]] = []
        buffer: list[str] = []
        buffer_size = 0

        for row in rows:
            row_size = len(row) + 1
            if not buffer:
                buffer.append(row)
                buffer_size = row_size
                continue

            projected = fixed_cost + buffer_size + row_size
            if projected > max_chars_per_chunk and len(buffer) >= min_rows:
                groups.append(buffer)
                buffer = [row]
                buffer_size = row_size
            else:
                buffer.append(row)
                buffer_size += row_size

        if buffer:
            # A short tail is folded into its predecessor so it never drops below the floor.
            if groups and len(buffer) < min_rows:
                groups[-1].extend(buffer)
            else:
                groups.append(buffer)

        chunks: list[Chunk] = []
        start = 0
        for group in groups:
            chunks.append(self._make_chunk(header, group, start, model))
            start += len(group)

        logger.info(
            "Chunked %d rows into %d chunk(s) (budget=%d chars, min_rows=%d).",
            len(rows),
            len(chunks),
            max_chars_per_chunk,
            min_rows,
        )
        return chunks

    def _is_small_dataset(
        self,
        header: str,
        rows: list[str],
        max_chars_per_chunk: int,
        model: str | None,
    ) -> bool:
        if len(rows) > self._config.small_dataset_max_rows:
            return False
        total = self._estimator.estimate(header, rows, model)
        return total <= max_chars_per_chunk * self._config.small_dataset_size_tolerance

    def _make_chunk(
        self,
        header: str,
        rows: list[str],
        start_index: int,
        model: str | None,
    ) -> Chunk:
        return Chunk(
            header=header,
            rows=rows,
            start_index=start_index,
            end_index=start_index + len(rows) - 1,
            estimated_size=self._estimator.estimate(header, rows, model),
        )
