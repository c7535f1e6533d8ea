"""Strictly sequential scheduling of chunks through the retry coordinator.

Chunks are processed one at a time in index order, so progress events for
chunk N always precede those for chunk N + 1.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from ingestkit_checklist.models import Chunk, ChunkResult, ProgressEvent, ProgressStatus
from ingestkit_checklist.protocols import ProgressSink
from ingestkit_checklist.retry import RetryCoordinator, publish_safely

logger = logging.getLogger("ingestkit_checklist")


class SequentialScheduler:
    """Fold a chunk list into an ordered list of :class:`ChunkResult`."""

    def __init__(self, coordinator: RetryCoordinator) -> None:
        self._coordinator = coordinator

    def run_all(
        self,
        chunks: Sequence[Chunk],
        sink: ProgressSink | None = None,
        cancel_event: threading.Event | None = None,
        max_retries: int | None = None,
    ) -> list[ChunkResult]:
        """Process *chunks* in order, returning one result per chunk.

        A failed chunk never stops the sequence.  When *cancel_event* is set,
        every chunk not yet started is recorded as a cancelled failure.
        """
        total = len(chunks)
        results: list[ChunkResult] = []

        for index, chunk in enumerate(chunks):
            if cancel_event is not None and cancel_event.is_set():
                results.extend(self._cancel_remaining(chunks, index, sink))
                break

            result = self._coordinator.run_with_retry(
                chunk,
                chunk_index=index,
                total_chunks=total,
                sink=sink,
                cancel_event=cancel_event,
                max_retries=max_retries,
            )
            results.append(result)

        return results

    def _cancel_remaining(
        self,
        chunks: Sequence[Chunk],
        start: int,
        sink: ProgressSink | None,
    ) -> list[ChunkResult]:
        total = len(chunks)
        logger.warning(
            "Extraction cancelled; skipping %d remaining chunk(s).", total - start
        )
        cancelled: list[ChunkResult] = []
        for index in range(start, total):
            publish_safely(
                sink,
                ProgressEvent(
                    chunk_index=index,
                    total_chunks=total,
                    attempt=0,
                    max_attempts=0,
                    status=ProgressStatus.CANCELLED,
                    message="Cancelled before processing",
                ),
            )
            cancelled.append(RetryCoordinator.cancelled_result(chunks[index], index))
        return cancelled
