"""Bounded retry with exponential backoff around :class:`ChunkExecutor`.

Per chunk the coordinator moves through ``attempting -> success`` or
``attempting -> retrying -> attempting ...`` until ``max_retries + 1``
attempts have failed, at which point the chunk is ``failed``.  Every attempt
is bracketed by progress events.

The coordinator never raises: the caller always receives a
:class:`ChunkResult`, so one exhausted chunk cannot abort the run.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable

from ingestkit_checklist.config import ChecklistProcessorConfig
from ingestkit_checklist.errors import ErrorCode, IngestError, error_code_for
from ingestkit_checklist.executor import ChunkExecutor
from ingestkit_checklist.models import Chunk, ChunkResult, ProgressEvent, ProgressStatus
from ingestkit_checklist.protocols import ProgressSink

logger = logging.getLogger("ingestkit_checklist")


def backoff_delay(
    attempt: int,
    base: float,
    maximum: float | None = None,
    jitter: bool = False,
) -> float:
    """Delay before retrying after failed *attempt* (1-based).

    ``base * 2 ** (attempt - 1)``, capped at *maximum*.  With *jitter*, up to
    half the delay again is added at random before the cap.
    """
    delay = base * (2 ** (attempt - 1))
    if jitter:
        delay += random.uniform(0, delay / 2)
    if maximum is not None:
        delay = min(delay, maximum)
    return delay


def publish_safely(sink: ProgressSink | None, event: ProgressEvent) -> None:
    """Publish *event* to *sink*, logging instead of raising on failure."""
    if sink is None:
        return
    try:
        sink.publish(event)
    except Exception as exc:
        logger.warning("Progress sink %r rejected event: %s", sink, exc)


class RetryCoordinator:
    """Wrap a :class:`ChunkExecutor` with retries, backoff, and progress events.

    Parameters
    ----------
    executor:
        The single-attempt chunk executor.
    config:
        Supplies ``max_retries`` and the backoff settings.
    sleep:
        Blocking sleep used between attempts when no cancel event is given.
    """

    def __init__(
        self,
        executor: ChunkExecutor,
        config: ChecklistProcessorConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._executor = executor
        self._config = config
        self._sleep = sleep

    def run_with_retry(
        self,
        chunk: Chunk,
        chunk_index: int,
        total_chunks: int,
        sink: ProgressSink | None = None,
        cancel_event: threading.Event | None = None,
        max_retries: int | None = None,
    ) -> ChunkResult:
        """Run *chunk* until it succeeds or its attempts are exhausted."""
        retries = self._config.max_retries if max_retries is None else max_retries
        max_attempts = retries + 1

        def _emit(status: ProgressStatus, attempt: int, message: str) -> None:
            publish_safely(
                sink,
                ProgressEvent(
                    chunk_index=chunk_index,
                    total_chunks=total_chunks,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    status=status,
                    message=message,
                ),
            )

        retry_warnings: list[IngestError] = []
        last_exc: BaseException | None = None

        for attempt in range(1, max_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                _emit(ProgressStatus.CANCELLED, attempt, "Cancelled before attempt")
                return self.cancelled_result(chunk, chunk_index, attempts=attempt - 1)

            _emit(
                ProgressStatus.ATTEMPTING,
                attempt,
                f"Processing chunk {chunk_index + 1}/{total_chunks} "
                f"(rows {chunk.start_index}-{chunk.end_index})",
            )

            try:
                outcome = self._executor.execute(chunk, chunk_index=chunk_index)
            except Exception as exc:
                last_exc = exc
                if attempt < max_attempts:
                    delay = backoff_delay(
                        attempt,
                        self._config.backoff_base_seconds,
                        self._config.backoff_max_seconds,
                        self._config.backoff_jitter,
                    )
                    logger.warning(
                        "Chunk %d/%d failed (attempt %d/%d): %s. Retrying in %.1fs.",
                        chunk_index + 1,
                        total_chunks,
                        attempt,
                        max_attempts,
                        exc,
                        delay,
                    )
                    retry_warnings.append(
                        IngestError(
                            code=ErrorCode.W_LLM_RETRY,
                            message=(
                                f"Attempt {attempt}/{max_attempts} failed: {exc}"
                            ),
                            chunk_index=chunk_index,
                            stage="retry",
                            recoverable=True,
                        )
                    )
                    _emit(
                        ProgressStatus.RETRYING,
                        attempt,
                        f"Attempt {attempt} failed: {exc}. Retrying in {delay:.1f}s",
                    )
                    if self._wait(delay, cancel_event):
                        _emit(ProgressStatus.CANCELLED, attempt, "Cancelled during backoff")
                        return self.cancelled_result(chunk, chunk_index, attempts=attempt)
                    continue

                logger.error(
                    "Chunk %d/%d (rows %d-%d) failed after %d attempt(s): %s",
                    chunk_index + 1,
                    total_chunks,
                    chunk.start_index,
                    chunk.end_index,
                    max_attempts,
                    exc,
                )
                _emit(
                    ProgressStatus.FAILED,
                    attempt,
                    f"Failed after {max_attempts} attempt(s): {exc}",
                )
                break

            _emit(
                ProgressStatus.SUCCESS,
                attempt,
                f"Extracted {len(outcome.items)} item(s)",
            )
            return ChunkResult(
                success=True,
                chunk_index=chunk_index,
                data=outcome.items,
                start_index=chunk.start_index,
                end_index=chunk.end_index,
                row_count=chunk.row_count,
                attempts=attempt,
                provider=outcome.provider,
                model=outcome.model,
                errors=outcome.errors,
                warnings=[*retry_warnings, *outcome.warnings],
            )

        cause = last_exc if last_exc is not None else RuntimeError("no attempts made")
        return ChunkResult(
            success=False,
            chunk_index=chunk_index,
            data=None,
            error=f"Failed after {max_attempts} attempt(s): {cause}",
            error_code=ErrorCode.E_CHUNK_EXHAUSTED,
            start_index=chunk.start_index,
            end_index=chunk.end_index,
            row_count=chunk.row_count,
            attempts=max_attempts,
            errors=[
                IngestError(
                    code=error_code_for(cause),
                    message=str(cause),
                    chunk_index=chunk_index,
                    stage="execute",
                    recoverable=True,
                )
            ],
            warnings=retry_warnings,
        )

    @staticmethod
    def cancelled_result(chunk: Chunk, chunk_index: int, attempts: int = 0) -> ChunkResult:
        """Failed :class:`ChunkResult` for a chunk skipped by cancellation."""
        return ChunkResult(
            success=False,
            chunk_index=chunk_index,
            data=None,
            error="Extraction cancelled",
            error_code=ErrorCode.E_CANCELLED,
            start_index=chunk.start_index,
            end_index=chunk.end_index,
            row_count=chunk.row_count,
            attempts=attempts,
        )

    def _wait(self, delay: float, cancel_event: threading.Event | None) -> bool:
        """Sleep for *delay*; return True if cancelled meanwhile."""
        if cancel_event is not None:
            return cancel_event.wait(delay)
        if delay > 0:
            self._sleep(delay)
        return False
