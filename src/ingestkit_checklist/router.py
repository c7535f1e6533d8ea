"""ChecklistRouter -- orchestrator and public API for ingestkit-checklist.

Drives a header plus data rows through the extraction pipeline:

1. Reject empty input and the no-provider configuration up front.
2. Take the per-chunk budget of the primary provider's small-tier model,
   so chunk size does not grow with the input.
3. Split the rows with :class:`RowChunker`.
4. Fold the chunks through :class:`SequentialScheduler`, which wraps every
   chunk in :class:`RetryCoordinator` around :class:`ChunkExecutor`.
5. Merge per-chunk results with :func:`merge_results` into an
   :class:`ExtractionResult`.

A chunk that exhausts its retries never aborts the run: its rows are
reported as a :class:`ChunkFailure` and the result is marked partial.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Mapping, Sequence
from typing import Any, Callable

from ingestkit_checklist.chunker import RowChunker
from ingestkit_checklist.config import ChecklistProcessorConfig
from ingestkit_checklist.errors import EmptyInput, ProviderUnavailable
from ingestkit_checklist.estimator import SizeEstimator
from ingestkit_checklist.executor import ChunkExecutor
from ingestkit_checklist.extractor import extract_rows
from ingestkit_checklist.merger import merge_results
from ingestkit_checklist.models import ExtractionResult, ModelTier, Provider
from ingestkit_checklist.progress import ProgressBroadcaster
from ingestkit_checklist.protocols import LLMBackend, ProgressSink
from ingestkit_checklist.provider_selector import ProviderSelector
from ingestkit_checklist.retry import RetryCoordinator
from ingestkit_checklist.scheduler import SequentialScheduler

logger = logging.getLogger("ingestkit_checklist")


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class ChecklistRouter:
    """Orchestrator that turns spreadsheet rows into checklist items.

    Builds all internal components from the injected backends and config, then
    exposes :meth:`extract` and :meth:`process` as the public API.

    Parameters
    ----------
    backends:
        Initialized LLM clients keyed by :class:`Provider`.  A provider listed
        in ``config.providers`` without a backend is unavailable.
    config:
        Pipeline configuration. Uses defaults when *None*.
    sleep:
        Blocking sleep used for retry backoff when no cancel event is given.
    """

    def __init__(
        self,
        backends: Mapping[Provider, LLMBackend],
        config: ChecklistProcessorConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config or ChecklistProcessorConfig()
        self._backends = dict(backends)

        self._estimator = SizeEstimator(self._config)
        self._chunker = RowChunker(self._config, self._estimator)
        self._selector = ProviderSelector(self._config)
        self._executor = ChunkExecutor(
            self._backends, self._config, selector=self._selector
        )
        self._coordinator = RetryCoordinator(self._executor, self._config, sleep=sleep)
        self._scheduler = SequentialScheduler(self._coordinator)

        self.progress = ProgressBroadcaster()

    @property
    def config(self) -> ChecklistProcessorConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(
        self,
        header: str,
        data_rows: Sequence[str],
        sink: ProgressSink | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ExtractionResult:
        """Extract checklist items from *header* and *data_rows*.

        Progress events go to *sink* when given, otherwise to
        :attr:`progress`.

        Raises
        ------
        EmptyInput
            If *data_rows* is empty.
        ProviderUnavailable
            If no configured provider has a backend.
        """
        start = time.monotonic()
        config = self._config

        if not data_rows:
            raise EmptyInput("No data rows to extract checklist items from.")

        providers = self._executor.available_providers
        if not providers:
            raise ProviderUnavailable(
                "No AI provider available. Configure an API key for "
                f"one of {[p.value for p in config.providers]}."
            )

        # ----------------------------------------------------------
        # Step 1: Chunk plan
        # ----------------------------------------------------------
        planning_model = config.model_for(providers[0], ModelTier.SMALL)
        budget = config.chunk_budget_for(planning_model)
        overhead = self._estimator.overhead(planning_model)
        chunks = self._chunker.chunk(
            header,
            data_rows,
            max_chars_per_chunk=budget + overhead,
            min_rows_per_chunk=config.min_rows_per_chunk,
            model=planning_model,
        )
        largest_tokens = max(
            self._estimator.estimate_tokens(c.estimated_size - overhead)
            for c in chunks
        )
        logger.info(
            "Extracting %d row(s) in %d chunk(s) (budget %d chars, largest ~%d tokens, primary %s).",
            len(data_rows),
            len(chunks),
            budget,
            largest_tokens,
            providers[0].value,
        )
        if largest_tokens > config.llm_max_tokens:
            logger.warning(
                "Largest chunk holds ~%d tokens of sheet text, above llm_max_tokens=%d; "
                "responses may be truncated.",
                largest_tokens,
                config.llm_max_tokens,
            )

        # ----------------------------------------------------------
        # Step 2: Process chunks in order
        # ----------------------------------------------------------
        results = self._scheduler.run_all(
            chunks,
            sink=sink if sink is not None else self.progress,
            cancel_event=cancel_event,
        )

        # ----------------------------------------------------------
        # Step 3: Merge
        # ----------------------------------------------------------
        merged = merge_results(results)
        elapsed = time.monotonic() - start
        succeeded = sum(1 for r in results if r.success)

        if merged.failures:
            logger.warning(
                "Extraction partial: %d/%d chunk(s) failed, rows lost: %s.",
                len(merged.failures),
                len(chunks),
                ", ".join(
                    f"{f.start_index}-{f.end_index}" for f in merged.failures
                ),
            )
        logger.info(
            "Extracted %d item(s) from %d row(s) in %.2fs (%d/%d chunk(s) succeeded).",
            len(merged.items),
            len(data_rows),
            elapsed,
            succeeded,
            len(chunks),
        )

        return ExtractionResult(
            items=merged.items,
            failures=merged.failures,
            errors=merged.errors,
            warnings=merged.warnings,
            total_rows=len(data_rows),
            total_chunks=len(chunks),
            succeeded_chunks=succeeded,
            processing_time_seconds=elapsed,
        )

    def process(
        self,
        file_path: str,
        sink: ProgressSink | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ExtractionResult:
        """Read the first sheet of *file_path* and extract its checklist.

        Raises
        ------
        FileNotFoundError
            If *file_path* does not exist.
        SpreadsheetReadError
            If the workbook is corrupt or empty.
        EmptyInput
            If the sheet holds a header but no data rows.
        """
        sheet = extract_rows(file_path)
        logger.info(
            "Processing %s: %d data row(s).",
            os.path.basename(file_path),
            len(sheet.data_rows),
        )
        result = self.extract(
            sheet.header, sheet.data_rows, sink=sink, cancel_event=cancel_event
        )
        if not sheet.warnings:
            return result
        return result.model_copy(
            update={"warnings": [*sheet.warnings, *result.warnings]}
        )

    def status(self) -> dict[str, Any]:
        """Report configured providers, their models and backend availability."""
        available = self._executor.available_providers
        return {
            "providers": [
                {
                    "provider": provider.value,
                    "available": provider in self._backends,
                    "primary": bool(available) and provider == available[0],
                    "models": {
                        tier.value: self._config.model_for(provider, tier)
                        for tier in ModelTier
                    },
                }
                for provider in self._config.providers
            ],
            "ready": bool(available),
            "max_retries": self._config.max_retries,
        }


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_default_router(**overrides: Any) -> ChecklistRouter:
    """Create a ChecklistRouter with httpx-backed Anthropic and OpenAI clients.

    The config comes from :meth:`ChecklistProcessorConfig.from_env` unless a
    ``config`` keyword is given.  Backends are built for each configured
    provider whose API key is set (``ANTHROPIC_API_KEY``, ``OPENAI_API_KEY``).
    Recognized keywords:

    - ``config``: ChecklistProcessorConfig
    - ``backends``: mapping of Provider to LLMBackend (skips env lookup)
    - ``sleep``: backoff sleep function

    Any other keyword arguments are passed to the config.
    """
    from ingestkit_checklist.backends import AnthropicLLM, OpenAILLM

    router_keys = {"config", "backends", "sleep"}
    router_kwargs = {k: v for k, v in overrides.items() if k in router_keys}
    config_kwargs = {k: v for k, v in overrides.items() if k not in router_keys}

    config = router_kwargs.pop("config", None)
    if config is None:
        config = ChecklistProcessorConfig.from_env(**config_kwargs)

    backends = router_kwargs.pop("backends", None)
    if backends is None:
        backends = {}
        anthropic_key = os.getenv("ANTHROPIC_API_KEY")
        openai_key = os.getenv("OPENAI_API_KEY")
        if Provider.ANTHROPIC in config.providers and anthropic_key:
            backends[Provider.ANTHROPIC] = AnthropicLLM(anthropic_key, config=config)
        if Provider.OPENAI in config.providers and openai_key:
            backends[Provider.OPENAI] = OpenAILLM(openai_key, config=config)

    for provider in config.providers:
        if provider not in backends:
            logger.warning(
                "No backend for configured provider %s; it will be skipped.",
                provider.value,
            )

    return ChecklistRouter(backends=backends, config=config, **router_kwargs)
