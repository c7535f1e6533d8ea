"""Single-chunk execution against an LLM provider, with provider fallback.

Sends one chunk's header+rows text to the selected provider, parses the reply
into a tagged result, and validates the items.  When the primary call fails
and an alternate provider is configured, exactly one fallback call is made.

The executor does NOT retry -- temporal retry with backoff is the
responsibility of :class:`~ingestkit_checklist.retry.RetryCoordinator`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from ingestkit_checklist.config import ChecklistProcessorConfig
from ingestkit_checklist.errors import (
    ErrorCode,
    ExtractionFailure,
    IngestError,
    ProviderUnavailable,
    error_code_for,
)
from ingestkit_checklist.models import Chunk, ExecutionOutcome, Provider
from ingestkit_checklist.prompts import build_system_prompt, build_user_message
from ingestkit_checklist.protocols import LLMBackend
from ingestkit_checklist.provider_selector import ProviderSelector
from ingestkit_checklist.response_parser import parse_response, require_items
from ingestkit_checklist.validator import ItemValidator

logger = logging.getLogger("ingestkit_checklist")


class ChunkExecutor:
    """Run one chunk through a provider and return validated items.

    Parameters
    ----------
    backends:
        Initialized provider clients keyed by :class:`Provider`.  Providers
        listed in the config but missing here are treated as unavailable.
    config:
        Pipeline configuration.
    """

    def __init__(
        self,
        backends: Mapping[Provider, LLMBackend],
        config: ChecklistProcessorConfig,
        selector: ProviderSelector | None = None,
        validator: ItemValidator | None = None,
    ) -> None:
        self._backends = dict(backends)
        self._config = config
        self._selector = selector or ProviderSelector(config)
        self._validator = validator or ItemValidator()
        self._system_prompt = build_system_prompt()

    @property
    def available_providers(self) -> list[Provider]:
        """Configured providers that have a backend, in preference order."""
        return [p for p in self._config.providers if p in self._backends]

    def execute(self, chunk: Chunk, chunk_index: int | None = None) -> ExecutionOutcome:
        """Extract checklist items from *chunk*.

        Raises:
            ProviderUnavailable: If no configured provider has a backend.
            ExtractionFailure: If the provider (and fallback, if any) failed or
                returned a malformed response.
        """
        providers = self.available_providers
        if not providers:
            raise ProviderUnavailable(
                "No AI provider available. Configure an API key for "
                f"one of {[p.value for p in self._config.providers]}."
            )

        primary, model = self._selector.select(chunk.estimated_size, providers)
        try:
            return self._call(primary, model, chunk, chunk_index)
        except Exception as primary_exc:
            fallback = self._selector.fallback_for(primary, providers)
            if fallback is None:
                if isinstance(primary_exc, ExtractionFailure):
                    raise
                raise ExtractionFailure(
                    f"{primary.value} processing failed: {primary_exc}",
                    code=error_code_for(primary_exc),
                ) from primary_exc

            fallback_model = self._selector.model_for(fallback, chunk.estimated_size)
            logger.warning(
                "Chunk %s: %s (%s) failed (%s), falling back to %s (%s).",
                chunk_index,
                primary.value,
                model,
                primary_exc,
                fallback.value,
                fallback_model,
            )
            try:
                outcome = self._call(fallback, fallback_model, chunk, chunk_index)
            except Exception as fallback_exc:
                raise ExtractionFailure(
                    f"Both AI providers failed. {primary.value}: {primary_exc}, "
                    f"{fallback.value}: {fallback_exc}",
                    code=error_code_for(fallback_exc),
                ) from fallback_exc

            fallback_warning = IngestError(
                code=ErrorCode.W_PROVIDER_FALLBACK,
                message=f"{primary.value} failed ({primary_exc}); used {fallback.value}",
                chunk_index=chunk_index,
                stage="execute",
                recoverable=True,
            )
            return outcome.model_copy(
                update={
                    "fell_back": True,
                    "warnings": [fallback_warning, *outcome.warnings],
                }
            )

    # -- internal helpers ----------------------------------------------------

    def _call(
        self,
        provider: Provider,
        model: str,
        chunk: Chunk,
        chunk_index: int | None,
    ) -> ExecutionOutcome:
        backend = self._backends[provider]
        prompt = build_user_message(chunk.text)

        text = backend.complete(
            prompt=prompt,
            model=model,
            system=self._system_prompt,
            temperature=self._config.llm_temperature,
            max_tokens=self._config.llm_max_tokens,
            timeout=self._config.backend_timeout_seconds,
        )

        if self._config.log_llm_prompts:
            logger.debug("LLM prompt:\n%s", self._redact(prompt))
            logger.debug("LLM response: %s", self._redact(text))

        raw_items = require_items(parse_response(text))
        report = self._validator.validate(raw_items, chunk_index=chunk_index)

        logger.info(
            "Chunk %s: %s (%s) returned %d item(s) for %d row(s).",
            chunk_index,
            provider.value,
            model,
            len(report.items),
            chunk.row_count,
        )
        return ExecutionOutcome(
            items=report.items,
            errors=report.errors,
            warnings=report.warnings,
            provider=provider,
            model=model,
        )

    def _redact(self, text: str) -> str:
        result = text
        for pattern in self._config.redact_patterns:
            result = re.sub(pattern, "[REDACTED]", result)
        return result
