"""Deterministic provider and model-tier selection.

Maps a chunk's estimated size onto one of three tiers and names the model
configured for that tier.  Selection is tier-only: switching providers after
a failure is the executor's job.
"""

from __future__ import annotations

from collections.abc import Sequence

from ingestkit_checklist.config import ChecklistProcessorConfig
from ingestkit_checklist.errors import ProviderUnavailable
from ingestkit_checklist.models import ModelTier, Provider


class ProviderSelector:
    """Pick ``(provider, model)`` for a chunk."""

    def __init__(self, config: ChecklistProcessorConfig) -> None:
        self._config = config

    def tier_for(self, estimated_size: int) -> ModelTier:
        if estimated_size <= self._config.tier_small_max_chars:
            return ModelTier.SMALL
        if estimated_size <= self._config.tier_medium_max_chars:
            return ModelTier.MEDIUM
        return ModelTier.LARGE

    def select(
        self,
        estimated_size: int,
        providers: Sequence[Provider] | None = None,
    ) -> tuple[Provider, str]:
        """Return the primary provider and the model for *estimated_size*.

        Raises:
            ProviderUnavailable: If no provider is configured.
        """
        candidates = list(providers if providers is not None else self._config.providers)
        if not candidates:
            raise ProviderUnavailable("No LLM provider is configured.")
        provider = candidates[0]
        return provider, self.model_for(provider, estimated_size)

    def model_for(self, provider: Provider, estimated_size: int) -> str:
        return self._config.model_for(provider, self.tier_for(estimated_size))

    @staticmethod
    def fallback_for(
        provider: Provider,
        providers: Sequence[Provider],
    ) -> Provider | None:
        """Return the alternate configured provider, or *None*."""
        for candidate in providers:
            if candidate != provider:
                return candidate
        return None
