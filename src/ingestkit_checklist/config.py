"""Configuration model for the ingestkit-checklist pipeline.

Provides ``ChecklistProcessorConfig`` with all tunable parameters and sensible
defaults.  The config is immutable once built and is passed explicitly into
the pipeline.  Supports loading overrides from YAML or JSON files via
``from_file()`` and from the process environment via ``from_env()``.
"""

from __future__ import annotations

import json
import os
import pathlib

from pydantic import BaseModel, ConfigDict, field_validator

from ingestkit_checklist.models import ModelTier, Provider

_DEFAULT_MODELS_BY_TIER: dict[Provider, dict[ModelTier, str]] = {
    Provider.ANTHROPIC: {
        ModelTier.SMALL: "claude-3-haiku-20240307",
        ModelTier.MEDIUM: "claude-3-sonnet-20240229",
        ModelTier.LARGE: "claude-3-opus-20240229",
    },
    Provider.OPENAI: {
        ModelTier.SMALL: "gpt-3.5-turbo",
        ModelTier.MEDIUM: "gpt-4",
        ModelTier.LARGE: "gpt-4-turbo",
    },
}

# Sheet-text budgets of 800, 1500 and 3000 tokens at 3.5 chars per token.
_DEFAULT_MAX_CHARS_PER_CHUNK: dict[str, int] = {
    "claude-3-haiku-20240307": 2_800,
    "claude-3-sonnet-20240229": 5_250,
    "claude-3-opus-20240229": 10_500,
    "gpt-3.5-turbo": 2_800,
    "gpt-4": 5_250,
    "gpt-4-turbo": 10_500,
}

# AI_PROVIDER values accepted by from_env()
_PROVIDER_ALIASES: dict[str, list[Provider]] = {
    "claude": [Provider.ANTHROPIC],
    "anthropic": [Provider.ANTHROPIC],
    "openai": [Provider.OPENAI],
    "both": [Provider.ANTHROPIC, Provider.OPENAI],
}


class ChecklistProcessorConfig(BaseModel):
    """All tunable parameters with sensible defaults.

    ``providers`` is ordered by preference: the first entry is the primary
    provider and the second, if present, is the fallback.
    """

    model_config = ConfigDict(frozen=True)

    # --- Identity ---
    parser_version: str = "ingestkit_checklist:1.0.0"

    # --- Providers and models ---
    providers: list[Provider] = [Provider.ANTHROPIC]
    models_by_tier: dict[Provider, dict[ModelTier, str]] = _DEFAULT_MODELS_BY_TIER
    tier_small_max_chars: int = 12_000
    tier_medium_max_chars: int = 24_000

    # --- Chunking ---
    max_chars_per_chunk: dict[str, int] = _DEFAULT_MAX_CHARS_PER_CHUNK
    default_max_chars_per_chunk: int = 2_800
    min_rows_per_chunk: int = 5
    small_dataset_max_rows: int = 20
    small_dataset_size_tolerance: float = 1.25

    # --- Size estimation ---
    prompt_overhead_chars: int = 2_000
    model_overhead_chars: dict[str, int] = {}
    chars_per_token: float = 3.5

    # --- Retry / backoff ---
    max_retries: int = 2
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 30.0
    backoff_jitter: bool = False

    # --- LLM call settings ---
    backend_timeout_seconds: float = 60.0
    llm_temperature: float = 0.1
    llm_max_tokens: int = 4_000

    # --- Logging / PII safety ---
    log_llm_prompts: bool = False
    redact_patterns: list[str] = []

    @field_validator("providers")
    @classmethod
    def _unique_providers(cls, value: list[Provider]) -> list[Provider]:
        if len(set(value)) != len(value):
            raise ValueError(f"providers must not repeat: {value}")
        return value

    @field_validator("min_rows_per_chunk")
    @classmethod
    def _positive_min_rows(cls, value: int) -> int:
        if value < 1:
            raise ValueError("min_rows_per_chunk must be >= 1")
        return value

    def model_for(self, provider: Provider, tier: ModelTier) -> str:
        """Return the model name configured for *provider* at *tier*."""
        return self.models_by_tier[provider][tier]

    def chunk_budget_for(self, model: str) -> int:
        """Return the per-chunk budget for *model* in characters of sheet text.

        The fixed prompt overhead is not included.
        """
        return self.max_chars_per_chunk.get(model, self.default_max_chars_per_chunk)

    @classmethod
    def from_file(cls, path: str) -> ChecklistProcessorConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Keys present in the file override the
        corresponding defaults; keys not present retain their defaults.

        Args:
            path: Filesystem path to the configuration file.

        Returns:
            A fully-populated ``ChecklistProcessorConfig`` instance.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file extension is not recognized.
        """
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            import yaml

            with open(file_path) as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path) as fh:
                data = json.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)

    @classmethod
    def from_env(cls, **overrides: object) -> ChecklistProcessorConfig:
        """Build a config from ``AI_PROVIDER``, ``CLAUDE_MODEL`` and ``OPENAI_MODEL``.

        ``AI_PROVIDER`` accepts ``claude``, ``openai`` or ``both`` (default
        ``claude``).  A model variable, when set, pins every tier of that
        provider to the named model.  Explicit keyword *overrides* win over
        the environment.

        Raises:
            ValueError: If ``AI_PROVIDER`` holds an unknown value.
        """
        raw_provider = os.getenv("AI_PROVIDER", "claude").strip().lower()
        if raw_provider not in _PROVIDER_ALIASES:
            raise ValueError(
                f"AI_PROVIDER '{raw_provider}' is not valid. "
                f"Allowed values: {sorted(_PROVIDER_ALIASES)}."
            )

        models_by_tier = {
            provider: dict(tiers) for provider, tiers in _DEFAULT_MODELS_BY_TIER.items()
        }
        for provider, env_var in (
            (Provider.ANTHROPIC, "CLAUDE_MODEL"),
            (Provider.OPENAI, "OPENAI_MODEL"),
        ):
            pinned = os.getenv(env_var)
            if pinned:
                models_by_tier[provider] = {tier: pinned for tier in ModelTier}

        data: dict[str, object] = {
            "providers": _PROVIDER_ALIASES[raw_provider],
            "models_by_tier": models_by_tier,
        }
        data.update(overrides)
        return cls(**data)
