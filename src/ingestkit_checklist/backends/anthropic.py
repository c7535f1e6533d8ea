"""Anthropic Messages API backend for the LLMBackend protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ingestkit_checklist.backends._http import post_json

if TYPE_CHECKING:
    from ingestkit_checklist.config import ChecklistProcessorConfig

ANTHROPIC_API_VERSION = "2023-06-01"


class AnthropicLLM:
    """Claude models via ``POST /v1/messages``.

    Satisfies :class:`~ingestkit_checklist.protocols.LLMBackend` via
    structural subtyping (no inheritance required).

    Parameters
    ----------
    api_key:
        Anthropic API key, sent as ``x-api-key``.
    base_url:
        API base URL.
    config:
        Pipeline configuration providing the default timeout.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.anthropic.com",
        config: ChecklistProcessorConfig | None = None,
    ) -> None:
        try:
            import httpx  # noqa: F401
        except ImportError as exc:
            raise ImportError(
                "httpx is required for AnthropicLLM. "
                "Install it with: pip install httpx"
            ) from exc

        from ingestkit_checklist.config import ChecklistProcessorConfig

        if not api_key:
            raise ValueError("AnthropicLLM requires a non-empty api_key")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._config = config or ChecklistProcessorConfig()

    def complete(
        self,
        prompt: str,
        model: str,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4000,
        timeout: float | None = None,
    ) -> str:
        """Send a single-turn message and return the first text block."""
        payload: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        data = post_json(
            f"{self._base_url}/v1/messages",
            payload,
            headers={
                "x-api-key": self._api_key,
                "anthropic-version": ANTHROPIC_API_VERSION,
                "content-type": "application/json",
            },
            timeout=timeout or self._config.backend_timeout_seconds,
            provider_name="Anthropic",
        )

        for block in data.get("content") or []:
            if block.get("type") == "text":
                return block.get("text", "")
        return ""
