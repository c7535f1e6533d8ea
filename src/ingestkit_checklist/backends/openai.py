"""OpenAI Chat Completions backend for the LLMBackend protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ingestkit_checklist.backends._http import post_json

if TYPE_CHECKING:
    from ingestkit_checklist.config import ChecklistProcessorConfig


class OpenAILLM:
    """OpenAI chat models via ``POST /v1/chat/completions``.

    Requests ``response_format={"type": "json_object"}``, so the model replies
    with a JSON object (typically ``{"checklist": [...]}``) rather than a bare
    array.  The response parser accepts both shapes.

    Parameters
    ----------
    api_key:
        OpenAI API key, sent as a bearer token.
    base_url:
        API base URL.
    config:
        Pipeline configuration providing the default timeout.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com",
        config: ChecklistProcessorConfig | None = None,
        json_mode: bool = True,
    ) -> None:
        try:
            import httpx  # noqa: F401
        except ImportError as exc:
            raise ImportError(
                "httpx is required for OpenAILLM. "
                "Install it with: pip install httpx"
            ) from exc

        from ingestkit_checklist.config import ChecklistProcessorConfig

        if not api_key:
            raise ValueError("OpenAILLM requires a non-empty api_key")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._config = config or ChecklistProcessorConfig()
        self._json_mode = json_mode

    def complete(
        self,
        prompt: str,
        model: str,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4000,
        timeout: float | None = None,
    ) -> str:
        """Send a chat completion and return the first choice's content."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: dict = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self._json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = post_json(
            f"{self._base_url}/v1/chat/completions",
            payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=timeout or self._config.backend_timeout_seconds,
            provider_name="OpenAI",
        )

        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""
