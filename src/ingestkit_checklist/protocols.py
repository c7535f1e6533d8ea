"""Backend protocols for the ingestkit-checklist pipeline.

Defines the structural-subtyping interfaces the orchestrator depends on.  Both
protocols are ``@runtime_checkable`` so callers can optionally verify
conformance with ``isinstance`` checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ingestkit_checklist.models import ProgressEvent


@runtime_checkable
class LLMBackend(Protocol):
    """Interface for LLM providers (e.g. Anthropic, OpenAI)."""

    def complete(
        self,
        prompt: str,
        model: str,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4000,
        timeout: float | None = None,
    ) -> str:
        """Send a prompt and return the raw text of the model's reply."""
        ...


@runtime_checkable
class ProgressSink(Protocol):
    """Anything that can receive progress events."""

    def publish(self, event: ProgressEvent) -> None:
        """Deliver one event. Must not raise for delivery problems."""
        ...
