"""Hosted LLM backends for ingestkit-checklist.

Both backends talk to their provider over ``httpx`` and make exactly one
request per call; retries and provider fallback live in the pipeline.
"""

from __future__ import annotations

from ingestkit_checklist.backends.anthropic import AnthropicLLM
from ingestkit_checklist.backends.openai import OpenAILLM

__all__ = [
    "AnthropicLLM",
    "OpenAILLM",
]
