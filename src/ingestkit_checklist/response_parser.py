"""Shape-checked parsing of provider responses.

The raw text returned by a provider is classified into one of three tagged
results before anything downstream trusts it:

- ``ParsedArray``: the body is a JSON array.
- ``ParsedWrapped``: the body is a JSON object holding an array under one of
  the known wrapper keys.
- ``Malformed``: anything else (invalid JSON, scalar, object without a known
  array key).
"""

from __future__ import annotations

import json
import re
from typing import Any, Literal, Union

from pydantic import BaseModel

from ingestkit_checklist.errors import ErrorCode, MalformedResponse

WRAPPER_KEYS: tuple[str, ...] = ("checklist", "items")

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


class ParsedArray(BaseModel):
    kind: Literal["array"] = "array"
    items: list[Any]


class ParsedWrapped(BaseModel):
    kind: Literal["wrapped"] = "wrapped"
    key: str
    items: list[Any]


class Malformed(BaseModel):
    kind: Literal["malformed"] = "malformed"
    reason: str
    code: ErrorCode = ErrorCode.E_LLM_MALFORMED_JSON


ParsedResponse = Union[ParsedArray, ParsedWrapped, Malformed]


def _strip_code_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def parse_response(text: str) -> ParsedResponse:
    """Classify raw provider *text* into a tagged parse result."""
    cleaned = _strip_code_fence((text or "").strip())
    if not cleaned:
        return Malformed(reason="Provider returned an empty response")

    try:
        body = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        return Malformed(reason=f"Provider returned unparseable JSON: {exc}")

    if isinstance(body, list):
        return ParsedArray(items=body)

    if isinstance(body, dict):
        for key in WRAPPER_KEYS:
            if isinstance(body.get(key), list):
                return ParsedWrapped(key=key, items=body[key])
        return Malformed(
            reason=(
                "Provider returned an object without an array under any of "
                f"{list(WRAPPER_KEYS)} (keys: {sorted(body)[:10]})"
            ),
            code=ErrorCode.E_LLM_SCHEMA_INVALID,
        )

    return Malformed(
        reason=f"Provider returned a JSON {type(body).__name__}, expected an array",
        code=ErrorCode.E_LLM_SCHEMA_INVALID,
    )


def require_items(parsed: ParsedResponse) -> list[Any]:
    """Return the item list from *parsed*, raising for a malformed result.

    Raises:
        MalformedResponse: If *parsed* is :class:`Malformed`.
    """
    if isinstance(parsed, Malformed):
        raise MalformedResponse(parsed.reason, code=parsed.code)
    return parsed.items
