"""Shared single-attempt JSON POST helper for the hosted LLM backends."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("ingestkit_checklist")


def post_json(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
    provider_name: str,
) -> dict[str, Any]:
    """POST *payload* to *url* once and return the decoded JSON body.

    Transport failures are mapped onto builtin exceptions so callers do not
    depend on httpx:

    - ``httpx.TimeoutException`` -> ``TimeoutError``
    - ``httpx.HTTPStatusError`` -> ``ConnectionError``
    - any other ``httpx.TransportError`` (connect, read, protocol) ->
      ``ConnectionError``

    Retrying is left to the caller.
    """
    import httpx

    try:
        response = httpx.post(url, json=payload, headers=headers, timeout=timeout)
        response.raise_for_status()
        return response.json()
    except httpx.TimeoutException as exc:
        logger.warning("%s request timed out after %.1fs", provider_name, timeout)
        raise TimeoutError(f"{provider_name} request timed out: {exc}") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "%s request failed with HTTP %d",
            provider_name,
            exc.response.status_code,
        )
        raise ConnectionError(
            f"{provider_name} returned HTTP {exc.response.status_code}: {exc}"
        ) from exc
    except httpx.TransportError as exc:
        logger.warning("%s transport failed: %s", provider_name, type(exc).__name__)
        raise ConnectionError(f"{provider_name} connection failed: {exc}") from exc
