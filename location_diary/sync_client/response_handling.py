"""Shared HTTP response helpers for diary uploads."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

import requests

from ..errors import HttpStatusError, MalformedResponseError

RequestsJSONDecodeError: Type[Exception]
if hasattr(requests.exceptions, "JSONDecodeError"):
    RequestsJSONDecodeError = requests.exceptions.JSONDecodeError
else:  # pragma: no cover - fallback for old requests versions
    RequestsJSONDecodeError = ValueError

LOGGER = logging.getLogger(__name__)

_NO_BODY = object()

__all__ = [
    "parse_response",
    "extract_error",
]


def parse_response(response: requests.Response, context: str) -> Dict[str, Any]:
    """Return the JSON object of a 2xx response, raising for anything else.

    A 2xx response without a body, or with a body that is not JSON, counts as
    an empty success payload.

    Raises:
        HttpStatusError: For any non-2xx status, whatever the body holds.
        MalformedResponseError: For a 2xx body that is JSON but not an object.
    """

    status = response.status_code
    if not 200 <= status < 300:
        detail = extract_error(response)
        LOGGER.error(
            "%s failed status=%s%s", context, status, f" detail={detail}" if detail else ""
        )
        raise HttpStatusError(status, detail)

    data = _safe_json(response)
    if data is _NO_BODY or data is None:
        return {}
    if not isinstance(data, dict):
        LOGGER.error(
            "%s returned unexpected JSON shape: %s", context, type(data).__name__
        )
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(data).__name__}"
        )
    return data


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return compact error text (JSON message or trimmed body) if present."""

    if resp is None:
        return None
    data = _safe_json(resp)
    if isinstance(data, dict):
        for key in ("message", "error", "errorMessage"):
            value = data.get(key)
            if value:
                return str(value)
    return _extract_error_text(resp)


def _safe_json(resp: requests.Response) -> Any:
    """Parse JSON, returning ``_NO_BODY`` when absent or undecodable."""

    if not getattr(resp, "content", b""):
        return _NO_BODY
    try:
        return resp.json()
    except (ValueError, RequestsJSONDecodeError) as exc:
        LOGGER.debug("Failed to decode JSON from %s: %s", getattr(resp, "url", "?"), exc)
        return _NO_BODY


def _extract_error_text(resp: requests.Response) -> Optional[str]:
    text = getattr(resp, "text", "")
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    return (trimmed[:297] + "...") if len(trimmed) > 300 else trimmed
