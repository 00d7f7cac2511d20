"""General utility helpers shared across modules."""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .models import Point

# Numbers above this are millisecond epochs, at or below it second epochs.
MILLISECONDS_THRESHOLD = 10**12

_MILLIS_STRING = re.compile(r"^\d{13}$")
# Extended ISO-8601 forms that datetime.fromisoformat reads the same way on
# every supported Python version.
_EXTENDED_ISO = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d{3}(?:\d{3})?)?)?(?:[+-]\d{2}:\d{2})?)?$"
)


def now_ms() -> int:
    """Return the current time as integer epoch milliseconds."""

    return int(datetime.now(timezone.utc).timestamp() * 1000)


def coerce_timestamp_ms(value: Any) -> int:
    """Normalise a loosely typed timestamp into integer epoch milliseconds.

    Rules:
      - numbers greater than ``10**12`` are milliseconds, other numbers seconds;
      - strings of exactly 13 digits are milliseconds;
      - other strings must be extended ISO-8601 text: ``YYYY-MM-DD``
        optionally followed by ``T`` (or a space) and ``HH:MM[:SS[.fff[fff]]]``
        and a ``Z`` or ``+HH:MM`` offset. Naive text is taken as UTC.

    Raises:
        ValueError: For booleans, ``None``, non-finite numbers and text that
            cannot be parsed.
    """

    if value is None or isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"Non-finite timestamp: {value!r}")
        if value > MILLISECONDS_THRESHOLD:
            return int(round(value))
        return int(round(value * 1000))
    if isinstance(value, str):
        text = value.strip()
        if _MILLIS_STRING.match(text):
            return int(text)
        return epoch_ms_from_dt(_parse_iso(text))
    raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")


def _parse_iso(text: str) -> datetime:
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    if not _EXTENDED_ISO.match(candidate):
        raise ValueError(f"Cannot parse timestamp text: {text!r}")
    try:
        return datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError(f"Cannot parse timestamp text: {text!r}") from exc


def epoch_ms_from_dt(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are UTC)."""

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(round(dt.timestamp() * 1000))


def utc_from_ms(epoch_ms: int) -> datetime:
    """Return the timezone-aware UTC datetime for ``epoch_ms``."""

    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)


def iso_utc(epoch_ms: int) -> str:
    """Format epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""

    dt = utc_from_ms(epoch_ms)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Return ``value`` with all but the trailing ``visible`` chars masked."""

    if not value:
        return ""
    tail = value[-visible:] if visible > 0 else ""
    return f"****{tail}"


def format_point(point: "Point") -> str:
    """Render one queued point as a human readable line in local time."""

    local = utc_from_ms(point.timestamp).astimezone()
    line = (
        f"{local:%Y-%m-%d %H:%M:%S} - lat: {point.latitude:.5f}, "
        f"lon: {point.longitude:.5f}"
    )
    if point.accuracy is not None:
        line += f" (accuracy: {round(point.accuracy)}m)"
    return line


def json_dumps_compact(value: Any) -> str:
    """Return compact JSON used for persisted values."""

    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
