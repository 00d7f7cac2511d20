"""Wire shapes for diary uploads."""

from __future__ import annotations

from typing import Any, Dict, Sequence

from ..models import Point
from ..utils import iso_utc

__all__ = ["single_body", "batch_body", "batch_location"]


def single_body(device_id: str, point: Point) -> Dict[str, Any]:
    """Legacy one-point body: ``{deviceId, timestamp(ms), latitude, longitude, accuracy?}``."""

    body: Dict[str, Any] = {"deviceId": device_id}
    body.update(point.to_dict())
    return body


def batch_location(point: Point) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "lat": point.latitude,
        "lon": point.longitude,
        "timestamp": iso_utc(point.timestamp),
    }
    if point.accuracy is not None:
        entry["accuracy"] = point.accuracy
    return entry


def batch_body(
    device_id: str, points: Sequence[Point], created_at_ms: int
) -> Dict[str, Any]:
    """Diary envelope: ``{deviceId, diaryCreatedAt, locations: [...]}``."""

    return {
        "deviceId": device_id,
        "diaryCreatedAt": iso_utc(created_at_ms),
        "locations": [batch_location(p) for p in points],
    }
