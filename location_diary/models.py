"""Data models for recorded locations and sync results."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from .utils import coerce_timestamp_ms

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .errors import SyncError


@dataclass(frozen=True)
class Point:
    """A single location observation.

    Attributes:
        timestamp: Unix epoch milliseconds (UTC) of the reading.
        latitude: Latitude in decimal degrees, [-90, 90].
        longitude: Longitude in decimal degrees, [-180, 180].
        accuracy: Sensor-reported radius in metres, or None when not reported.
    """

    timestamp: int
    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    def __post_init__(self) -> None:
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise ValueError(f"timestamp must be integer milliseconds: {self.timestamp!r}")
        _check_range("latitude", self.latitude, 90.0)
        _check_range("longitude", self.longitude, 180.0)
        if self.accuracy is not None:
            if not _is_number(self.accuracy) or not math.isfinite(self.accuracy):
                raise ValueError(f"accuracy must be a finite number: {self.accuracy!r}")
            if self.accuracy < 0:
                raise ValueError(f"accuracy must be non-negative: {self.accuracy!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Return the persisted representation (``accuracy`` omitted when absent)."""

        data: Dict[str, Any] = {
            "timestamp": self.timestamp,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
        if self.accuracy is not None:
            data["accuracy"] = self.accuracy
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Point":
        """Build a Point from persisted or legacy data.

        Accepts ``lat``/``lon`` aliases, coerces the timestamp and treats a
        ``null`` accuracy as absent.

        Raises:
            ValueError: If any field is missing or invalid.
        """

        latitude = data.get("latitude", data.get("lat"))
        longitude = data.get("longitude", data.get("lon"))
        if latitude is None or longitude is None:
            raise ValueError("latitude/longitude missing")
        accuracy = data.get("accuracy")
        return cls(
            timestamp=coerce_timestamp_ms(data.get("timestamp")),
            latitude=_to_float(latitude),
            longitude=_to_float(longitude),
            accuracy=None if accuracy is None else _to_float(accuracy),
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    return float(value)


def _check_range(name: str, value: Any, bound: float) -> None:
    if not _is_number(value) or not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number: {value!r}")
    if not -bound <= value <= bound:
        raise ValueError(f"{name} out of range [-{bound}, {bound}]: {value!r}")


class DeliveryMode(str, Enum):
    """How queued points are packaged into outbound requests."""

    SINGLE = "single"
    BATCH = "batch"
    SEQUENTIAL = "sequential"

    @classmethod
    def parse(cls, value: "DeliveryMode | str") -> "DeliveryMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown delivery mode {value!r} (expected {choices})") from None


@dataclass
class SyncOutcome:
    """Result of one sync attempt, aligned with the submitted points."""

    mode: DeliveryMode
    submitted: Tuple[Point, ...]
    delivered: Tuple[bool, ...]
    address: Optional[str] = None
    errors: List["SyncError"] = field(default_factory=list)
    response: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.submitted) != len(self.delivered):
            raise ValueError("delivered flags must align with submitted points")

    @property
    def delivered_points(self) -> List[Point]:
        return [p for p, ok in zip(self.submitted, self.delivered) if ok]

    @property
    def failed_points(self) -> List[Point]:
        return [p for p, ok in zip(self.submitted, self.delivered) if not ok]

    @property
    def delivered_count(self) -> int:
        return sum(1 for ok in self.delivered if ok)

    @property
    def failed_count(self) -> int:
        return len(self.delivered) - self.delivered_count

    @property
    def all_delivered(self) -> bool:
        return bool(self.delivered) and all(self.delivered)

    @property
    def any_delivered(self) -> bool:
        return any(self.delivered)

    @property
    def error(self) -> Optional["SyncError"]:
        """First error raised during the attempt, if any."""

        return self.errors[0] if self.errors else None
