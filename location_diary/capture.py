"""Acquire one location reading and turn it into a validated :class:`Point`.

Providers wrap a platform location source behind a blocking
``request_position`` call and report failures with the platform's numeric
error codes; :class:`LocationCapture` maps those codes onto the capture error
taxonomy and stamps the reading with the capture time.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from .config import (
    CAPTURE_HIGH_ACCURACY,
    CAPTURE_MAXIMUM_AGE_SECONDS,
    CAPTURE_TIMEOUT_SECONDS,
)
from .errors import (
    CaptureError,
    CaptureTimeoutError,
    PermissionDeniedError,
    PositionUnavailableError,
    UnsupportedError,
)
from .models import Point
from .utils import now_ms

LOGGER = logging.getLogger(__name__)


class PositionError(Exception):
    """Raised by providers with a platform error code."""

    UNSUPPORTED = 0
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3

    def __init__(self, code: int, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"code={code} {message}".strip())


@dataclass(frozen=True)
class SensorReading:
    """Raw reading as reported by a provider."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    # Sensor-side timestamp (ms); informational only.
    taken_at: Optional[int] = None


class LocationProvider(Protocol):
    def is_available(self) -> bool: ...

    def request_position(
        self,
        *,
        timeout: float,
        maximum_age: float,
        high_accuracy: bool,
    ) -> SensorReading: ...


class StaticLocationProvider:
    """Provider returning a fixed reading (manual entry and tests)."""

    def __init__(
        self, latitude: float, longitude: float, accuracy: Optional[float] = None
    ) -> None:
        self._reading = SensorReading(
            latitude=latitude, longitude=longitude, accuracy=accuracy
        )

    def is_available(self) -> bool:
        return True

    def request_position(
        self,
        *,
        timeout: float,
        maximum_age: float,
        high_accuracy: bool,
    ) -> SensorReading:
        return self._reading


class CaptureState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_ERRORS_BY_CODE: dict[int, type[CaptureError]] = {
    PositionError.UNSUPPORTED: UnsupportedError,
    PositionError.PERMISSION_DENIED: PermissionDeniedError,
    PositionError.POSITION_UNAVAILABLE: PositionUnavailableError,
    PositionError.TIMEOUT: CaptureTimeoutError,
}


class LocationCapture:
    """Request one fresh reading per call and build a :class:`Point` from it."""

    def __init__(
        self,
        provider: LocationProvider,
        *,
        timeout: float = CAPTURE_TIMEOUT_SECONDS,
        maximum_age: float = CAPTURE_MAXIMUM_AGE_SECONDS,
        high_accuracy: bool = CAPTURE_HIGH_ACCURACY,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._provider = provider
        self._timeout = timeout
        self._maximum_age = maximum_age
        self._high_accuracy = high_accuracy
        self._clock = clock
        self.state = CaptureState.IDLE
        self.last_state: Optional[CaptureState] = None

    def capture(self) -> Point:
        """Block until the provider answers or the timeout elapses.

        Returns:
            A Point stamped with the capture time.

        Raises:
            CaptureError: ``UnsupportedError`` when the provider has no location
                capability, otherwise the error matching the provider's code.
        """

        if not self._provider.is_available():
            self.last_state = CaptureState.FAILED
            LOGGER.warning("Location capture unsupported by %s", type(self._provider).__name__)
            raise UnsupportedError()

        self.state = CaptureState.REQUESTING
        try:
            point = self._request()
        except CaptureError as exc:
            self.last_state = CaptureState.FAILED
            LOGGER.warning("Location capture failed: %s", exc)
            raise
        finally:
            self.state = CaptureState.IDLE
        self.last_state = CaptureState.SUCCEEDED
        LOGGER.info(
            "Captured location lat=%.5f lon=%.5f accuracy=%s",
            point.latitude,
            point.longitude,
            point.accuracy,
        )
        return point

    def _request(self) -> Point:
        try:
            reading = self._provider.request_position(
                timeout=self._timeout,
                maximum_age=self._maximum_age,
                high_accuracy=self._high_accuracy,
            )
        except PositionError as exc:
            error_cls = _ERRORS_BY_CODE.get(exc.code, PositionUnavailableError)
            raise error_cls() from exc
        try:
            return Point(
                timestamp=self._clock(),
                latitude=float(reading.latitude),
                longitude=float(reading.longitude),
                accuracy=_normalise_accuracy(reading.accuracy),
            )
        except (TypeError, ValueError) as exc:
            raise PositionUnavailableError(
                f"Sensor returned an invalid position: {exc}"
            ) from exc


def _normalise_accuracy(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        accuracy = float(value)
    except (TypeError, ValueError):
        LOGGER.debug("Ignoring non-numeric accuracy %r", value)
        return None
    if not math.isfinite(accuracy) or accuracy < 0:
        LOGGER.debug("Ignoring invalid accuracy %r", value)
        return None
    return accuracy


__all__ = [
    "CaptureState",
    "LocationCapture",
    "LocationProvider",
    "PositionError",
    "SensorReading",
    "StaticLocationProvider",
]
