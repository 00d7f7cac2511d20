"""Tests for the capture pipeline (provider reading -> Point)."""

from __future__ import annotations

import pytest

from location_diary.capture import (
    CaptureState,
    LocationCapture,
    PositionError,
    SensorReading,
    StaticLocationProvider,
)
from location_diary.errors import (
    CaptureError,
    CaptureTimeoutError,
    PermissionDeniedError,
    PositionUnavailableError,
    UnsupportedError,
)


class RecordingProvider:
    def __init__(self, reading=None, error=None, available=True):
        self.reading = reading
        self.error = error
        self.available = available
        self.requests = []

    def is_available(self):
        return self.available

    def request_position(self, *, timeout, maximum_age, high_accuracy):
        self.requests.append(
            {"timeout": timeout, "maximum_age": maximum_age, "high_accuracy": high_accuracy}
        )
        if self.error is not None:
            raise self.error
        return self.reading


def test_capture_builds_point_with_capture_time():
    provider = RecordingProvider(
        SensorReading(latitude=35.6812, longitude=139.7671, accuracy=15.0, taken_at=1)
    )
    capture = LocationCapture(provider, clock=lambda: 1_709_337_000_000)
    point = capture.capture()
    assert point.timestamp == 1_709_337_000_000
    assert (point.latitude, point.longitude, point.accuracy) == (35.6812, 139.7671, 15.0)
    assert capture.state is CaptureState.IDLE
    assert capture.last_state is CaptureState.SUCCEEDED


def test_capture_requests_fresh_high_accuracy_fix_with_timeout():
    provider = RecordingProvider(SensorReading(latitude=1.0, longitude=2.0))
    LocationCapture(provider).capture()
    assert provider.requests == [
        {"timeout": 10.0, "maximum_age": 0, "high_accuracy": True}
    ]


def test_missing_or_invalid_accuracy_is_absent():
    for accuracy in (None, -3.0, float("nan"), "n/a"):
        provider = RecordingProvider(SensorReading(1.0, 2.0, accuracy=accuracy))
        assert LocationCapture(provider).capture().accuracy is None


def test_unsupported_is_checked_before_requesting():
    provider = RecordingProvider(available=False)
    capture = LocationCapture(provider)
    with pytest.raises(UnsupportedError):
        capture.capture()
    assert provider.requests == []
    assert capture.last_state is CaptureState.FAILED


@pytest.mark.parametrize(
    "code, expected",
    [
        (PositionError.PERMISSION_DENIED, PermissionDeniedError),
        (PositionError.POSITION_UNAVAILABLE, PositionUnavailableError),
        (PositionError.TIMEOUT, CaptureTimeoutError),
        (PositionError.UNSUPPORTED, UnsupportedError),
        (42, PositionUnavailableError),
    ],
)
def test_provider_codes_map_to_capture_errors(code, expected):
    provider = RecordingProvider(error=PositionError(code, "boom"))
    capture = LocationCapture(provider)
    with pytest.raises(expected):
        capture.capture()
    assert capture.state is CaptureState.IDLE
    assert capture.last_state is CaptureState.FAILED
    assert len(provider.requests) == 1


def test_each_failure_has_a_distinct_user_message():
    messages = {
        cls.user_message
        for cls in (
            UnsupportedError,
            PermissionDeniedError,
            PositionUnavailableError,
            CaptureTimeoutError,
        )
    }
    assert len(messages) == 4


def test_out_of_range_reading_is_position_unavailable():
    provider = RecordingProvider(SensorReading(latitude=123.0, longitude=0.0))
    with pytest.raises(PositionUnavailableError) as excinfo:
        LocationCapture(provider).capture()
    assert isinstance(excinfo.value, CaptureError)


def test_static_provider():
    point = LocationCapture(StaticLocationProvider(35.0, 139.0, 5.0)).capture()
    assert (point.latitude, point.longitude, point.accuracy) == (35.0, 139.0, 5.0)
