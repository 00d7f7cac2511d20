"""Central error types used across the application."""

from __future__ import annotations


class LocationDiaryError(RuntimeError):
    """Base error for the location diary client."""


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------
class CaptureError(LocationDiaryError):
    """Base error for a failed location reading."""

    user_message = "Could not get the current location."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class UnsupportedError(CaptureError):
    """Raised when the platform has no location capability at all."""

    user_message = "This device does not support location services."


class PermissionDeniedError(CaptureError):
    """Raised when the user or platform refused access to the location."""

    user_message = "Location permission was denied."


class PositionUnavailableError(CaptureError):
    """Raised when the sensor could not determine a position."""

    user_message = "The current position could not be determined."


class CaptureTimeoutError(CaptureError):
    """Raised when no reading arrived within the capture timeout."""

    user_message = "Timed out while waiting for a location fix."


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
class ConfigError(LocationDiaryError):
    """Base error for missing or invalid configuration."""


class EndpointNotConfiguredError(ConfigError):
    """Raised when no upload endpoint URL is configured."""


class InvalidSettingError(ConfigError):
    """Raised when a configured value cannot be used."""


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------
class SyncError(LocationDiaryError):
    """Base error for upload failures."""


class NetworkFailureError(SyncError):
    """Raised when the request produced no HTTP response at all."""


class HttpStatusError(SyncError):
    """Raised when the endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, detail: str | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        message = f"HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedResponseError(SyncError):
    """Raised when a 2xx response carries JSON that is not an object."""


class EmptyQueueError(SyncError):
    """Raised when a sync is requested with no recorded locations."""


class SyncInProgressError(SyncError):
    """Raised when a sync is started while another one is outstanding."""


# ---------------------------------------------------------------------------
# Local store
# ---------------------------------------------------------------------------
class StoreError(LocationDiaryError):
    """Base error for local queue contract violations."""


class IndexOutOfRangeError(StoreError, IndexError):
    """Raised when a queue position outside ``[0, len)`` is addressed."""


__all__ = [
    "LocationDiaryError",
    "CaptureError",
    "UnsupportedError",
    "PermissionDeniedError",
    "PositionUnavailableError",
    "CaptureTimeoutError",
    "ConfigError",
    "EndpointNotConfiguredError",
    "InvalidSettingError",
    "SyncError",
    "NetworkFailureError",
    "HttpStatusError",
    "MalformedResponseError",
    "EmptyQueueError",
    "SyncInProgressError",
    "StoreError",
    "IndexOutOfRangeError",
]
