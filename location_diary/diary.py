"""User-action boundary of the location diary.

Each public method corresponds to one user action. Capture and sync failures
are logged and turned into a status message here; nothing below this layer
reports to the user directly.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from . import config
from .capture import LocationCapture, LocationProvider
from .errors import (
    CaptureError,
    ConfigError,
    EmptyQueueError,
    HttpStatusError,
    InvalidSettingError,
    MalformedResponseError,
    NetworkFailureError,
    SyncError,
    SyncInProgressError,
)
from .identity import DeviceIdentity
from .models import DeliveryMode, Point, SyncOutcome
from .point_store import PointStore
from .storage import LocalStorage
from .sync_client import SyncClient
from .viewer import build_viewer_link

LOGGER = logging.getLogger(__name__)

ENDPOINT_WARNING = (
    "Upload endpoint is not configured. Set LOCATION_API_URL "
    "(or LOCATION_DIARY_API_URL) before creating a diary."
)


@dataclass
class ActionResult:
    """Result of one user action."""

    ok: bool
    message: str
    error: Optional[Exception] = None
    outcome: Optional[SyncOutcome] = None


def resolve_delivery_mode(value: DeliveryMode | str) -> DeliveryMode:
    """Parse a configured delivery mode, raising :class:`InvalidSettingError`."""

    try:
        return DeliveryMode.parse(value)
    except ValueError as exc:
        raise InvalidSettingError(f"LOCATION_DELIVERY_MODE: {exc}.") from exc


class LocationDiary:
    """Wires identity, queue, capture and sync together."""

    def __init__(
        self,
        store: PointStore,
        identity: DeviceIdentity,
        capture: LocationCapture,
        sync_client: SyncClient,
        *,
        viewer_base_url: str = "",
    ) -> None:
        self.store = store
        self.identity = identity
        self.capture = capture
        self.sync_client = sync_client
        self.viewer_base_url = viewer_base_url
        self._sync_lock = threading.Lock()
        self.identity.get_or_create()
        self.startup_warning: Optional[str] = None
        if not sync_client.configured:
            self.add_startup_warning(ENDPOINT_WARNING)

    @classmethod
    def from_config(
        cls,
        provider: LocationProvider,
        *,
        storage: Optional[LocalStorage] = None,
    ) -> "LocationDiary":
        """Build a diary from :mod:`location_diary.config`."""

        storage = storage or LocalStorage(config.STORAGE_PATH)
        identity = DeviceIdentity(storage)
        mode_problem: Optional[InvalidSettingError] = None
        try:
            mode = resolve_delivery_mode(config.DEFAULT_DELIVERY_MODE)
        except InvalidSettingError as exc:
            mode_problem = exc
            mode = DeliveryMode.BATCH
        client = SyncClient(
            identity.get_or_create,
            endpoint=config.API_URL,
            diary_endpoint=config.DIARY_API_URL,
            api_key=config.API_KEY,
            default_mode=mode,
            timeout=config.REQUEST_TIMEOUT,
        )
        diary = cls(
            PointStore(storage),
            identity,
            LocationCapture(provider),
            client,
            viewer_base_url=config.VIEWER_BASE_URL,
        )
        if mode_problem is not None:
            diary.add_startup_warning(f"{mode_problem} Using {mode.value} delivery.")
        return diary

    def add_startup_warning(self, message: str) -> None:
        LOGGER.warning("%s", message)
        if self.startup_warning:
            self.startup_warning = f"{self.startup_warning} {message}"
        else:
            self.startup_warning = message

    @property
    def device_id(self) -> str:
        return self.identity.get_or_create()

    def entries(self) -> List[Point]:
        return self.store.all()

    def record_current_location(self) -> ActionResult:
        try:
            point = self.capture.capture()
        except CaptureError as exc:
            LOGGER.error("Recording location failed: %s", exc)
            return ActionResult(
                False, f"Failed to get location: {exc.user_message}", error=exc
            )
        self.store.append(point)
        return ActionResult(True, f"Location saved ({len(self.store)} queued).")

    def create_diary(self, mode: DeliveryMode | str | None = None) -> ActionResult:
        """Upload the queue and drop whatever the remote confirmed."""

        if not self._sync_lock.acquire(blocking=False):
            exc = SyncInProgressError("A sync is already running")
            LOGGER.warning("%s", exc)
            return ActionResult(False, "A diary upload is already in progress.", error=exc)
        try:
            return self._create_diary(mode)
        finally:
            self._sync_lock.release()

    def _create_diary(self, mode: DeliveryMode | str | None) -> ActionResult:
        submitted = self.store.all()
        try:
            outcome = self.sync_client.sync(submitted, mode)
        except EmptyQueueError as exc:
            return ActionResult(
                False,
                "No locations recorded yet. Record your current location first.",
                error=exc,
            )
        except ConfigError as exc:
            LOGGER.error("Diary upload not attempted: %s", exc)
            return ActionResult(False, ENDPOINT_WARNING, error=exc)

        self.store.reconcile_after_sync(outcome)
        message = _outcome_message(outcome, remaining=len(self.store))
        if outcome.all_delivered:
            return ActionResult(True, message, outcome=outcome)
        LOGGER.error("Diary upload incomplete: %s", outcome.error)
        return ActionResult(False, message, error=outcome.error, outcome=outcome)

    def delete_entry(self, index: int) -> Point:
        """Remove one queued point; a stale index raises ``IndexOutOfRangeError``."""

        removed = self.store.delete_at(index)
        LOGGER.info("Deleted queued location #%s", index)
        return removed

    def clear(self) -> ActionResult:
        self.store.clear()
        return ActionResult(True, "All recorded locations were removed.")

    def viewer_link(self) -> str:
        """Deep link for the device, dated by the most recent queued point."""

        points = self.store.all()
        reference = points[-1].timestamp if points else None
        return build_viewer_link(self.viewer_base_url, self.device_id, reference)


def describe_sync_error(error: Optional[SyncError]) -> str:
    """Human readable text for a failed upload request."""

    if isinstance(error, HttpStatusError):
        return f"the server answered HTTP {error.status_code}"
    if isinstance(error, NetworkFailureError):
        return "the server could not be reached"
    if isinstance(error, MalformedResponseError):
        return "the server sent an unexpected response"
    return "the upload failed"


def _outcome_message(outcome: SyncOutcome, *, remaining: int) -> str:
    address = f" (representative location: {outcome.address})" if outcome.address else ""
    if outcome.all_delivered:
        return f"Diary sent successfully{address}."
    if outcome.any_delivered:
        return (
            f"Sent {outcome.delivered_count} of {len(outcome.submitted)} locations"
            f"{address}; {describe_sync_error(outcome.error)}. "
            f"{remaining} location(s) kept for retry."
        )
    return (
        f"Sending failed: {describe_sync_error(outcome.error)}. "
        f"{remaining} location(s) kept for retry. Check the endpoint URL and API key."
    )


__all__ = ["ActionResult", "LocationDiary", "describe_sync_error"]
