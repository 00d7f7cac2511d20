"""Upload queued points to the configured endpoint.

Public surface:
- SyncClient.sync(points, mode=None) -> SyncOutcome

Three delivery modes share one contract:

* ``single``: only the most recent point is sent.
* ``batch``: the whole queue is sent as one diary envelope.
* ``sequential``: one request per point, strictly in order, continuing past
  individual failures.

The client never touches the local queue; callers reconcile the store with the
returned :class:`~location_diary.models.SyncOutcome`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests
from requests import Session

from ..config import (
    API_KEY,
    API_URL,
    DEFAULT_DELIVERY_MODE,
    DIARY_API_URL,
    REQUEST_TIMEOUT,
)
from ..errors import (
    EmptyQueueError,
    EndpointNotConfiguredError,
    NetworkFailureError,
    SyncError,
)
from ..models import DeliveryMode, Point, SyncOutcome
from ..utils import mask_secret, now_ms
from .payloads import batch_body, single_body
from .response_handling import parse_response
from .session import create_default_session

LOGGER = logging.getLogger(__name__)

__all__ = ["SyncClient"]


class SyncClient:
    """Transmit queued points under one of the delivery modes."""

    def __init__(
        self,
        device_id_source: Callable[[], str],
        *,
        endpoint: Optional[str] = None,
        diary_endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        default_mode: DeliveryMode | str = DEFAULT_DELIVERY_MODE,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[Session] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._device_id_source = device_id_source
        self.endpoint = (API_URL if endpoint is None else endpoint).strip()
        diary = DIARY_API_URL if diary_endpoint is None else diary_endpoint
        self.diary_endpoint = diary.strip() or self.endpoint
        self._api_key = (API_KEY if api_key is None else api_key).strip()
        self.default_mode = DeliveryMode.parse(default_mode)
        self._timeout = timeout
        self._session = session or create_default_session()
        self._clock = clock

    @property
    def configured(self) -> bool:
        return bool(self.endpoint or self.diary_endpoint)

    def endpoint_for(self, mode: DeliveryMode) -> str:
        if mode is DeliveryMode.BATCH:
            return self.diary_endpoint
        return self.endpoint or self.diary_endpoint

    def sync(
        self, points: Sequence[Point], mode: DeliveryMode | str | None = None
    ) -> SyncOutcome:
        """Send ``points`` (oldest first) and report what was delivered.

        Args:
            points: Snapshot of the queue, oldest first.
            mode: Delivery mode; defaults to the client's default mode.

        Returns:
            SyncOutcome with one delivery flag per submitted point.

        Raises:
            EmptyQueueError: When ``points`` is empty (no request is made).
            EndpointNotConfiguredError: When no endpoint URL is configured.
        """

        resolved = self.default_mode if mode is None else DeliveryMode.parse(mode)
        if not points:
            raise EmptyQueueError("No recorded locations to send")
        url = self.endpoint_for(resolved)
        if not url:
            raise EndpointNotConfiguredError("Upload endpoint URL is not configured")

        device_id = self._device_id_source()
        LOGGER.info(
            "Starting %s sync device=%s points=%s url=%s",
            resolved.value,
            device_id,
            len(points),
            url,
        )
        if resolved is DeliveryMode.SINGLE:
            outcome = self._sync_single(url, device_id, points[-1])
        elif resolved is DeliveryMode.BATCH:
            outcome = self._sync_batch(url, device_id, tuple(points))
        else:
            outcome = self._sync_sequential(url, device_id, tuple(points))
        LOGGER.info(
            "Finished %s sync delivered=%s failed=%s",
            resolved.value,
            outcome.delivered_count,
            outcome.failed_count,
        )
        return outcome

    def _sync_single(self, url: str, device_id: str, point: Point) -> SyncOutcome:
        data, error = self._attempt(url, single_body(device_id, point), "Single upload")
        return SyncOutcome(
            mode=DeliveryMode.SINGLE,
            submitted=(point,),
            delivered=(error is None,),
            address=_address_of(data),
            errors=[error] if error else [],
            response=data,
        )

    def _sync_batch(
        self, url: str, device_id: str, points: Tuple[Point, ...]
    ) -> SyncOutcome:
        body = batch_body(device_id, points, self._clock())
        data, error = self._attempt(url, body, "Diary upload")
        return SyncOutcome(
            mode=DeliveryMode.BATCH,
            submitted=points,
            delivered=tuple(error is None for _ in points),
            address=_address_of(data),
            errors=[error] if error else [],
            response=data,
        )

    def _sync_sequential(
        self, url: str, device_id: str, points: Tuple[Point, ...]
    ) -> SyncOutcome:
        delivered: List[bool] = []
        errors: List[SyncError] = []
        address: Optional[str] = None
        last: Dict[str, Any] = {}
        total = len(points)
        for position, point in enumerate(points, start=1):
            data, error = self._attempt(
                url,
                single_body(device_id, point),
                f"Sequential upload {position}/{total}",
            )
            delivered.append(error is None)
            if error is not None:
                errors.append(error)
                continue
            last = data
            address = _address_of(data) or address
        return SyncOutcome(
            mode=DeliveryMode.SEQUENTIAL,
            submitted=points,
            delivered=tuple(delivered),
            address=address,
            errors=errors,
            response=last,
        )

    def _attempt(
        self, url: str, body: Dict[str, Any], context: str
    ) -> Tuple[Dict[str, Any], Optional[SyncError]]:
        """POST ``body`` once; return ``(payload, None)`` or ``({}, error)``."""

        try:
            return self._post(url, body, context), None
        except SyncError as exc:
            LOGGER.warning("%s failed: %s", context, exc)
            return {}, exc

    def _post(self, url: str, body: Dict[str, Any], context: str) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["x-api-key"] = self._api_key
        LOGGER.debug(
            "POST %s api_key=%s", url, mask_secret(self._api_key) or "(none)"
        )
        try:
            response = self._session.post(
                url, json=body, headers=headers, timeout=self._timeout
            )
        except requests.exceptions.RequestException as exc:
            LOGGER.error("%s transport error: %s", context, exc)
            raise NetworkFailureError(f"Network failure: {exc}") from exc
        LOGGER.debug("%s status=%s", context, response.status_code)
        return parse_response(response, context)


def _address_of(data: Dict[str, Any]) -> Optional[str]:
    address = data.get("address")
    if isinstance(address, str) and address.strip():
        return address.strip()
    return None
