"""Durable FIFO queue of recorded points.

The queue lives under a single storage key as a JSON array, oldest first.
Every mutation reads the current array, applies the change and writes it back
before returning, so the persisted state is always the source of truth.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .config import LOCATIONS_KEY
from .errors import IndexOutOfRangeError
from .models import Point, SyncOutcome
from .storage import LocalStorage
from .utils import json_dumps_compact

LOGGER = logging.getLogger(__name__)

UNREADABLE_SUFFIX = ".unreadable"


class PointStore:
    """Ordered, persisted queue of not-yet-synced points for one device."""

    def __init__(self, storage: LocalStorage, key: str = LOCATIONS_KEY) -> None:
        self._storage = storage
        self._key = key
        self._lock = threading.RLock()

    def append(self, point: Point) -> None:
        """Add ``point`` to the end of the queue and persist it."""

        with self._lock:
            points = self._load()
            points.append(point)
            self._save(points)
        LOGGER.debug("Queued point ts=%s (queue length=%s)", point.timestamp, len(points))

    def all(self) -> List[Point]:
        """Return a snapshot of the queue, oldest first."""

        with self._lock:
            return self._load()

    def delete_at(self, index: int) -> Point:
        """Remove and return the point at ``index`` (0-based, oldest first).

        Later points shift down by one, so positions taken from an earlier
        :meth:`all` call are stale afterwards.

        Raises:
            IndexOutOfRangeError: If ``index`` is not an integer in
                ``[0, len)``. The queue is left unchanged.
        """

        with self._lock:
            points = self._load()
            if (
                not isinstance(index, int)
                or isinstance(index, bool)
                or not 0 <= index < len(points)
            ):
                raise IndexOutOfRangeError(
                    f"Queue index {index!r} out of range (length {len(points)})"
                )
            removed = points.pop(index)
            self._save(points)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._storage.remove_item(self._key)
        LOGGER.info("Location queue cleared")

    def reconcile_after_sync(
        self,
        outcome: SyncOutcome,
        submitted: Optional[Sequence[Point]] = None,
    ) -> int:
        """Drop the submitted points the remote confirmed, keep the rest.

        Failed points stay in place in their original relative order, and
        points queued after the sync started are never touched.

        Args:
            outcome: Result returned by the sync client.
            submitted: Points that were handed to the sync client. Defaults to
                ``outcome.submitted``.

        Returns:
            Number of points removed from the queue.
        """

        sent = tuple(submitted) if submitted is not None else outcome.submitted
        if len(sent) != len(outcome.delivered):
            raise ValueError("submitted points do not align with the sync outcome")
        confirmed = Counter(p for p, ok in zip(sent, outcome.delivered) if ok)
        if not confirmed:
            return 0
        with self._lock:
            remaining: List[Point] = []
            removed = 0
            for point in self._load():
                if confirmed[point] > 0:
                    confirmed[point] -= 1
                    removed += 1
                    continue
                remaining.append(point)
            if remaining:
                self._save(remaining)
            else:
                self._storage.remove_item(self._key)
        LOGGER.info(
            "Reconciled queue after %s sync: removed=%s remaining=%s",
            outcome.mode.value,
            removed,
            len(remaining),
        )
        return removed

    def __len__(self) -> int:
        return len(self.all())

    def _load(self) -> List[Point]:
        raw = self._storage.get_item(self._key)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except ValueError as exc:
            self._quarantine([raw], f"invalid JSON: {exc}")
            self._storage.remove_item(self._key)
            return []
        if not isinstance(entries, list):
            self._quarantine([raw], f"expected a list, got {type(entries).__name__}")
            self._storage.remove_item(self._key)
            return []
        points, rejected = _decode_entries(entries)
        if rejected:
            self._quarantine(rejected, f"{len(rejected)} invalid entries")
            if points:
                self._save(points)
            else:
                self._storage.remove_item(self._key)
        return points

    def _save(self, points: Iterable[Point]) -> None:
        payload = [p.to_dict() for p in points]
        self._storage.set_item(self._key, json_dumps_compact(payload))

    def _quarantine(self, items: List[Any], reason: str) -> None:
        """Append ``items`` to the backup key so they survive later saves."""

        backup_key = self._key + UNREADABLE_SUFFIX
        kept = _backup_items(self._storage.get_item(backup_key))
        kept.extend(items)
        self._storage.set_item(backup_key, json_dumps_compact(kept))
        LOGGER.error(
            "Stored queue under %r has unreadable data (%s); preserved in %r",
            self._key,
            reason,
            backup_key,
        )


def _backup_items(raw: Optional[str]) -> List[Any]:
    if raw is None:
        return []
    try:
        items = json.loads(raw)
    except ValueError:
        return [raw]
    return items if isinstance(items, list) else [raw]


def _decode_entries(entries: Sequence[Any]) -> Tuple[List[Point], List[Any]]:
    points: List[Point] = []
    rejected: List[Any] = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            LOGGER.warning("Rejecting queued entry %s: not an object", position)
            rejected.append(entry)
            continue
        try:
            points.append(Point.from_dict(entry))
        except (ValueError, TypeError) as exc:
            LOGGER.warning("Rejecting queued entry %s: %s", position, exc)
            rejected.append(entry)
    return points, rejected


__all__ = ["PointStore"]
