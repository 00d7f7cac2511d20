"""Location Diary: record positions locally and upload them as a diary."""

from .diary import ActionResult, LocationDiary
from .errors import (
    CaptureError,
    ConfigError,
    LocationDiaryError,
    StoreError,
    SyncError,
)
from .models import DeliveryMode, Point, SyncOutcome

__all__ = [
    "ActionResult",
    "LocationDiary",
    "DeliveryMode",
    "Point",
    "SyncOutcome",
    "LocationDiaryError",
    "CaptureError",
    "ConfigError",
    "StoreError",
    "SyncError",
]
