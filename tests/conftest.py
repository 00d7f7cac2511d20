"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable fixtures for storage, queue
and identity tests to avoid duplication across files.
"""
from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from location_diary.identity import DeviceIdentity
from location_diary.models import Point
from location_diary.point_store import PointStore
from location_diary.storage import LocalStorage

BASE_TS = 1_709_337_000_000  # 2024-03-01T23:50:00Z


# --- Factory helpers -------------------------------------------------
def make_point(offset=0, lat=35.6812, lon=139.7671, accuracy=None):
    return Point(
        timestamp=BASE_TS + offset * 1000,
        latitude=lat,
        longitude=lon,
        accuracy=accuracy,
    )


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def point_factory():
    return make_point


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage.json")


@pytest.fixture
def store(storage):
    return PointStore(storage)


@pytest.fixture
def identity(storage):
    return DeviceIdentity(storage)


@pytest.fixture
def three_points():
    return [
        make_point(0),
        make_point(1, lat=35.0),
        make_point(2, lat=34.0, accuracy=8.0),
    ]
