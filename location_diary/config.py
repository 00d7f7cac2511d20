"""Central configuration for the Location Diary client.

All values are constants imported by the rest of the package. Endpoints and
the API key are read from environment variables (optionally via a local
`.env`) so that they never need to be hardcoded.
"""

from __future__ import annotations

import importlib
import os


def _env_str(key: str, default: str = "") -> str:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip()


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Remote endpoint
# ---------------------------------------------------------------------------
# Endpoint receiving single-point uploads (and batches when no diary endpoint
# is configured), e.g. https://xxxx.execute-api.region.amazonaws.com/prod/track
API_URL = _env_str("LOCATION_API_URL")

# Optional separate endpoint for whole-diary (batch) uploads.
DIARY_API_URL = _env_str("LOCATION_DIARY_API_URL") or API_URL

# Sent as the x-api-key header when non-empty. Do not hardcode secrets.
API_KEY = _env_str("LOCATION_API_KEY")

# Base URL of the external diary viewer. Empty disables deep links.
VIEWER_BASE_URL = _env_str("LOCATION_VIEWER_URL")


# ---------------------------------------------------------------------------
# Local storage
# ---------------------------------------------------------------------------
# JSON file holding the device id and the queued locations. Paths can be
# absolute or relative to the working directory.
STORAGE_PATH = _env_str("LOCATION_DIARY_STORAGE", "location_diary_storage.json")

# Storage keys. Kept identical to the browser client's localStorage keys so
# exported state can be moved between the two.
DEVICE_ID_KEY = "deviceId"
LOCATIONS_KEY = "locations"

DEVICE_ID_PREFIX = "web-"
DEVICE_ID_LENGTH = 8


# ---------------------------------------------------------------------------
# Sync behaviour
# ---------------------------------------------------------------------------
# Request timeout in seconds for each upload attempt.
REQUEST_TIMEOUT = _env_float("LOCATION_REQUEST_TIMEOUT", 15.0)

# Connection-level retries only (no bytes sent). Uploads themselves are never
# re-sent; a retry is a new sync started by the user.
SYNC_CONNECT_RETRIES = _env_int("LOCATION_SYNC_CONNECT_RETRIES", 0)

# One of "single", "batch", "sequential".
DEFAULT_DELIVERY_MODE = _env_str("LOCATION_DELIVERY_MODE", "batch").lower()


# ---------------------------------------------------------------------------
# Location capture
# ---------------------------------------------------------------------------
# Bounded wait for one sensor reading.
CAPTURE_TIMEOUT_SECONDS = _env_float("LOCATION_CAPTURE_TIMEOUT", 10.0)

# Maximum age of a cached fix. 0 always forces a fresh reading.
CAPTURE_MAXIMUM_AGE_SECONDS = 0

CAPTURE_HIGH_ACCURACY = _env_bool("LOCATION_HIGH_ACCURACY", True)

# Local port used by the browser capture page.
BROWSER_CAPTURE_PORT = _env_int("LOCATION_BROWSER_PORT", 5057)

# Extra seconds granted to the browser round trip on top of the sensor
# timeout (page load, permission prompt rendering).
BROWSER_CAPTURE_GRACE_SECONDS = _env_float("LOCATION_BROWSER_GRACE", 5.0)
