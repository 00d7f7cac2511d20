"""Anonymous per-installation device identifier."""

from __future__ import annotations

import logging
import random
import string

from .config import DEVICE_ID_KEY, DEVICE_ID_LENGTH, DEVICE_ID_PREFIX
from .storage import LocalStorage

LOGGER = logging.getLogger(__name__)

_ALPHABET = string.digits + string.ascii_lowercase


def generate_device_id(
    prefix: str = DEVICE_ID_PREFIX, length: int = DEVICE_ID_LENGTH
) -> str:
    """Return a new random base-36 token such as ``web-k3j9x0qa``."""

    # Attribution only; not used for security-sensitive logic.
    suffix = "".join(random.choices(_ALPHABET, k=length))  # nosec B311
    return f"{prefix}{suffix}"


class DeviceIdentity:
    """Owns the durable device id stored under ``deviceId``."""

    def __init__(self, storage: LocalStorage, key: str = DEVICE_ID_KEY) -> None:
        self._storage = storage
        self._key = key

    def get_or_create(self) -> str:
        """Return the persisted id, generating and persisting one on first use."""

        existing = self._storage.get_item(self._key)
        if existing:
            return existing
        device_id = generate_device_id()
        self._storage.set_item(self._key, device_id)
        LOGGER.info("Generated new device id %s", device_id)
        return device_id


__all__ = ["DeviceIdentity", "generate_device_id"]
