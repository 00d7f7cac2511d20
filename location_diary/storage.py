"""Durable string key/value storage backed by a single JSON file.

Mirrors the browser ``localStorage`` contract the diary was designed around:
keys and values are strings, every write is flushed to disk before the call
returns, and the file is replaced atomically so a crash never leaves a
half-written document behind.
"""

from __future__ import annotations

import json
import logging
import shutil
import threading
from pathlib import Path
from typing import Dict, Optional

LOGGER = logging.getLogger(__name__)


class LocalStorage:
    """Persistent string key/value store."""

    def __init__(self, path: str | Path) -> None:
        candidate = Path(path)
        self._path = candidate if candidate.is_absolute() else Path.cwd() / candidate
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"LocalStorage values must be str, got {type(value).__name__}")
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key not in data:
                return
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._read())

    def _read(self) -> Dict[str, str]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except ValueError as exc:
            LOGGER.error("Storage file %s is not valid JSON: %s", self._path, exc)
            self._preserve_unreadable()
            return {}
        except OSError as exc:
            LOGGER.error("Failed reading storage file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.error(
                "Storage file %s holds %s instead of an object; ignoring",
                self._path,
                type(data).__name__,
            )
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _preserve_unreadable(self) -> None:
        backup = self._path.with_suffix(self._path.suffix + ".corrupt")
        if backup.exists():
            return
        try:
            shutil.copyfile(self._path, backup)
        except OSError as exc:  # pragma: no cover - filesystem race
            LOGGER.warning("Failed to back up %s: %s", self._path, exc)
            return
        LOGGER.warning("Unreadable storage copied to %s", backup)

    def _write(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=2)
        temp_path.replace(self._path)


__all__ = ["LocalStorage"]
