"""HTTP session factory for diary uploads."""

from __future__ import annotations

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import SYNC_CONNECT_RETRIES

__all__ = ["create_default_session"]


def _build_retry() -> Retry:
    # Only connection setup is retried; a POST that reached the server is
    # never replayed.
    return Retry(
        total=SYNC_CONNECT_RETRIES,
        connect=SYNC_CONNECT_RETRIES,
        read=0,
        status=0,
        other=0,
        backoff_factor=0.5,
        allowed_methods=["POST"],
        raise_on_status=False,
    )


def create_default_session() -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=_build_retry())
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json",
        }
    )
    return session
