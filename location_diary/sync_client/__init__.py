"""Diary upload components (session, payloads, response handling, client)."""

from .client import SyncClient  # noqa: F401
from .payloads import batch_body, single_body  # noqa: F401
from .session import create_default_session  # noqa: F401
