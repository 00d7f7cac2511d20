"""Deep links into the external diary viewer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union
from urllib.parse import urlencode

from .utils import utc_from_ms

ReferenceTime = Union[int, datetime, None]


def _utc_date(reference: ReferenceTime) -> str:
    if reference is None:
        moment = datetime.now(timezone.utc)
    elif isinstance(reference, datetime):
        if reference.tzinfo is None:
            moment = reference.replace(tzinfo=timezone.utc)
        else:
            moment = reference.astimezone(timezone.utc)
    else:
        moment = utc_from_ms(int(reference))
    return moment.strftime("%Y-%m-%d")


def build_viewer_link(
    base: Optional[str],
    device_id: str,
    reference_timestamp: ReferenceTime = None,
) -> str:
    """Return ``<base>/?deviceId=<id>&date=<YYYY-MM-DD>``.

    The date is the UTC calendar date of ``reference_timestamp`` (epoch ms or
    datetime; naive datetimes are UTC), or today's UTC date when omitted. An
    empty ``base`` means no viewer is configured and yields ``""``.
    """

    if not base or not base.strip():
        return ""
    query = urlencode({"deviceId": device_id, "date": _utc_date(reference_timestamp)})
    return f"{base.strip().rstrip('/')}/?{query}"


__all__ = ["build_viewer_link"]
