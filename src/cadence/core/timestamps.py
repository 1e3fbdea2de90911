"""
Clock and timestamp utilities (stdlib-only).

- **local_zone():** the host's IANA zone as a DST-aware ``ZoneInfo``
- **now_in():** aware "now" in a given zone, or the local zone
- **to_iso8601() / from_iso8601():** persistence round trip
- **new_id():** opaque unique identifiers

STDLIB ONLY - NO PYDANTIC.
"""

from __future__ import annotations

import os
import uuid
from datetime import datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_LOCALTIME = Path("/etc/localtime")


def local_zone() -> tzinfo:
    """The host's local zone.

    Resolved from ``TZ``, then from the ``/etc/localtime`` link or file. A
    fixed UTC offset is returned only when neither names a zone.
    """
    zone = _named_zone(os.environ.get("TZ", "").lstrip(":"))
    if zone is not None:
        return zone

    if _LOCALTIME.exists():
        target = str(_LOCALTIME.resolve())
        if "/zoneinfo/" in target:
            zone = _named_zone(target.split("/zoneinfo/", 1)[1])
            if zone is not None:
                return zone
        with _LOCALTIME.open("rb") as fh:
            return ZoneInfo.from_file(fh, key="localtime")

    return datetime.now().astimezone().tzinfo


def _named_zone(key: str) -> ZoneInfo | None:
    if not key:
        return None
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def now_in(zone: tzinfo | None = None) -> datetime:
    """Current time as an aware datetime in ``zone`` (local zone when None)."""
    return datetime.now(zone if zone is not None else local_zone())


def new_id() -> str:
    """Generate an opaque unique identifier."""
    return str(uuid.uuid4())


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to ISO 8601 string."""
    if dt is None:
        return None
    return dt.isoformat()


def from_iso8601(s: str | None) -> datetime | None:
    """Parse ISO 8601 string to datetime (accepts a trailing ``Z``)."""
    if s is None:
        return None
    return datetime.fromisoformat(s)
