from __future__ import annotations

import os
from datetime import datetime, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _tz_name() -> str:
    """Preferred TZ name from environment (Unix TZ)."""
    return (os.getenv("TZ") or "").strip()


def get_local_tzinfo() -> tzinfo:
    """Return tzinfo for local display.

    - TZ env var through zoneinfo when set and known.
    - The system local zone otherwise.
    """
    name = _tz_name()
    if name:
        if name.upper() in {"UTC", "GMT", "ETC/UTC", "ETC/GMT"}:
            return timezone.utc
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return datetime.now().astimezone().tzinfo or timezone.utc


def _parse_dt_any(v: Any) -> Optional[datetime]:
    if v is None:
        return None

    if isinstance(v, datetime):
        dt = v
    elif isinstance(v, str):
        s = v.strip()
        if not s:
            return None
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    # Naive timestamps are UTC.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_local_dt(v: Any, tz: tzinfo | None = None) -> Optional[datetime]:
    """Convert a timestamp to local tz (aware datetime)."""
    dt = _parse_dt_any(v)
    if dt is None:
        return None
    return dt.astimezone(tz or get_local_tzinfo())


def format_local(v: Any, fmt: str = "%Y-%m-%d %H:%M", tz: tzinfo | None = None) -> str:
    """Format timestamp for console/export as local time without TZ suffix."""
    dt = to_local_dt(v, tz)
    if dt is None:
        return ""
    return dt.strftime(fmt)
