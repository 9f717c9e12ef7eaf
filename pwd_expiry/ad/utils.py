from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

# userAccountControl bits
ACCOUNTDISABLE = 0x0002
DONT_EXPIRE_PASSWORD = 0x10000

# Largest negative 64-bit value, AD's "never" for intervals such as maxPwdAge.
AD_NEVER_INTERVAL = -(2**63)
# Largest positive 64-bit value, AD's "never" for timestamps.
AD_NEVER_TIMESTAMP = 2**63 - 1

_FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)

# Filter fragment for "account is not disabled" (bitwise AND matching rule).
ENABLED_USER_FILTER = (
    "(&(objectCategory=person)(objectClass=user)"
    f"(!(userAccountControl:1.2.840.113556.1.4.803:={ACCOUNTDISABLE})))"
)


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def _to_int(v: Any) -> int | None:
    if isinstance(v, bool):
        return None
    if isinstance(v, (bytes, bytearray)):
        v = bytes(v).decode("ascii", errors="replace")
    try:
        return int(str(v).strip())
    except (TypeError, ValueError):
        return None


def filetime_to_dt(v: Any) -> datetime | None:
    """Convert Windows FILETIME (100ns since 1601-01-01) to an aware UTC datetime.

    ldap3 decodes pwdLastSet into a datetime when the server schema is loaded,
    and returns the raw integer otherwise; both are accepted. Zero, the 1601
    epoch itself and the "never" sentinel mean the value is not set.
    """
    if v is None:
        return None

    if isinstance(v, datetime):
        dt = v if v.tzinfo else v.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
        if dt <= _FILETIME_EPOCH or dt.year >= 9999:
            return None
        return dt

    n = _to_int(v)
    if n is None or n <= 0 or n >= AD_NEVER_TIMESTAMP:
        return None
    try:
        return _FILETIME_EPOCH + timedelta(microseconds=n // 10)
    except OverflowError:
        return None


def ad_interval_to_timedelta(v: Any) -> timedelta | None:
    """Convert an AD interval (maxPwdAge and friends) to a positive timedelta.

    AD stores these as negative counts of 100ns ticks. ldap3 may already have
    turned the value into a timedelta. Zero and the minimum 64-bit value both
    mean "no limit" and yield None.
    """
    if v is None:
        return None

    if isinstance(v, timedelta):
        if v in (timedelta.max, timedelta.min) or not v:
            return None
        return abs(v)

    n = _to_int(v)
    if n is None or n == 0 or n <= AD_NEVER_INTERVAL:
        return None
    try:
        return timedelta(microseconds=abs(n) // 10)
    except OverflowError:
        return None


def uac_flags(v: Any) -> int:
    n = _to_int(v)
    return n if n is not None else 0


def first_value(v: Any, default: Any = None) -> Any:
    """First element of a multi-valued attribute (or the value itself)."""
    if isinstance(v, (list, tuple)):
        return v[0] if v else default
    if v is None or v == "":
        return default
    return v
