"""Derived fields, ordering and grouping of password expiry records."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Literal, Optional

from .ad.models import PasswordPolicy, UserRecord
from .ad.utils import DONT_EXPIRE_PASSWORD, filetime_to_dt, uac_flags
from .utils.dn import top_level_ou

Status = Literal["never", "must_change", "expired", "warning", "ok"]


def compute_expiry(
    password_last_set: Optional[datetime],
    policy: PasswordPolicy,
    never_expires: bool = False,
) -> Optional[datetime]:
    """Password expiry moment, or None when the password never expires."""
    if never_expires or policy.max_pwd_age is None or password_last_set is None:
        return None
    return password_last_set + policy.max_pwd_age


def build_record(raw: dict, policy: PasswordPolicy) -> UserRecord:
    dn = raw.get("dn") or ""
    last_set = filetime_to_dt(raw.get("pwd_last_set"))
    never = bool(uac_flags(raw.get("uac")) & DONT_EXPIRE_PASSWORD)
    return UserRecord(
        name=raw.get("name") or raw.get("sam") or "",
        sam=raw.get("sam") or "",
        dn=dn,
        top_ou=top_level_ou(dn),
        password_last_set=last_set,
        password_expires=compute_expiry(last_set, policy, never),
        password_never_expires=never,
    )


def build_records(raw_users: Iterable[dict], policy: PasswordPolicy) -> list[UserRecord]:
    return [build_record(r, policy) for r in raw_users]


def _sort_key(r: UserRecord) -> tuple:
    exp = r.password_expires
    return (r.top_ou.casefold(), exp is None, exp or datetime.min.replace(tzinfo=timezone.utc))


def sort_records(records: Iterable[UserRecord]) -> list[UserRecord]:
    """Order by top-level OU, then by expiry; accounts that never expire go last."""
    return sorted(records, key=_sort_key)


def group_by_ou(records: Iterable[UserRecord]) -> dict[str, list[UserRecord]]:
    out: dict[str, list[UserRecord]] = {}
    for r in records:
        out.setdefault(r.top_ou, []).append(r)
    return out


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def days_left(record: UserRecord, now: Optional[datetime] = None) -> Optional[int]:
    if record.password_expires is None:
        return None
    return (record.password_expires - _now(now)).days


def status(record: UserRecord, now: Optional[datetime] = None, warn_days: int = 14) -> Status:
    if record.password_expires is None:
        if record.must_change and not record.password_never_expires:
            return "must_change"
        return "never"
    left = record.password_expires - _now(now)
    if left.total_seconds() <= 0:
        return "expired"
    if left.days < warn_days:
        return "warning"
    return "ok"


def filter_expiring(
    records: Iterable[UserRecord],
    within_days: int,
    now: Optional[datetime] = None,
) -> list[UserRecord]:
    """Keep accounts whose password is expired or expires within N days."""
    now = _now(now)
    out: list[UserRecord] = []
    for r in records:
        if r.password_expires is None:
            continue
        if (r.password_expires - now).total_seconds() <= within_days * 86400:
            out.append(r)
    return out


def summarize(records: Iterable[UserRecord], now: Optional[datetime] = None, warn_days: int = 14) -> dict[str, int]:
    counts = {"total": 0, "never": 0, "must_change": 0, "expired": 0, "warning": 0, "ok": 0}
    for r in records:
        counts["total"] += 1
        counts[status(r, now, warn_days)] += 1
    return counts
