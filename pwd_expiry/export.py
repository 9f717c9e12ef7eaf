from __future__ import annotations

import csv
import logging
import os
from datetime import datetime
from typing import Iterable, Literal, Optional

from openpyxl import Workbook
from openpyxl.styles import Font

from .ad.models import UserRecord
from .report import days_left
from .timezone_utils import format_local

log = logging.getLogger(__name__)

ExportFormat = Literal["csv", "xlsx"]

FILE_PREFIX = "PasswordExpiry"
NEVER = "Never"
HEADER = [
    "Name",
    "SamAccountName",
    "OU",
    "DistinguishedName",
    "PasswordLastSet",
    "PasswordExpires",
    "DaysLeft",
]
_DT_FMT = "%Y-%m-%d %H:%M:%S"


def export_filename(directory: str, fmt: ExportFormat = "csv", now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return os.path.join(directory, f"{FILE_PREFIX}_{stamp}.{fmt}")


def _row(r: UserRecord, now: Optional[datetime]) -> list:
    left = days_left(r, now)
    return [
        r.name,
        r.sam,
        r.top_ou,
        r.dn,
        format_local(r.password_last_set, _DT_FMT),
        format_local(r.password_expires, _DT_FMT) if r.password_expires else NEVER,
        "" if left is None else left,
    ]


def write_csv(records: Iterable[UserRecord], path: str, now: Optional[datetime] = None) -> int:
    """Write records to CSV (UTF-8 with BOM so Excel opens it correctly)."""
    n = 0
    with open(path, "w", encoding="utf-8-sig", newline="") as f:
        w = csv.writer(f)
        w.writerow(HEADER)
        for r in records:
            w.writerow(_row(r, now))
            n += 1
    return n


def write_xlsx(records: Iterable[UserRecord], path: str, now: Optional[datetime] = None) -> int:
    wb = Workbook()
    ws = wb.active
    ws.title = "Password expiry"

    ws.append(HEADER)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    n = 0
    for r in records:
        ws.append(_row(r, now))
        n += 1

    ws.freeze_panes = "A2"
    wb.save(path)
    return n


def export_records(
    records: Iterable[UserRecord],
    directory: str,
    fmt: ExportFormat = "csv",
    now: Optional[datetime] = None,
) -> str:
    """Write a timestamped snapshot into directory; returns the file path."""
    if fmt not in ("csv", "xlsx"):
        raise ValueError(f"Unsupported export format: {fmt}")

    directory = directory or "."
    os.makedirs(directory, exist_ok=True)
    path = export_filename(directory, fmt, now)

    writer = write_xlsx if fmt == "xlsx" else write_csv
    n = writer(records, path, now)
    log.info("Exported %d records to %s", n, path)
    return path
