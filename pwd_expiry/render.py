from __future__ import annotations

from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .ad.models import PasswordPolicy, Scope, UserRecord
from .report import days_left, group_by_ou, status, summarize
from .timezone_utils import format_local

_STATUS_STYLE = {
    "expired": "bold red",
    "warning": "yellow",
    "must_change": "magenta",
    "never": "dim",
    "ok": "",
}

NO_OU = "(no OU)"


def _fmt_age(td) -> str:
    if td is None:
        return "never"
    return f"{td.days} days"


def render_policy(console: Console, policy: PasswordPolicy, scope: Scope) -> None:
    console.print(
        f"[bold]Password policy:[/bold] max age {_fmt_age(policy.max_pwd_age)}, "
        f"min age {_fmt_age(policy.min_pwd_age) if policy.min_pwd_age else 'none'}, "
        f"min length {policy.min_pwd_length}, history {policy.pwd_history_length}"
    )
    label = escape(scope.label or scope.dn or "all enabled accounts")
    console.print(f"[bold]Scope:[/bold] {scope.kind}: {label}")


def _expires_cell(r: UserRecord, st: str) -> str:
    if r.password_expires is not None:
        return format_local(r.password_expires)
    if st == "must_change":
        return "must change"
    return "never"


def render_records(
    console: Console,
    records: list[UserRecord],
    warn_days: int = 14,
    now: Optional[datetime] = None,
) -> None:
    """One table per top-level OU, rows in the given (sorted) order."""
    for ou, items in group_by_ou(records).items():
        table = Table(title=escape(ou or NO_OU), title_justify="left", title_style="bold cyan")
        table.add_column("Name")
        table.add_column("Account")
        table.add_column("Password last set")
        table.add_column("Expires")
        table.add_column("Days left", justify="right")

        for r in items:
            st = status(r, now, warn_days)
            left = days_left(r, now)
            table.add_row(
                escape(r.name),
                escape(r.sam),
                format_local(r.password_last_set) or "-",
                _expires_cell(r, st),
                "" if left is None else str(left),
                style=_STATUS_STYLE.get(st, ""),
            )
        console.print(table)

    c = summarize(records, now, warn_days)
    console.print(
        f"Total: {c['total']}  expired: [red]{c['expired']}[/red]  "
        f"expiring within {warn_days} days: [yellow]{c['warning']}[/yellow]  "
        f"must change: {c['must_change']}  never expire: {c['never']}"
    )
