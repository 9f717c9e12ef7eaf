"""Password expiry report for enabled Active Directory accounts.

Pipeline: bind -> read domain password policy -> resolve scope (OU, group or
all enabled accounts) -> compute expiry per user -> sort by top-level OU and
expiry -> print -> optional timestamped CSV/XLSX export.

Every option falls back to settings (environment / .env) and then to an
interactive prompt.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from .ad import ADClient, Scope
from .export import export_records
from .log_config import setup_logging
from .render import render_policy, render_records
from .report import build_records, filter_expiring, sort_records
from .settings import get_settings

log = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Report password expiry dates of enabled AD accounts.")
console = Console()

_SCOPE_CHOICES = {"1": "ou", "2": "group", "3": "all"}


def _fail(msg: str) -> NoReturn:
    log.error(msg)
    console.print(f"[bold red]{escape(msg)}[/bold red]")
    raise typer.Exit(1)


def _prompt_scope() -> str:
    console.print("Which accounts should be checked?")
    console.print("  1) users in an organizational unit")
    console.print("  2) members of a group")
    console.print("  3) all enabled users")
    while True:
        choice = str(typer.prompt("Choice", default="3")).strip().lower()
        if choice in _SCOPE_CHOICES:
            return _SCOPE_CHOICES[choice]
        if choice in _SCOPE_CHOICES.values():
            return choice
        console.print("[yellow]Enter 1, 2 or 3.[/yellow]")


def _choose(kind: str, query: str, items: list[dict]) -> dict:
    """Pick one directory object out of the matches for a name."""
    if not items:
        _fail(f"No {kind} found matching '{query}'.")
    if len(items) == 1:
        return items[0]

    console.print(f"Several {kind}s match '{query}':")
    for i, it in enumerate(items, 1):
        console.print(f"  {i}) {escape(it['dn'])}")
    while True:
        n = typer.prompt("Number", type=int)
        if 1 <= n <= len(items):
            return items[n - 1]
        console.print(f"[yellow]Enter a number from 1 to {len(items)}.[/yellow]")


def resolve_scope(
    client: ADClient,
    kind: Optional[str],
    ou: Optional[str],
    group: Optional[str],
    recursive: bool,
) -> Scope:
    if not kind:
        if ou:
            kind = "ou"
        elif group:
            kind = "group"
        else:
            kind = _prompt_scope()
    kind = kind.strip().lower()

    if kind == "all":
        return Scope(kind="all", dn=client.cfg.base_dn, label="all enabled accounts")

    if kind == "ou":
        name = ou or typer.prompt("OU name or DN")
        ok, msg, items = client.find_ous(name)
        if not ok:
            _fail(f"OU lookup failed: {msg}")
        picked = _choose("OU", name, items)
        return Scope(kind="ou", dn=picked["dn"], label=picked["name"])

    if kind == "group":
        name = group or typer.prompt("Group name or DN")
        ok, msg, items = client.find_groups(name)
        if not ok:
            _fail(f"Group lookup failed: {msg}")
        picked = _choose("group", name, items)
        return Scope(kind="group", dn=picked["dn"], label=picked["name"], recursive=recursive)

    _fail(f"Unknown scope '{kind}' (expected ou, group or all).")


@app.command()
def report(
    dc: Optional[str] = typer.Option(None, "--dc", help="Domain controller (short name, FQDN or IP)."),
    domain: Optional[str] = typer.Option(None, "--domain", help="DNS domain, e.g. corp.example.com."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Bind user (sAMAccountName or UPN)."),
    password: Optional[str] = typer.Option(None, "--password", help="Bind password (prompted if omitted)."),
    scope: Optional[str] = typer.Option(None, "--scope", help="ou | group | all"),
    ou: Optional[str] = typer.Option(None, "--ou", help="OU name or DN."),
    group: Optional[str] = typer.Option(None, "--group", help="Group name or DN."),
    recursive: bool = typer.Option(False, "--recursive", help="Include nested group members."),
    export: Optional[bool] = typer.Option(None, "--export/--no-export", help="Write a snapshot file."),
    fmt: Optional[str] = typer.Option(None, "--format", help="csv | xlsx"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help="Directory for the snapshot file."),
    warn_days: Optional[int] = typer.Option(None, "--warn-days", help="Highlight passwords expiring sooner."),
    expiring_within: Optional[int] = typer.Option(
        None, "--expiring-within", help="Only show passwords expired or expiring within N days."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on the console."),
) -> None:
    st = get_settings()
    setup_logging(
        level="DEBUG" if verbose else st.log_level,
        log_dir=st.log_dir,
        retention_days=st.log_retention_days,
        console_level="DEBUG" if verbose else "WARNING",
    )

    cfg = st.ad_config()
    if dc:
        cfg.dc_short = dc
    if domain:
        cfg.domain = domain
    if user:
        cfg.bind_username = user
    if password:
        cfg.bind_password = password

    if not cfg.dc_short and not cfg.domain:
        _fail("Domain controller / domain not set (use --dc/--domain or AD_DC/AD_DOMAIN).")
    if not cfg.base_dn:
        _fail("Cannot derive a base DN: set a dotted --domain or AD_BASE_DN.")
    if not cfg.bind_username:
        cfg.bind_username = typer.prompt("Bind user")
    if not cfg.bind_password:
        cfg.bind_password = typer.prompt(f"Password for {cfg.bind_principal}", hide_input=True)

    warn = st.warn_days if warn_days is None else warn_days
    export_fmt = (fmt or st.export_format or "csv").strip().lower()
    if export_fmt not in ("csv", "xlsx"):
        _fail(f"Unknown export format '{export_fmt}' (expected csv or xlsx).")

    client = ADClient(cfg)

    ok, res = client.service_bind()
    if not ok:
        detail = res.get("description") or res.get("message") or "unknown error"
        _fail(f"Cannot connect to {cfg.host}:{cfg.port}: {detail}")

    ok, msg, policy = client.get_password_policy()
    if not ok or policy is None:
        _fail(f"Cannot read the domain password policy: {msg}")

    sc = resolve_scope(client, scope, ou, group, recursive)

    ok, msg, raw_users = client.list_enabled_users(sc)
    if not ok:
        _fail(f"User query failed: {msg}")

    now = datetime.now(timezone.utc)
    records = sort_records(build_records(raw_users, policy))
    if expiring_within is not None:
        records = filter_expiring(records, expiring_within, now)

    render_policy(console, policy, sc)
    if not records:
        console.print("No matching enabled users found.")
        return

    render_records(console, records, warn_days=warn, now=now)

    if export is None:
        export = typer.confirm(f"Export results to {export_fmt.upper()}?", default=False)
    if not export:
        return

    try:
        path = export_records(records, output_dir or st.export_dir, export_fmt, now=now.astimezone())
    except OSError as e:
        _fail(f"Export failed: {e}")
    console.print(f"Exported {len(records)} records to [bold]{escape(path)}[/bold]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
