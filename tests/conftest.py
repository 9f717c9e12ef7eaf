"""Shared fixtures: an in-memory stand-in for an ldap3 connection."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from pwd_expiry.ad import ADClient, ADConfig
from pwd_expiry.settings import get_settings

BASE_DN = "DC=corp,DC=local"


class FakeEntry:
    def __init__(self, dn: str, attrs: dict[str, Any]) -> None:
        self.entry_dn = dn
        self.entry_attributes_as_dict = {
            k: (v if isinstance(v, list) else [v]) for k, v in attrs.items()
        }


def user_entry(
    dn: str,
    sam: str,
    pwd_last_set: Any,
    display: str = "",
    uac: int = 512,
) -> FakeEntry:
    attrs: dict[str, Any] = {
        "distinguishedName": dn,
        "sAMAccountName": sam,
        "pwdLastSet": pwd_last_set,
        "userAccountControl": uac,
        "cn": dn.split(",", 1)[0].split("=", 1)[1],
    }
    if display:
        attrs["displayName"] = display
    return FakeEntry(dn, attrs)


@dataclass
class FakeDirectory:
    """Answers searches by looking at the filter, records every call."""

    bind_ok: bool = True
    max_pwd_age: Any = timedelta(days=-42)
    ous: list[FakeEntry] = field(default_factory=list)
    groups: list[FakeEntry] = field(default_factory=list)
    users: list[FakeEntry] = field(default_factory=list)
    user_result: int = 0
    searches: list[dict] = field(default_factory=list)
    binds: list[tuple[str, str]] = field(default_factory=list)
    unbinds: int = 0

    def connect(self, user: str, password: str) -> "FakeConnection":
        return FakeConnection(self, user, password)


class FakeConnection:
    def __init__(self, directory: FakeDirectory, user: str, password: str) -> None:
        self.d = directory
        self.user = user
        self.password = password
        self.entries: list[FakeEntry] = []
        self.result: dict = {}

    def bind(self) -> bool:
        self.d.binds.append((self.user, self.password))
        if self.d.bind_ok:
            self.result = {"result": 0, "description": "success"}
            return True
        self.result = {"result": 49, "description": "invalidCredentials"}
        return False

    def unbind(self) -> None:
        self.d.unbinds += 1

    def search(self, search_base, search_filter, search_scope, attributes, size_limit=0):
        self.d.searches.append({
            "base": search_base,
            "filter": search_filter,
            "scope": search_scope,
            "attributes": attributes,
            "size_limit": size_limit,
        })
        code = 0
        if search_filter == "(objectClass=domain)":
            entries = [FakeEntry(search_base, {
                "maxPwdAge": self.d.max_pwd_age,
                "minPwdAge": timedelta(days=-1),
                "minPwdLength": 8,
                "pwdHistoryLength": 24,
                "lockoutThreshold": 5,
            })]
        elif "objectClass=organizationalUnit" in search_filter:
            entries = self._pick(self.d.ous, search_base, search_scope)
        elif "objectClass=group" in search_filter:
            entries = self._pick(self.d.groups, search_base, search_scope)
        else:
            entries = list(self.d.users)
            code = self.d.user_result
        self.entries = entries
        self.result = {"result": code, "description": "success" if code == 0 else "error"}
        return bool(entries)

    @staticmethod
    def _pick(items: list[FakeEntry], base: str, scope: str) -> list[FakeEntry]:
        if scope == "BASE":
            return [e for e in items if e.entry_dn.lower() == base.lower()]
        return list(items)


@pytest.fixture
def ad_config() -> ADConfig:
    return ADConfig(
        dc_short="dc1",
        domain="corp.local",
        port=636,
        use_ssl=True,
        starttls=False,
        bind_username="svc_report",
        bind_password="secret",
    )


@pytest.fixture
def directory(monkeypatch) -> FakeDirectory:
    d = FakeDirectory()
    monkeypatch.setattr(ADClient, "_conn", lambda self, user, password: d.connect(user, password))
    return d


@pytest.fixture
def client(ad_config, directory) -> ADClient:
    return ADClient(ad_config)


@pytest.fixture
def utc_now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings_env(monkeypatch, tmp_path):
    """Minimal environment for the CLI, isolated from any local .env."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AD_DC", "dc1")
    monkeypatch.setenv("AD_DOMAIN", "corp.local")
    monkeypatch.setenv("AD_BIND_USER", "svc_report")
    monkeypatch.setenv("AD_BIND_PASSWORD", "secret")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("EXPORT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("TZ", "UTC")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()
