"""AD value conversions and connection helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from pwd_expiry import ad_utils
from pwd_expiry.ad import ADConfig
from pwd_expiry.ad import models as ad_models
from pwd_expiry.ad.utils import (
    AD_NEVER_INTERVAL,
    AD_NEVER_TIMESTAMP,
    ENABLED_USER_FILTER,
    ad_interval_to_timedelta,
    escape_ldap_filter_value,
    filetime_to_dt,
    first_value,
    uac_flags,
)

# 2024-01-01 00:00:00 UTC as FILETIME
FT_2024 = 133485408000000000


class TestEscape:
    def test_special_characters(self) -> None:
        assert escape_ldap_filter_value("a*(b)\\c\x00") == "a\\2a\\28b\\29\\5cc\\00"

    def test_plain_text_untouched(self) -> None:
        assert escape_ldap_filter_value("Domain Users") == "Domain Users"


class TestFiletime:
    def test_integer(self) -> None:
        assert filetime_to_dt(FT_2024) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_string_and_bytes(self) -> None:
        expected = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert filetime_to_dt(str(FT_2024)) == expected
        assert filetime_to_dt(str(FT_2024).encode()) == expected

    @pytest.mark.parametrize("value", [0, "0", None, -1, "junk", AD_NEVER_TIMESTAMP])
    def test_not_set(self, value) -> None:
        assert filetime_to_dt(value) is None

    def test_decoded_datetime_passes_through(self) -> None:
        dt = datetime(2025, 5, 1, 8, 30, tzinfo=timezone.utc)
        assert filetime_to_dt(dt) == dt

    def test_naive_datetime_is_utc(self) -> None:
        assert filetime_to_dt(datetime(2025, 5, 1)) == datetime(2025, 5, 1, tzinfo=timezone.utc)

    def test_decoded_epoch_means_not_set(self) -> None:
        assert filetime_to_dt(datetime(1601, 1, 1, tzinfo=timezone.utc)) is None


class TestInterval:
    def test_negative_ticks(self) -> None:
        assert ad_interval_to_timedelta(-36288000000000) == timedelta(days=42)

    def test_string_ticks(self) -> None:
        assert ad_interval_to_timedelta("-36288000000000") == timedelta(days=42)

    def test_decoded_timedelta_made_positive(self) -> None:
        assert ad_interval_to_timedelta(timedelta(days=-90)) == timedelta(days=90)
        assert ad_interval_to_timedelta(timedelta(days=90)) == timedelta(days=90)

    @pytest.mark.parametrize("value", [0, None, AD_NEVER_INTERVAL, timedelta(0), timedelta.max, "x"])
    def test_never(self, value) -> None:
        assert ad_interval_to_timedelta(value) is None


class TestSmallHelpers:
    def test_uac(self) -> None:
        assert uac_flags("66048") == 66048
        assert uac_flags(None) == 0

    def test_first_value(self) -> None:
        assert first_value(["a", "b"]) == "a"
        assert first_value([], "d") == "d"
        assert first_value("x") == "x"
        assert first_value("", "d") == "d"

    def test_enabled_filter_excludes_disabled_bit(self) -> None:
        assert "(!(userAccountControl:1.2.840.113556.1.4.803:=2))" in ENABLED_USER_FILTER


class TestConnectionHelpers:
    def test_base_dn(self) -> None:
        assert ad_utils.domain_to_base_dn("corp.example.com.") == "DC=corp,DC=example,DC=com"
        assert ad_utils.domain_to_base_dn("corp") == ""

    @pytest.mark.parametrize(
        "dc, domain, expected",
        [
            ("dc1", "corp.local", "dc1.corp.local"),
            ("dc1.other.local", "corp.local", "dc1.other.local"),
            ("10.0.0.5", "corp.local", "10.0.0.5"),
            ("", "corp.local", "corp.local"),
        ],
    )
    def test_dc_fqdn(self, dc, domain, expected) -> None:
        assert ad_utils.build_dc_fqdn(dc, domain) == expected

    def test_bind_principal(self) -> None:
        assert ad_utils.build_bind_principal("svc", "corp.local") == "svc@corp.local"
        assert ad_utils.build_bind_principal("svc@x.y", "corp.local") == "svc@x.y"
        assert ad_utils.build_bind_principal("CORP\\svc", "corp.local") == "CORP\\svc"
        assert ad_utils.build_bind_principal("", "corp.local") == ""


class TestADConfig:
    def test_explicit_base_dn_wins(self, ad_config: ADConfig) -> None:
        ad_config.explicit_base_dn = "OU=Corp,DC=corp,DC=local"
        assert ad_config.base_dn == "OU=Corp,DC=corp,DC=local"

    def test_derived_properties(self, ad_config: ADConfig) -> None:
        assert ad_config.base_dn == "DC=corp,DC=local"
        assert ad_config.bind_principal == "svc_report@corp.local"
        assert ad_config.host == "dc1.corp.local"

    def test_host_resolved_through_dns_server(self, ad_config: ADConfig, monkeypatch) -> None:
        calls = []

        def fake_resolve(name, server):
            calls.append((name, server))
            return "10.1.2.3"

        monkeypatch.setattr(ad_models, "resolve_hostname_with_dns", fake_resolve)
        ad_config.dns_server = "10.0.0.1"
        assert ad_config.host == "10.1.2.3"
        assert ad_config.host == "10.1.2.3"
        assert calls == [("dc1.corp.local", "10.0.0.1")]

    def test_dns_failure_falls_back_to_fqdn(self, ad_config: ADConfig, monkeypatch) -> None:
        monkeypatch.setattr(ad_models, "resolve_hostname_with_dns", lambda name, server: None)
        ad_config.dns_server = "10.0.0.1"
        assert ad_config.host == "dc1.corp.local"
