from __future__ import annotations

import ipaddress


def domain_to_base_dn(domain: str) -> str:
    domain = (domain or "").strip().strip(".")
    if not domain or "." not in domain:
        return ""
    parts = [p for p in domain.split(".") if p]
    return ",".join([f"DC={p}" for p in parts])


def build_dc_fqdn(dc_short: str, domain: str) -> str:
    dc_short = (dc_short or "").strip()
    domain = (domain or "").strip().strip(".")
    if not dc_short:
        return domain

    # IP addresses and already qualified names are used as-is.
    try:
        ipaddress.ip_address(dc_short)
        return dc_short
    except ValueError:
        if "." in dc_short:
            return dc_short
        return f"{dc_short}.{domain}" if domain else dc_short


def build_bind_principal(username: str, domain: str) -> str:
    u = (username or "").strip()
    d = (domain or "").strip().strip(".")
    if not u:
        return ""
    # UPN or down-level logon name (DOMAIN\user) is passed through.
    if "@" in u or "\\" in u:
        return u
    return f"{u}@{d}" if d else u
