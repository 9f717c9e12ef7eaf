from __future__ import annotations


def _unescape(val: str) -> str:
    out: list[str] = []
    esc = False
    for ch in val:
        if esc:
            out.append(ch)
            esc = False
            continue
        if ch == "\\":
            esc = True
            continue
        out.append(ch)
    return "".join(out).strip()


def split_dn(dn: str) -> list[tuple[str, str]]:
    """Split a DN into (attribute, value) pairs, honouring escaped commas.

    CN=Smith\\, John,OU=Sales,DC=corp,DC=local ->
        [("CN", "Smith, John"), ("OU", "Sales"), ("DC", "corp"), ("DC", "local")]
    Attribute names are upper-cased. Components without "=" are skipped.
    """
    s = (dn or "").strip()
    if not s:
        return []

    rdns: list[str] = []
    cur: list[str] = []
    esc = False
    for ch in s:
        if esc:
            cur.append(ch)
            esc = False
            continue
        if ch == "\\":
            cur.append(ch)
            esc = True
            continue
        if ch == ",":
            rdns.append("".join(cur))
            cur = []
            continue
        cur.append(ch)
    rdns.append("".join(cur))

    out: list[tuple[str, str]] = []
    for rdn in rdns:
        rdn = rdn.strip()
        if "=" not in rdn:
            continue
        attr, val = rdn.split("=", 1)
        out.append((attr.strip().upper(), _unescape(val)))
    return out


def top_level_ou(dn: str) -> str:
    """Return the OU closest to the domain root for an object DN.

    CN=John,OU=Sales,OU=Corp,DC=corp,DC=local -> Corp
    CN=Admin,CN=Users,DC=corp,DC=local        -> Users (no OU, container)
    """
    parts = split_dn(dn)
    # The object's own RDN is never its container.
    containers = [p for p in parts[1:] if p[0] != "DC"]
    for attr, val in reversed(containers):
        if attr == "OU":
            return val
    if containers:
        return containers[-1][1]
    return ""


def dn_first_component_value(dn: str) -> str:
    """Return first RDN value from a DN (e.g. CN=USB-Deny,OU=... -> USB-Deny)."""
    parts = split_dn(dn)
    if parts:
        return parts[0][1]
    return (dn or "").strip()
