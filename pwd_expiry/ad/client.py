from __future__ import annotations

import logging
import ssl
from typing import Any, Optional

from ldap3 import ALL, BASE, SUBTREE, Connection, Server, Tls
from ldap3.core.exceptions import LDAPException

from ..utils.dn import dn_first_component_value
from .models import ADConfig, PasswordPolicy, Scope
from .utils import (
    ENABLED_USER_FILTER,
    ad_interval_to_timedelta,
    escape_ldap_filter_value,
    first_value,
    uac_flags,
)

log = logging.getLogger(__name__)

# LDAP result codes we treat specially.
RESULT_SUCCESS = 0
RESULT_SIZE_LIMIT_EXCEEDED = 4

# Matching rule that walks nested group membership.
LDAP_MATCHING_RULE_IN_CHAIN = "1.2.840.113556.1.4.1941"

USER_ATTRS = [
    "distinguishedName",
    "sAMAccountName",
    "displayName",
    "cn",
    "pwdLastSet",
    "userAccountControl",
]

POLICY_ATTRS = [
    "maxPwdAge",
    "minPwdAge",
    "minPwdLength",
    "pwdHistoryLength",
    "lockoutThreshold",
]


def _first(ea: dict, name: str, default: Any = "") -> Any:
    """First value of an attribute from entry_attributes_as_dict."""
    return first_value(ea.get(name), default)


def _as_int(v: Any) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return 0


class ADClient:
    def __init__(self, cfg: ADConfig) -> None:
        self.cfg = cfg

        tls_kwargs: dict[str, Any] = {
            "validate": ssl.CERT_REQUIRED if cfg.tls_validate else ssl.CERT_NONE,
        }
        # Custom CA applies only when verification is enabled.
        if cfg.tls_validate and cfg.ca_cert_file:
            tls_kwargs["ca_certs_file"] = cfg.ca_cert_file

        tls = Tls(**tls_kwargs)

        self.server = Server(
            host=cfg.host,
            port=cfg.port,
            use_ssl=cfg.use_ssl,
            get_info=ALL,
            tls=tls,
        )

    def _conn(self, user: str, password: str) -> Connection:
        conn = Connection(self.server, user=user, password=password, auto_bind=False)
        conn.open()
        if self.cfg.starttls:
            conn.start_tls()
        return conn

    def _bound(self) -> tuple[Optional[Connection], str]:
        """Open a service connection and bind; (conn, "") or (None, error)."""
        conn = self._conn(self.cfg.bind_principal, self.cfg.bind_password)
        if not conn.bind():
            res = dict(conn.result or {})
            self._close(conn)
            return None, f"Bind failed: {res.get('description', 'unknown error')}"
        return conn, ""

    @staticmethod
    def _close(conn: Optional[Connection]) -> None:
        if conn is None:
            return
        try:
            conn.unbind()
        except LDAPException as e:
            log.debug("unbind failed: %s", e)

    def _search(self, conn: Connection, base: str, flt: str, scope: str, attrs: list[str]) -> tuple[bool, str]:
        """Run a search; an empty result is not an error, a truncated one is a warning."""
        log.debug("search base=%s scope=%s filter=%s", base, scope, flt)
        conn.search(
            search_base=base,
            search_filter=flt,
            search_scope=scope,
            attributes=attrs,
            size_limit=self.cfg.size_limit,
        )
        res = dict(conn.result or {})
        code = res.get("result", RESULT_SUCCESS)
        if code == RESULT_SIZE_LIMIT_EXCEEDED:
            log.warning("Size limit exceeded for %s, result is truncated to %d entries", base, len(conn.entries))
            return True, ""
        if code != RESULT_SUCCESS:
            return False, f"Search failed: {res.get('description', 'unknown error')}"
        return True, ""

    def service_bind(self) -> tuple[bool, dict]:
        conn: Connection | None = None
        try:
            conn = self._conn(self.cfg.bind_principal, self.cfg.bind_password)
            ok = bool(conn.bind())
            res = dict(conn.result or {})
            if ok:
                log.info("Bound to %s:%s as %s", self.cfg.host, self.cfg.port, self.cfg.bind_principal)
            else:
                log.error("Bind to %s failed: %s", self.cfg.host, res)
            return ok, res
        except LDAPException as e:
            log.error("Connection to %s:%s failed: %s", self.cfg.host, self.cfg.port, e)
            return False, {"error": str(e), "description": str(e), "message": str(e)}
        finally:
            self._close(conn)

    def get_password_policy(self) -> tuple[bool, str, Optional[PasswordPolicy]]:
        """Read the default domain password policy from the domain root."""
        base = self.cfg.base_dn
        if not base:
            return False, "Base DN is empty (check the domain setting).", None

        conn: Connection | None = None
        try:
            conn, err = self._bound()
            if conn is None:
                return False, err, None

            ok, err = self._search(conn, base, "(objectClass=domain)", BASE, POLICY_ATTRS)
            if not ok:
                return False, err, None
            if len(conn.entries) != 1:
                return False, f"Domain object not found at {base}.", None

            ea = conn.entries[0].entry_attributes_as_dict or {}
            policy = PasswordPolicy(
                max_pwd_age=ad_interval_to_timedelta(_first(ea, "maxPwdAge", None)),
                min_pwd_age=ad_interval_to_timedelta(_first(ea, "minPwdAge", None)),
                min_pwd_length=_as_int(_first(ea, "minPwdLength", 0)),
                pwd_history_length=_as_int(_first(ea, "pwdHistoryLength", 0)),
                lockout_threshold=_as_int(_first(ea, "lockoutThreshold", 0)),
            )
            log.info("Password policy: max age %s, min length %d", policy.max_pwd_age, policy.min_pwd_length)
            return True, "OK", policy
        except LDAPException as e:
            return False, f"LDAP error: {e}", None
        finally:
            self._close(conn)

    def _find_containers(self, name: str, object_class: str, name_attrs: list[str]) -> tuple[bool, str, list[dict]]:
        name = (name or "").strip()
        if not name:
            return False, "Empty name.", []

        base = self.cfg.base_dn
        if not base:
            return False, "Base DN is empty (check the domain setting).", []

        conn: Connection | None = None
        try:
            conn, err = self._bound()
            if conn is None:
                return False, err, []

            if "=" in name:
                # Looks like a DN: check it exists and has the right class.
                ok, err = self._search(conn, name, f"(objectClass={object_class})", BASE, ["name"])
            else:
                safe = escape_ldap_filter_value(name)
                ors = "".join(f"({a}={safe})" for a in name_attrs)
                ok, err = self._search(conn, base, f"(&(objectClass={object_class})(|{ors}))", SUBTREE, ["name"])
            if not ok:
                return False, err, []

            items: list[dict] = []
            for e in conn.entries:
                ea = e.entry_attributes_as_dict or {}
                dn = str(e.entry_dn)
                items.append({"dn": dn, "name": str(_first(ea, "name", "") or dn_first_component_value(dn))})
            items.sort(key=lambda x: x["dn"].lower())
            return True, "OK", items
        except LDAPException as e:
            return False, f"LDAP error: {e}", []
        finally:
            self._close(conn)

    def find_ous(self, name: str) -> tuple[bool, str, list[dict]]:
        """Organizational units matching a name (or a DN).

        Returns: (ok, message, [{"dn": str, "name": str}])
        """
        return self._find_containers(name, "organizationalUnit", ["ou", "name"])

    def find_groups(self, name: str) -> tuple[bool, str, list[dict]]:
        """Groups matching a cn / sAMAccountName (or a DN).

        Returns: (ok, message, [{"dn": str, "name": str}])
        """
        return self._find_containers(name, "group", ["cn", "sAMAccountName"])

    def _scope_query(self, scope: Scope) -> tuple[str, str]:
        if scope.kind == "ou":
            return scope.dn, ENABLED_USER_FILTER
        if scope.kind == "group":
            safe_dn = escape_ldap_filter_value(scope.dn)
            if scope.recursive:
                member = f"(memberOf:{LDAP_MATCHING_RULE_IN_CHAIN}:={safe_dn})"
            else:
                member = f"(memberOf={safe_dn})"
            return self.cfg.base_dn, f"(&{ENABLED_USER_FILTER}{member})"
        return self.cfg.base_dn, ENABLED_USER_FILTER

    def list_enabled_users(self, scope: Scope) -> tuple[bool, str, list[dict]]:
        """Enabled user accounts in a scope.

        Returns: (ok, message, [{"dn", "sam", "name", "pwd_last_set", "uac"}])
        """
        if scope.kind in ("ou", "group") and not scope.dn:
            return False, f"No DN given for {scope.kind} scope.", []

        base, flt = self._scope_query(scope)
        if not base:
            return False, "Base DN is empty (check the domain setting).", []

        conn: Connection | None = None
        try:
            conn, err = self._bound()
            if conn is None:
                return False, err, []

            ok, err = self._search(conn, base, flt, SUBTREE, USER_ATTRS)
            if not ok:
                return False, err, []

            items: list[dict] = []
            for e in conn.entries:
                ea = e.entry_attributes_as_dict or {}
                dn = str(_first(ea, "distinguishedName", "") or e.entry_dn)
                if not dn:
                    continue
                sam = str(_first(ea, "sAMAccountName", "") or "")
                name = str(_first(ea, "displayName", "") or "") or str(_first(ea, "cn", "") or "") or sam
                items.append({
                    "dn": dn,
                    "sam": sam,
                    "name": name,
                    "pwd_last_set": _first(ea, "pwdLastSet", None),
                    "uac": uac_flags(_first(ea, "userAccountControl", 0)),
                })
            log.info("Found %d enabled users in %s scope %s", len(items), scope.kind, scope.label or base)
            return True, "OK", items
        except LDAPException as e:
            return False, f"LDAP error: {e}", []
        finally:
            self._close(conn)
