from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal, Optional

from ..ad_utils import build_bind_principal, build_dc_fqdn, domain_to_base_dn
from ..utils.net import resolve_hostname_with_dns

ScopeKind = Literal["ou", "group", "all"]


@dataclass
class ADConfig:
    dc_short: str
    domain: str
    port: int
    use_ssl: bool
    starttls: bool
    bind_username: str
    bind_password: str
    explicit_base_dn: str = ""
    tls_validate: bool = False
    ca_cert_file: str = ""
    dns_server: str = ""
    size_limit: int = 0
    _resolved_host: str = field(default="", init=False, repr=False)

    @property
    def host(self) -> str:
        if self._resolved_host:
            return self._resolved_host
        fqdn = build_dc_fqdn(self.dc_short, self.domain)
        if self.dns_server:
            resolved_ip = resolve_hostname_with_dns(fqdn, self.dns_server)
            if resolved_ip:
                self._resolved_host = resolved_ip
                return self._resolved_host
        self._resolved_host = fqdn
        return self._resolved_host

    @property
    def base_dn(self) -> str:
        explicit = (self.explicit_base_dn or "").strip()
        if explicit:
            return explicit
        return domain_to_base_dn(self.domain)

    @property
    def bind_principal(self) -> str:
        return build_bind_principal(self.bind_username, self.domain)


@dataclass
class PasswordPolicy:
    """Default domain password policy, as read from the domain root object."""

    max_pwd_age: Optional[timedelta]
    min_pwd_age: Optional[timedelta] = None
    min_pwd_length: int = 0
    pwd_history_length: int = 0
    lockout_threshold: int = 0

    @property
    def passwords_expire(self) -> bool:
        return self.max_pwd_age is not None


@dataclass
class Scope:
    kind: ScopeKind
    dn: str = ""
    label: str = ""
    recursive: bool = False


@dataclass
class UserRecord:
    name: str
    sam: str
    dn: str
    top_ou: str
    password_last_set: Optional[datetime]
    password_expires: Optional[datetime] = None
    password_never_expires: bool = False

    @property
    def must_change(self) -> bool:
        # pwdLastSet = 0: the user has to set a password at next logon.
        return self.password_last_set is None
