"""Active Directory (LDAP) client package.

Public API:
    - ADConfig
    - ADClient
    - PasswordPolicy
    - Scope
    - UserRecord
"""

from .models import ADConfig, PasswordPolicy, Scope, UserRecord
from .client import ADClient

__all__ = ["ADConfig", "ADClient", "PasswordPolicy", "Scope", "UserRecord"]
