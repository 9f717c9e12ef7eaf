"""Small, side-effect free helpers.

Keep this package dependency-light to avoid circular imports.
"""

from .dn import dn_first_component_value, split_dn, top_level_ou  # noqa: F401
