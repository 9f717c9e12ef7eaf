"""Password expiry report for enabled Active Directory accounts."""

__version__ = "0.1.0"
