"""
Role name normalization.

Role names are stored and signed into tokens in one canonical form
(uppercase, no ``ROLE_`` prefix). Authorization compares authorities of
the form ``ROLE_<NAME>``. Every call site goes through these helpers.
"""

from typing import Optional

ADMIN = "ADMIN"
TEACHER = "TEACHER"
# Authority granted when a role is missing at authority-construction time
VIEWER = "VIEWER"

AUTHORITY_PREFIX = "ROLE_"


def normalize_role_name(name: Optional[str]) -> Optional[str]:
    """
    Canonical form of a role name: stripped, uppercase, unprefixed.

    Returns None for None or blank input.
    """
    if name is None:
        return None
    normalized = name.strip().upper()
    if normalized.startswith(AUTHORITY_PREFIX):
        normalized = normalized[len(AUTHORITY_PREFIX):]
    return normalized or None


def role_authority(name: Optional[str]) -> str:
    """Capability string for a role, e.g. ``ROLE_ADMIN``."""
    return AUTHORITY_PREFIX + (normalize_role_name(name) or VIEWER)
