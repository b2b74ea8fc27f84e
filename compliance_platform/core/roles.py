"""
Role definitions for RBAC.

Roles in hierarchy (lowest to highest):
- viewer: Read-only access to assessments, risks, threat models and reports
- operator: Record control assessments, create and update risks and threats
- security_analyst: Delete risks, assets and threats; manage threat models
- auditor: Security analyst rights, reserved for audit reviewers
- admin: Full access including API key management
"""
from enum import Enum
from typing import Dict, Set


class Role(str, Enum):
    """User roles with hierarchy."""
    VIEWER = "viewer"
    OPERATOR = "operator"
    SECURITY_ANALYST = "security_analyst"
    AUDITOR = "auditor"
    ADMIN = "admin"


# Role hierarchy (numeric levels for comparison)
ROLE_HIERARCHY: Dict[str, int] = {
    Role.VIEWER.value: 1,
    Role.OPERATOR.value: 2,
    Role.SECURITY_ANALYST.value: 3,
    Role.AUDITOR.value: 4,
    Role.ADMIN.value: 5,
}

# Organization membership roles map onto the API roles
LEGACY_ROLE_MAP: Dict[str, str] = {
    "member": Role.OPERATOR.value,
    "owner": Role.ADMIN.value,
}

VALID_ROLES: Set[str] = {r.value for r in Role}


def normalize_role(role: str) -> str:
    """
    Normalize role string, handling legacy and membership roles.

    Unknown roles fall back to viewer.
    """
    role_lower = role.lower().strip()

    if role_lower in LEGACY_ROLE_MAP:
        return LEGACY_ROLE_MAP[role_lower]

    if role_lower in VALID_ROLES:
        return role_lower

    return Role.VIEWER.value


def has_permission(user_role: str, required_role: str) -> bool:
    """Check if user role meets the minimum required role."""
    user_level = ROLE_HIERARCHY.get(normalize_role(user_role), 0)
    required_level = ROLE_HIERARCHY.get(normalize_role(required_role), 0)
    return user_level >= required_level
