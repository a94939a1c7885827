"""User roles and permission levels for DocFlow.

Roles map to numeric levels; every permission check compares levels rather
than role names so that thresholds can be configured:

┌─────────────┬───────┬──────────────────────────────────────────────┐
│ Role        │ Level │ Typical capability                           │
├─────────────┼───────┼──────────────────────────────────────────────┤
│ SUPER_ADMIN │ 1000  │ Everything; escalation target for approvals  │
│ HOD         │  700  │ Department approver                          │
│ MANAGER     │  600  │ Upload, full search access                   │
│ STAFF       │   50  │ Upload, scoped search                        │
│ VIEWER      │   10  │ Scoped search only                           │
└─────────────┴───────┴──────────────────────────────────────────────┘
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles in DocFlow.

    Values are stored as TEXT in the database and must match exactly.
    """
    SUPER_ADMIN = "SUPER_ADMIN"
    HOD = "HOD"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    VIEWER = "VIEWER"


ROLE_LEVELS = {
    UserRole.SUPER_ADMIN: 1000,
    UserRole.HOD: 700,
    UserRole.MANAGER: 600,
    UserRole.STAFF: 50,
    UserRole.VIEWER: 10,
}


def role_level(role) -> int:
    """Numeric level for a role name or enum member (0 when unknown)."""
    try:
        return ROLE_LEVELS[UserRole(role)]
    except ValueError:
        return 0


def has_permission(user_level: int, required_level: int) -> bool:
    """Check whether a role level satisfies a required minimum level.

    Examples:
        >>> has_permission(1000, 700)
        True
        >>> has_permission(50, 700)
        False
        >>> has_permission(700, 700)
        True
    """
    return (user_level or 0) >= required_level
