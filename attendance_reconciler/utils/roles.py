"""
Role utility functions for handling both enum and string role values
"""
from attendance_reconciler.models.employee import Role

# Roles allowed to act on the first (manager) stage of an adjustment
MANAGER_REVIEW_ROLES = frozenset({Role.MANAGER, Role.EXECUTIVE, Role.HR, Role.ADMIN, Role.SUPER_ADMIN})
# Roles allowed to act on the final (HR) stage of an adjustment
HR_REVIEW_ROLES = frozenset({Role.HR, Role.ADMIN, Role.SUPER_ADMIN})
# Roles that see every employee's attendance
ORG_WIDE_ROLES = frozenset({Role.EXECUTIVE, Role.HR, Role.ADMIN, Role.SUPER_ADMIN})
# Roles that see every adjustment request regardless of stage
ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


def role_name(role):
    """
    Safely extract role name from either enum or string

    Args:
        role: Either a Role enum instance or a string

    Returns:
        str: The role name as string
    """
    return role.value if hasattr(role, "value") else str(role)


def has_role(user, roles) -> bool:
    """True if the user's role is one of roles. Unknown role strings never match."""
    name = role_name(user.role).upper()
    return any(name == role_name(r) for r in roles)
