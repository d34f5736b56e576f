"""Roles, permission actions and the fixed role -> permission matrix."""

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class Permission(str, Enum):
    """Permission actions; values are the strings used at the API boundary."""

    VIEW_SUPPLIERS = "view:suppliers"
    EDIT_SUPPLIERS = "edit:suppliers"
    DELETE_SUPPLIERS = "delete:suppliers"
    VIEW_REPORTING = "view:reporting"
    EDIT_ISSUES = "edit:issues"
    MANAGE_USERS = "manage:users"
    MANAGE_AUTH = "manage:auth"


# Fixed matrix; not configurable at runtime.
ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.EDITOR: frozenset(
        {
            Permission.VIEW_SUPPLIERS,
            Permission.EDIT_SUPPLIERS,
            Permission.DELETE_SUPPLIERS,
            Permission.VIEW_REPORTING,
            Permission.EDIT_ISSUES,
        }
    ),
    Role.VIEWER: frozenset({Permission.VIEW_SUPPLIERS, Permission.VIEW_REPORTING}),
}

# Higher = more access.
ROLE_HIERARCHY: dict[Role, int] = {
    Role.ADMIN: 3,
    Role.EDITOR: 2,
    Role.VIEWER: 1,
}

ROLE_LABELS: dict[Role, str] = {
    Role.ADMIN: "Administrator",
    Role.EDITOR: "Editor",
    Role.VIEWER: "Viewer",
}

ROLE_DESCRIPTIONS: dict[Role, str] = {
    Role.ADMIN: "Full access including user management and authentication settings",
    Role.EDITOR: "Can edit suppliers and issues, but cannot manage users or settings",
    Role.VIEWER: "Read-only access to all data",
}


def role_has_permission(role: Role | None, action: Permission) -> bool:
    """True if the role grants the action. No role grants nothing."""
    if role is None:
        return False
    return action in ROLE_PERMISSIONS[role]


def role_at_least(role: Role | None, minimum: Role) -> bool:
    """True if role is the same as or above minimum in the hierarchy."""
    if role is None:
        return False
    return ROLE_HIERARCHY[role] >= ROLE_HIERARCHY[minimum]
