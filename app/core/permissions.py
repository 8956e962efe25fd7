"""
Roles and the capability table used for every authorization decision.

systemAdmin strictly dominates admin; admin, user and guest are otherwise
incomparable, so permissions are expressed as explicit capabilities rather
than a role ordering.
"""

from enum import Enum

from app.core.errors import Forbidden


class Role(str, Enum):
    USER = "user"
    GUEST = "guest"
    ADMIN = "admin"
    SYSTEM_ADMIN = "systemAdmin"


class Action(str, Enum):
    VIEW_OWN_PROFILE = "view_own_profile"
    CHANGE_OWN_PASSWORD = "change_own_password"
    CHANGE_ANY_PASSWORD = "change_any_password"
    CHANGE_SYSTEM_ADMIN_PASSWORD = "change_system_admin_password"
    MANAGE_USERS = "manage_users"
    ASSIGN_ADMIN_ROLES = "assign_admin_roles"
    MANAGE_SYSTEM_ADMINS = "manage_system_admins"


VALID_ROLES = tuple(r.value for r in Role)
DEFAULT_ROLE = Role.GUEST
ADMIN_ROLES = frozenset({Role.ADMIN, Role.SYSTEM_ADMIN})
# Roles only a holder of ASSIGN_ADMIN_ROLES may grant.
PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.SYSTEM_ADMIN})

_SELF_SERVICE = frozenset({Action.VIEW_OWN_PROFILE, Action.CHANGE_OWN_PASSWORD})

ROLE_CAPABILITIES: dict[Role, frozenset[Action]] = {
    Role.GUEST: _SELF_SERVICE,
    Role.USER: _SELF_SERVICE,
    Role.ADMIN: _SELF_SERVICE | {Action.CHANGE_ANY_PASSWORD, Action.MANAGE_USERS},
    Role.SYSTEM_ADMIN: _SELF_SERVICE
    | {
        Action.CHANGE_ANY_PASSWORD,
        Action.CHANGE_SYSTEM_ADMIN_PASSWORD,
        Action.MANAGE_USERS,
        Action.ASSIGN_ADMIN_ROLES,
        Action.MANAGE_SYSTEM_ADMINS,
    },
}


def parse_role(value: str | Role | None) -> Role | None:
    """Return the Role for a stored or claimed value, or None if it is not one of the four."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def has_capability(role: str | Role | None, action: Action) -> bool:
    parsed = parse_role(role)
    if parsed is None:
        return False
    return action in ROLE_CAPABILITIES[parsed]


def authorize(role: str | Role | None, action: Action, message: str | None = None) -> None:
    """Raise Forbidden unless the role holds the capability."""
    if not has_capability(role, action):
        raise Forbidden(message)
