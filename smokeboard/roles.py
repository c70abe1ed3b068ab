"""
Role-based access control.

Roles live in the identity provider's public metadata and are carried in
the session token's ``metadata`` claim. Route guards consult PERMISSIONS
before any mutating operation.
"""
from typing import Dict, FrozenSet, Iterable, Optional

ADMIN = "admin"
TEACHER = "teacher"
STUDENT = "student"
PARENT = "parent"
STATE_DIRECTOR = "state_director"

ROLES = (ADMIN, TEACHER, STUDENT, PARENT, STATE_DIRECTOR)

ROLE_LABELS = {
    ADMIN: "NHSBBQA Admin",
    TEACHER: "Teacher / School Admin",
    STUDENT: "Student",
    PARENT: "Parent",
    STATE_DIRECTOR: "State Director",
}

_EVERYONE = ROLES

# permission -> roles allowed to use it
POLICY: Dict[str, Iterable[str]] = {
    # Events
    "events:create": [ADMIN],
    "events:edit": [ADMIN],
    "events:delete": [ADMIN],
    "events:view": _EVERYONE,
    # Teams
    "teams:create": [ADMIN, TEACHER],
    "teams:edit": [ADMIN, TEACHER],
    "teams:delete": [ADMIN],
    "teams:view": _EVERYONE,
    # Schools / charters
    "schools:activate": [ADMIN],
    "schools:request": [TEACHER],
    "schools:view": [ADMIN, TEACHER, STATE_DIRECTOR],
    # Users
    "users:manage": [ADMIN],
    "users:view_all": [ADMIN],
    "users:view_school": [ADMIN, TEACHER],
    # Reports
    "reports:all": [ADMIN],
    "reports:school": [ADMIN, TEACHER],
    "reports:own": [ADMIN, TEACHER, STUDENT, PARENT],
    "reports:state": [ADMIN, STATE_DIRECTOR],
    # Audit
    "audit:view": [ADMIN],
}


def load_permissions(policy: Dict[str, Iterable[str]]) -> Dict[str, FrozenSet[str]]:
    """Build the permission table, rejecting roles nobody has heard of."""
    table = {}
    for permission, roles in policy.items():
        unknown = set(roles) - set(ROLES)
        if unknown:
            raise ValueError(f"Unknown roles for {permission}: {sorted(unknown)}")
        table[permission] = frozenset(roles)
    return table


PERMISSIONS = load_permissions(POLICY)


def has_permission(role: Optional[str], permission: str) -> bool:
    if not role:
        return False
    return role in PERMISSIONS.get(permission, frozenset())


def has_role(role: Optional[str], allowed: Iterable[str]) -> bool:
    if not role:
        return False
    return role in allowed


def is_valid_role(role: Optional[str]) -> bool:
    return role in ROLES
