# hopefund/services/roles.py
"""
Role hierarchy rules for the role and permission management screens.

Only role/permission management uses these levels; every other admin action
goes through the plain permission checks in `services.permissions`.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

SUPER_ADMIN = "Super Admin"
ADMIN = "Admin"
OTHER = "Other"

ROLE_HIERARCHY: Dict[str, int] = {SUPER_ADMIN: 3, ADMIN: 2, OTHER: 1}

_SUPER_ALIASES = {"super admin", "superadmin"}

RoleLike = Union[str, Mapping[str, Any], Any, None]


def _name(role: RoleLike) -> str:
    if role is None:
        return ""
    if isinstance(role, str):
        return role
    if isinstance(role, Mapping):
        return str(role.get("name") or "")
    return str(getattr(role, "name", "") or "")


def role_tier(role: RoleLike) -> str:
    """Super Admin / Admin / Other for a role name (case-insensitive)."""
    name = _name(role).strip().lower()
    if name in _SUPER_ALIASES:
        return SUPER_ADMIN
    if name == "admin":
        return ADMIN
    return OTHER


def role_level(role: RoleLike) -> int:
    return ROLE_HIERARCHY[role_tier(role)]


def is_protected_role(role: RoleLike) -> bool:
    return role_tier(role) in (SUPER_ADMIN, ADMIN)


def can_modify_role(actor_role: RoleLike, target_role: RoleLike) -> bool:
    tier = role_tier(actor_role)
    if tier == SUPER_ADMIN:
        return True
    if tier == ADMIN:
        return not is_protected_role(target_role)
    return False


def can_manage_roles(actor_role: RoleLike) -> bool:
    return role_tier(actor_role) in (SUPER_ADMIN, ADMIN)


def can_see_permission_module(actor_role: RoleLike) -> bool:
    return role_tier(actor_role) == SUPER_ADMIN


def is_editing_own_role(target_role: RoleLike, actor_role: RoleLike) -> bool:
    target, actor = _name(target_role).strip().lower(), _name(actor_role).strip().lower()
    return bool(target and actor and target == actor)


def filter_permissions_for(actor_role: RoleLike, permissions: Iterable[Any]) -> List[Any]:
    """Non-super admins never see `permission_*` entries."""
    items = list(permissions or [])
    if can_see_permission_module(actor_role):
        return items
    return [p for p in items if not _name(p).startswith("permission_")]


def filter_roles_for(actor_role: RoleLike, roles: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    items = list(roles or [])
    tier = role_tier(actor_role)
    if tier == SUPER_ADMIN:
        return items
    if tier == ADMIN:
        out = []
        for r in items:
            allowed = can_modify_role(actor_role, r)
            out.append({**r, "can_modify": allowed, "can_delete": allowed})
        return out
    return []


# ─────────────────────────────────────────────────────────────
# Denial messages + operation validation
# ─────────────────────────────────────────────────────────────
def denial_message(action: str, target_role: str = "") -> str:
    which = f"the {target_role}" if target_role else "this"
    messages = {
        "modify_role": (
            f"You don't have permission to modify {which} role. "
            "Only Super Admin can modify Admin and Super Admin roles."
        ),
        "delete_role": (
            f"You don't have permission to delete {which} role. "
            "Only Super Admin can delete Admin and Super Admin roles."
        ),
        "view_permission_module": "Permission management is only available to Super Admin users.",
        "modify_own_permissions": (
            "You cannot modify the permissions of your own role. "
            "Contact a Super Admin for assistance."
        ),
        "create_role": "You don't have permission to create roles.",
        "assign_permissions": "You don't have permission to assign permissions to roles.",
        "role_management": "You don't have access to role management.",
    }
    return messages.get(action, "You don't have permission to perform this action.")


def validate_role_operation(
    operation: str, actor_role: RoleLike, target: RoleLike = None
) -> Optional[str]:
    """
    Check a role-management operation. Returns None when allowed, otherwise
    the message explaining the denial.

    operation: create | update | delete | role_management
    """
    if operation == "create":
        tier = role_tier(actor_role)
        if tier == SUPER_ADMIN:
            return None
        if tier == ADMIN:
            if not is_protected_role(target):
                return None
            return "Only Super Admin can create Admin or Super Admin roles"
        return denial_message("create_role")

    if operation == "update":
        return None if can_modify_role(actor_role, target) else denial_message("modify_role", _name(target))

    if operation == "delete":
        return None if can_modify_role(actor_role, target) else denial_message("delete_role", _name(target))

    if operation == "role_management":
        return None if can_manage_roles(actor_role) else denial_message("role_management")

    return denial_message(operation)
