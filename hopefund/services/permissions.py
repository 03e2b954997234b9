# hopefund/services/permissions.py
"""
Permission context for admins.

Permissions are named `<module>_<action>`. An admin's set comes from its
role, is loaded once per request (stored on `flask.g`) and is cached per admin
for PERMISSION_CACHE_SECONDS. Every check fails closed.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from flask import current_app, g

from hopefund.errors import AuthenticationRequired, PermissionDenied
from hopefund.extensions import db
from hopefund.models import Admin, Permission, Role
from hopefund.models.mixins import STATUS_ACTIVE
from hopefund.security import current_admin

log = logging.getLogger(__name__)

SUPER_ADMIN_ROLE = "Super Admin"

CRUD = ("create", "view", "edit", "delete")

MODULE_PERMISSIONS: Dict[str, Tuple[str, ...]] = {
    "admin": CRUD,
    "role": CRUD,
    "permission": CRUD,
    "event": CRUD,
    "faq": CRUD,
    "slider": CRUD,
    "menu": CRUD,
    "blog": CRUD,
    "page": CRUD,
    "contact": ("view", "edit"),
    "user": ("view", "details"),
    "fundraising": ("view", "review", "approve", "publish"),
    "settings": ("view", "edit"),
    "donation": ("view",),
}


def permission_name(module: str, action: str) -> str:
    return f"{module}_{action}"


def module_permissions(module: str) -> List[str]:
    return [permission_name(module, a) for a in MODULE_PERMISSIONS.get(module, ())]


def all_required_permissions() -> List[str]:
    return sorted(
        permission_name(module, action)
        for module, actions in MODULE_PERMISSIONS.items()
        for action in actions
    )


@dataclass(frozen=True)
class PermissionSet:
    admin_id: int
    role_name: str
    names: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_super_admin(self) -> bool:
        return self.role_name.strip().lower() == SUPER_ADMIN_ROLE.lower()

    def allows(self, name: str) -> bool:
        return self.is_super_admin or name in self.names

    def grouped(self) -> Dict[str, List[str]]:
        """Actions per module, e.g. {"faq": ["create", "view"]}."""
        names = all_required_permissions() if self.is_super_admin else sorted(self.names)
        out: Dict[str, List[str]] = {}
        for name in names:
            module, _, action = name.partition("_")
            out.setdefault(module, []).append(action)
        return out

    def as_dict(self) -> dict:
        return {
            "admin_id": self.admin_id,
            "role": self.role_name,
            "is_super_admin": self.is_super_admin,
            "permissions": sorted(self.names),
            "modules": self.grouped(),
        }


# ─────────────────────────────────────────────────────────────
# Cache
# ─────────────────────────────────────────────────────────────
_CACHE: Dict[int, Tuple[float, PermissionSet]] = {}
_CACHE_LOCK = threading.Lock()


def clear_permission_cache(admin_id: Optional[int] = None) -> None:
    """Drop cached sets (all admins, or one) after role/permission changes."""
    with _CACHE_LOCK:
        if admin_id is None:
            _CACHE.clear()
        else:
            _CACHE.pop(admin_id, None)
    if hasattr(g, "permission_set"):
        g.pop("permission_set")


def load_permission_set(admin: Admin) -> PermissionSet:
    role = admin.role
    if role is None or role.status != STATUS_ACTIVE:
        return PermissionSet(admin_id=admin.id, role_name=role.name if role else "")
    return PermissionSet(
        admin_id=admin.id,
        role_name=role.name,
        names=frozenset(role.permission_names),
    )


def current_permissions(admin: Optional[Admin] = None) -> PermissionSet:
    admin = admin or current_admin()
    if admin is None:
        raise AuthenticationRequired()

    cached = getattr(g, "permission_set", None)
    if cached is not None and cached.admin_id == admin.id:
        return cached

    ttl = float(current_app.config.get("PERMISSION_CACHE_SECONDS", 300))
    now = time.monotonic()
    with _CACHE_LOCK:
        hit = _CACHE.get(admin.id)
    if hit and ttl > 0 and now - hit[0] < ttl:
        perms = hit[1]
    else:
        perms = load_permission_set(admin)
        if ttl > 0:
            with _CACHE_LOCK:
                _CACHE[admin.id] = (now, perms)

    g.permission_set = perms
    return perms


# ─────────────────────────────────────────────────────────────
# Checks (fail closed)
# ─────────────────────────────────────────────────────────────
def has_permission(name: str, admin: Optional[Admin] = None) -> bool:
    try:
        return current_permissions(admin).allows(name)
    except AuthenticationRequired:
        return False
    except Exception:
        log.exception("Permission lookup failed for %s; denying", name)
        return False


def has_any_permission(names: Iterable[str], admin: Optional[Admin] = None) -> bool:
    return any(has_permission(n, admin) for n in names)


def has_module_access(module: str, admin: Optional[Admin] = None) -> bool:
    return has_any_permission(module_permissions(module), admin)


def can_perform(module: str, action: str, admin: Optional[Admin] = None) -> bool:
    return has_permission(permission_name(module, action), admin)


def allowed_actions(module: str, admin: Optional[Admin] = None) -> List[str]:
    return [a for a in MODULE_PERMISSIONS.get(module, ()) if can_perform(module, a, admin)]


def require_permission(*names: str):
    """
    Gate a view on one or more permissions (all required).

        @bp.post("/faqs/create")
        @require_permission("faq_create")
        def create_faq(): ...
    """

    def decorator(fn):
        @wraps(fn)
        def wrapped(*args, **kwargs):
            admin = current_admin()
            if admin is None:
                raise AuthenticationRequired()
            for name in names:
                if not has_permission(name, admin):
                    log.info("Admin %s denied %s", admin.id, name)
                    raise PermissionDenied(name)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


# ─────────────────────────────────────────────────────────────
# Catalogue maintenance
# ─────────────────────────────────────────────────────────────
def sync_permissions() -> Dict[str, List[str]]:
    """
    Create any missing `<module>_<action>` permission and make sure the
    Super Admin role exists and holds all of them. Safe to run repeatedly.
    """
    existing = {p.name: p for p in Permission.query.all()}
    created: List[str] = []
    for name in all_required_permissions():
        if name not in existing:
            existing[name] = Permission(name=name, status=STATUS_ACTIVE)
            db.session.add(existing[name])
            created.append(name)

    role = Role.query.filter(Role.name == SUPER_ADMIN_ROLE).first()
    if role is None:
        role = Role(name=SUPER_ADMIN_ROLE, status=STATUS_ACTIVE)
        db.session.add(role)
    held = {p.name for p in role.permissions}
    granted = [name for name in all_required_permissions() if name not in held]
    role.permissions.extend(existing[name] for name in granted)

    db.session.commit()
    clear_permission_cache()
    if created:
        log.info("Created %d permissions", len(created))
    return {"created": created, "granted": granted}


def audit_permissions() -> Dict[str, List[str]]:
    """Missing catalogue entries, and stored names no module declares."""
    stored = {p.name for p in Permission.query.all()}
    required = set(all_required_permissions())
    return {"missing": sorted(required - stored), "extra": sorted(stored - required)}
