# hopefund/admin/org.py
"""Roles, permissions, role-permission assignment and admin accounts."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import IntegrityError

from hopefund.errors import Conflict, NotFound, PermissionDenied, ValidationError
from hopefund.extensions import db
from hopefund.forms import validate_payload
from hopefund.forms.org import AdminForm, AdminUpdateForm, PermissionForm, RoleForm, RolePermissionsForm
from hopefund.helpers import json_list, json_ok, request_payload
from hopefund.models import Admin, Permission, Role
from hopefund.security import current_admin
from hopefund.services import roles as hierarchy
from hopefund.services.listing import ListParams, apply_listing
from hopefund.services.permissions import clear_permission_cache, current_permissions, require_permission

from . import bp

log = logging.getLogger(__name__)


def _get_or_404(model, pk: int, label: str):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFound(f"{label} not found")
    return obj


def _actor_role() -> str:
    return current_admin().role_name


def _deny_unless(message):
    if message:
        raise PermissionDenied(message=message)


def _permissions_by_id(ids: List[int]) -> List[Permission]:
    if not ids:
        return []
    found = Permission.query.filter(Permission.id.in_(ids)).all()
    missing = sorted(set(ids) - {p.id for p in found})
    if missing:
        raise ValidationError([f"Unknown permission id(s): {', '.join(map(str, missing))}"])
    if not hierarchy.can_see_permission_module(_actor_role()) and any(p.module == "permission" for p in found):
        raise PermissionDenied(message=hierarchy.denial_message("assign_permissions"))
    return found


def _commit_unique(message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict(message)


@bp.get("/me/permissions")
def my_permissions():
    return json_ok(current_permissions().as_dict())


# ─────────────────────────────────────────────────────────────
# Roles
# ─────────────────────────────────────────────────────────────
@bp.get("/roles")
@require_permission("role_view")
def list_roles():
    _deny_unless(hierarchy.validate_role_operation("role_management", _actor_role()))
    params = ListParams.from_request()
    rows, meta = apply_listing(
        Role.query,
        Role,
        params,
        search=("name",),
        sortable={"name": Role.name, "created_at": Role.created_at},
        default_sort="name",
    )
    items = hierarchy.filter_roles_for(_actor_role(), [r.as_dict() for r in rows])
    return json_list(items, meta)


@bp.post("/roles/create")
@require_permission("role_create")
def create_role():
    form = validate_payload(RoleForm, request_payload())
    name = form.name.data.strip()
    _deny_unless(hierarchy.validate_role_operation("create", _actor_role(), name))

    role = Role(name=name, status=form.status.data)
    role.permissions = _permissions_by_id(form.permission_ids.data)
    db.session.add(role)
    _commit_unique("A role with this name already exists")
    log.info("Role %s created by admin %s", role.name, current_admin().id)
    return json_ok(role.as_dict(include_permissions=True), status=201, message="Role created successfully")


@bp.get("/roles/edit/<int:role_id>")
@require_permission("role_view")
def edit_role(role_id: int):
    role = _get_or_404(Role, role_id, "Role")
    data = role.as_dict(include_permissions=True)
    data["permissions"] = hierarchy.filter_permissions_for(_actor_role(), data["permissions"])
    data["can_modify"] = hierarchy.can_modify_role(_actor_role(), role)
    return json_ok(data)


@bp.put("/roles/update/<int:role_id>")
@require_permission("role_edit")
def update_role(role_id: int):
    role = _get_or_404(Role, role_id, "Role")
    actor_role = _actor_role()
    _deny_unless(hierarchy.validate_role_operation("update", actor_role, role))

    payload = request_payload()
    form = validate_payload(RoleForm, payload)
    new_name = form.name.data.strip()
    if new_name != role.name:
        _deny_unless(hierarchy.validate_role_operation("update", actor_role, new_name))

    if "permission_ids" in payload:
        if hierarchy.is_editing_own_role(role, actor_role):
            raise PermissionDenied(message=hierarchy.denial_message("modify_own_permissions"))
        role.permissions = _permissions_by_id(form.permission_ids.data)

    role.name = new_name
    role.status = form.status.data
    _commit_unique("A role with this name already exists")
    clear_permission_cache()
    return json_ok(role.as_dict(include_permissions=True), message="Role updated successfully")


@bp.delete("/roles/delete/<int:role_id>")
@require_permission("role_delete")
def delete_role(role_id: int):
    role = _get_or_404(Role, role_id, "Role")
    _deny_unless(hierarchy.validate_role_operation("delete", _actor_role(), role))
    if hierarchy.is_editing_own_role(role, _actor_role()):
        raise Conflict("You cannot delete your own role")
    if role.admins:
        raise Conflict("This role is assigned to one or more admins")
    db.session.delete(role)
    db.session.commit()
    clear_permission_cache()
    return json_ok(None, message="Role deleted successfully")


# ─────────────────────────────────────────────────────────────
# Role-based permission assignment
# ─────────────────────────────────────────────────────────────
@bp.get("/role-based-permission/<int:role_id>")
@require_permission("role_view")
def role_permissions(role_id: int):
    role = _get_or_404(Role, role_id, "Role")
    actor_role = _actor_role()
    available = hierarchy.filter_permissions_for(
        actor_role, [p.as_dict() for p in Permission.query.order_by(Permission.name).all()]
    )
    return json_ok(
        {
            "role": role.as_dict(),
            "assigned": [p.id for p in role.permissions],
            "permissions": available,
            "can_modify": hierarchy.can_modify_role(actor_role, role)
            and not hierarchy.is_editing_own_role(role, actor_role),
        }
    )


@bp.post("/role-based-permission/create")
@require_permission("role_edit")
def assign_role_permissions():
    form = validate_payload(RolePermissionsForm, request_payload())
    role = _get_or_404(Role, form.role_id.data, "Role")
    actor_role = _actor_role()
    _deny_unless(hierarchy.validate_role_operation("update", actor_role, role))
    if hierarchy.is_editing_own_role(role, actor_role):
        raise PermissionDenied(message=hierarchy.denial_message("modify_own_permissions"))

    role.permissions = _permissions_by_id(form.permission_ids.data)
    db.session.commit()
    clear_permission_cache()
    log.info("Permissions of role %s set to %s", role.name, role.permission_names)
    return json_ok(role.as_dict(include_permissions=True), message="Permissions assigned successfully")


# ─────────────────────────────────────────────────────────────
# Permissions (Super Admin only)
# ─────────────────────────────────────────────────────────────
def _require_permission_module():
    if not hierarchy.can_see_permission_module(_actor_role()):
        raise PermissionDenied(message=hierarchy.denial_message("view_permission_module"))


@bp.get("/permissions")
@require_permission("permission_view")
def list_permissions():
    _require_permission_module()
    params = ListParams.from_request(sort="name", direction="asc")
    rows, meta = apply_listing(
        Permission.query,
        Permission,
        params,
        search=("name",),
        sortable={"name": Permission.name, "created_at": Permission.created_at},
        default_sort="name",
    )
    return json_list([p.as_dict() for p in rows], meta)


@bp.post("/permissions/create")
@require_permission("permission_create")
def create_permission():
    _require_permission_module()
    form = validate_payload(PermissionForm, request_payload())
    perm = Permission(name=form.name.data.strip(), status=form.status.data)
    db.session.add(perm)
    _commit_unique("A permission with this name already exists")
    return json_ok(perm.as_dict(), status=201, message="Permission created successfully")


@bp.get("/permissions/edit/<int:permission_id>")
@require_permission("permission_view")
def edit_permission(permission_id: int):
    _require_permission_module()
    return json_ok(_get_or_404(Permission, permission_id, "Permission").as_dict())


@bp.put("/permissions/update/<int:permission_id>")
@require_permission("permission_edit")
def update_permission(permission_id: int):
    _require_permission_module()
    perm = _get_or_404(Permission, permission_id, "Permission")
    form = validate_payload(PermissionForm, request_payload())
    perm.name = form.name.data.strip()
    perm.status = form.status.data
    _commit_unique("A permission with this name already exists")
    clear_permission_cache()
    return json_ok(perm.as_dict(), message="Permission updated successfully")


@bp.delete("/permissions/delete/<int:permission_id>")
@require_permission("permission_delete")
def delete_permission(permission_id: int):
    _require_permission_module()
    perm = _get_or_404(Permission, permission_id, "Permission")
    db.session.delete(perm)
    db.session.commit()
    clear_permission_cache()
    return json_ok(None, message="Permission deleted successfully")


# ─────────────────────────────────────────────────────────────
# Admin accounts
# ─────────────────────────────────────────────────────────────
def _assignable_role(role_id: int) -> Role:
    role = db.session.get(Role, role_id)
    if role is None:
        raise ValidationError(["Role not found"], fields={"role_id": ["Role not found"]})
    if not hierarchy.can_modify_role(_actor_role(), role):
        raise PermissionDenied(message=f"You don't have permission to assign the {role.name} role.")
    return role


@bp.get("/admins")
@require_permission("admin_view")
def list_admins():
    params = ListParams.from_request()
    rows, meta = apply_listing(
        Admin.query,
        Admin,
        params,
        search=("name", "email"),
        sortable={"name": Admin.name, "email": Admin.email, "created_at": Admin.created_at},
    )
    return json_list([a.as_dict() for a in rows], meta)


@bp.post("/admins")
@require_permission("admin_create")
def create_admin():
    form = validate_payload(AdminForm, request_payload())
    role = _assignable_role(form.role_id.data)
    admin = Admin(
        name=form.name.data.strip(),
        email=form.email.data.strip().lower(),
        phone=form.phone.data or None,
        status=form.status.data,
        role=role,
    )
    admin.set_password(form.password.data)
    db.session.add(admin)
    _commit_unique("An admin with this email already exists")
    log.info("Admin %s created by admin %s", admin.email, current_admin().id)
    return json_ok(admin.as_dict(), status=201, message="Admin created successfully")


@bp.get("/admins/<int:admin_id>")
@require_permission("admin_view")
def admin_details(admin_id: int):
    return json_ok(_get_or_404(Admin, admin_id, "Admin").as_dict())


@bp.put("/admins/<int:admin_id>")
@require_permission("admin_edit")
def update_admin(admin_id: int):
    admin = _get_or_404(Admin, admin_id, "Admin")
    if admin.role is not None and not hierarchy.can_modify_role(_actor_role(), admin.role):
        raise PermissionDenied(message=f"You don't have permission to modify {admin.role.name} accounts.")
    form = validate_payload(AdminUpdateForm, request_payload())
    if form.role_id.data != admin.role_id:
        if admin.id == current_admin().id:
            raise PermissionDenied(message=hierarchy.denial_message("modify_own_permissions"))
        admin.role = _assignable_role(form.role_id.data)

    admin.name = form.name.data.strip()
    admin.email = form.email.data.strip().lower()
    admin.phone = form.phone.data or None
    admin.status = form.status.data
    if form.password.data:
        admin.set_password(form.password.data)
    _commit_unique("An admin with this email already exists")
    clear_permission_cache(admin.id)
    return json_ok(admin.as_dict(), message="Admin updated successfully")


@bp.delete("/admins/<int:admin_id>")
@require_permission("admin_delete")
def delete_admin(admin_id: int):
    admin = _get_or_404(Admin, admin_id, "Admin")
    if admin.id == current_admin().id:
        raise Conflict("You cannot delete your own account")
    if admin.role is not None and not hierarchy.can_modify_role(_actor_role(), admin.role):
        raise PermissionDenied(message=f"You don't have permission to delete {admin.role.name} accounts.")
    db.session.delete(admin)
    db.session.commit()
    clear_permission_cache(admin_id)
    return json_ok(None, message="Admin deleted successfully")
