from __future__ import annotations

from hopefund.extensions import db

from .mixins import STATUS_ACTIVE, TimestampMixin, iso

role_permissions = db.Table(
    "role_permissions",
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    db.Column(
        "permission_id",
        db.Integer,
        db.ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Role(db.Model, TimestampMixin):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), unique=True, nullable=False)
    status = db.Column(db.Integer, default=STATUS_ACTIVE, nullable=False)

    permissions = db.relationship(
        "Permission",
        secondary=role_permissions,
        back_populates="roles",
        lazy="selectin",
        order_by="Permission.name",
    )
    admins = db.relationship("Admin", back_populates="role")

    @property
    def permission_names(self) -> list:
        return [p.name for p in self.permissions if p.status == STATUS_ACTIVE]

    def as_dict(self, include_permissions: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "created_at": iso(self.created_at),
        }
        if include_permissions:
            data["permissions"] = [p.as_dict() for p in self.permissions]
        return data

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Role {self.name}>"


class Permission(db.Model, TimestampMixin):
    """A `<module>_<action>` capability, e.g. `faq_create`."""

    __tablename__ = "permissions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False, index=True)
    status = db.Column(db.Integer, default=STATUS_ACTIVE, nullable=False)

    roles = db.relationship("Role", secondary=role_permissions, back_populates="permissions")

    @property
    def module(self) -> str:
        return self.name.partition("_")[0]

    @property
    def action(self) -> str:
        return self.name.partition("_")[2]

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "module": self.module,
            "action": self.action,
            "status": self.status,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Permission {self.name}>"
