# servicepro/db/models/rbac.py
import math
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

RESOURCES = (
    "users",
    "providers",
    "appointments",
    "reviews",
    "complaints",
    "notifications",
    "messages",
    "quality_scores",
    "analytics",
    "admin_panel",
    "blog_posts",
    "categories",
    "system_settings",
)
ACTIONS = (
    "create", "read", "update", "delete", "approve", "reject",
    "moderate", "assign", "export", "import", "manage",
)
AUDIT_ACTIONS = ("assigned", "activated", "deactivated", "expired", "revoked", "updated")


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)  # resource:action
    description = Column(String, nullable=False)
    resource = Column(String, nullable=False, index=True)
    action = Column(String, nullable=False)
    level = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def full_permission(self) -> str:
        return f"{self.resource}:{self.action}"


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=False)
    description = Column(String, nullable=False)
    level = Column(Integer, nullable=False)  # 1..10
    is_active = Column(Boolean, nullable=False, default=True)
    is_system = Column(Boolean, nullable=False, default=False)
    max_users = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    permissions = relationship(
        "RolePermission", back_populates="role", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def permission_count(self) -> int:
        return len([p for p in self.permissions if p.granted])

    def grant(self, permission, own_data_only=False, same_organization=False, same_category=False):
        """Grant a permission, merging conditions into an existing grant."""
        for rp in self.permissions:
            if rp.permission_id == permission.id:
                rp.granted = True
                rp.own_data_only = rp.own_data_only or own_data_only
                rp.same_organization = rp.same_organization or same_organization
                rp.same_category = rp.same_category or same_category
                return rp
        rp = RolePermission(
            permission_id=permission.id,
            permission=permission,
            granted=True,
            own_data_only=own_data_only,
            same_organization=same_organization,
            same_category=same_category,
        )
        self.permissions.append(rp)
        return rp

    def revoke(self, permission_id: int):
        self.permissions = [p for p in self.permissions if p.permission_id != permission_id]

    def find_grant(self, permission_id: int):
        for rp in self.permissions:
            if rp.permission_id == permission_id and rp.granted:
                return rp
        return None


class RolePermission(Base):
    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint("role_id", "permission_id"),)

    id = Column(Integer, primary_key=True, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)
    granted = Column(Boolean, nullable=False, default=True)

    # conditions
    own_data_only = Column(Boolean, nullable=False, default=False)
    same_organization = Column(Boolean, nullable=False, default=False)
    same_category = Column(Boolean, nullable=False, default=False)

    role = relationship("Role", back_populates="permissions")
    permission = relationship("Permission", lazy="joined")

    @property
    def has_conditions(self) -> bool:
        return self.own_data_only or self.same_organization or self.same_category


class UserRole(Base):
    """
    Assignment of a role to a user. role_data carries the scope the
    conditions are evaluated against: organization, department, region,
    country and categories.
    """
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_at = Column(DateTime, default=datetime.utcnow, index=True)
    expires_at = Column(DateTime, nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    role_data = Column(JSON, nullable=False, default=dict)

    user = relationship("User", foreign_keys=[user_id], back_populates="user_roles")
    role = relationship("Role", lazy="joined")
    audit_log = relationship(
        "UserRoleAudit", back_populates="user_role", cascade="all, delete-orphan", order_by="UserRoleAudit.id"
    )

    def is_expired(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return self.expires_at is not None and self.expires_at < now

    @property
    def status(self) -> str:
        if not self.is_active:
            return "inactive"
        if self.is_expired():
            return "expired"
        return "active"

    @property
    def days_until_expiration(self):
        if self.expires_at is None:
            return None
        return math.ceil((self.expires_at - datetime.utcnow()).total_seconds() / 86400)

    def record(self, action, performed_by=None, reason="", metadata=None):
        self.audit_log.append(
            UserRoleAudit(action=action, performed_by=performed_by, reason=reason, extra=metadata or {})
        )

    def activate(self, performed_by, reason=""):
        self.is_active = True
        self.record("activated", performed_by, reason)

    def deactivate(self, performed_by, reason=""):
        self.is_active = False
        self.record("deactivated", performed_by, reason)

    def revoke(self, performed_by, reason=""):
        self.is_active = False
        self.record("revoked", performed_by, reason)

    def extend_expiration(self, expires_at, performed_by, reason=""):
        self.expires_at = expires_at
        self.record("updated", performed_by, reason, {"new_expiration": expires_at.isoformat()})

    def update_role_data(self, data: dict, performed_by, reason=""):
        merged = dict(self.role_data or {})
        merged.update(data)
        self.role_data = merged
        self.record("updated", performed_by, reason, {"updated_fields": sorted(data)})


class UserRoleAudit(Base):
    __tablename__ = "user_role_audit"

    id = Column(Integer, primary_key=True, index=True)
    user_role_id = Column(Integer, ForeignKey("user_roles.id", ondelete="CASCADE"), nullable=False)
    action = Column(String, nullable=False)
    performed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    performed_at = Column(DateTime, default=datetime.utcnow)
    reason = Column(String, nullable=True)
    extra = Column("metadata", JSON, nullable=False, default=dict)

    user_role = relationship("UserRole", back_populates="audit_log")
