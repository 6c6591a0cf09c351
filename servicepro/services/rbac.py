# servicepro/services/rbac.py
"""
Role bookkeeping: assignment, expiry, statistics and the default catalog.
Permission evaluation lives in servicepro.core.rbac.
"""
import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from servicepro.db.models.rbac import ACTIONS, RESOURCES, Permission, Role, UserRole
from servicepro.db.models.user import User

logger = logging.getLogger(__name__)


class RoleAlreadyAssigned(ValueError):
    pass


class RoleLimitReached(ValueError):
    pass


# name -> (display name, description, level)
SYSTEM_ROLES = {
    "admin": ("Administrator", "Full system access", 10),
    "provider": ("Service Provider", "Service provider access", 5),
    "user": ("User", "Basic user access", 1),
    "evaluator": ("Quality Evaluator", "Quality assessment access", 7),
}

# role -> [(resource, actions, own_data_only)]; admin receives the whole catalog
SYSTEM_ROLE_GRANTS = {
    "provider": [
        ("providers", ("read", "update"), True),
        ("appointments", ("read", "update"), True),
        ("reviews", ("read",), True),
    ],
    "user": [
        ("users", ("read", "update"), True),
        ("providers", ("read",), False),
        ("appointments", ("create", "read", "update"), True),
        ("reviews", ("create", "read", "update"), True),
    ],
    "evaluator": [
        ("providers", ("read",), False),
        ("quality_scores", ("read", "create", "update"), False),
        ("reviews", ("read", "moderate"), False),
    ],
}


def _active_filter(now):
    return [
        UserRole.is_active.is_(True),
        or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
    ]


# ---- assignments ----

def get_user_roles(db: Session, user_id: int, include_inactive: bool = False):
    """Assignments for a user, newest first; active and unexpired unless include_inactive."""
    q = db.query(UserRole).filter(UserRole.user_id == user_id)
    if not include_inactive:
        q = q.filter(*_active_filter(datetime.utcnow()))
    return q.order_by(UserRole.assigned_at.desc(), UserRole.id.desc()).all()


def get_users_with_role(db: Session, role_id: int, include_inactive: bool = False):
    q = db.query(UserRole).filter(UserRole.role_id == role_id)
    if not include_inactive:
        q = q.filter(*_active_filter(datetime.utcnow()))
    return q.order_by(UserRole.assigned_at.desc()).all()


def user_has_role(db: Session, user_id: int, role_name: str) -> bool:
    return any(ur.role.name == role_name for ur in get_user_roles(db, user_id))


def assign_role(db: Session, user_id: int, role: Role, assigned_by=None, expires_at=None, role_data=None, reason=""):
    existing = db.query(UserRole).filter(
        UserRole.user_id == user_id,
        UserRole.role_id == role.id,
        UserRole.is_active.is_(True),
    ).first()
    if existing:
        raise RoleAlreadyAssigned("User already has this role")

    if role.max_users is not None and len(get_users_with_role(db, role.id)) >= role.max_users:
        raise RoleLimitReached(f"Role {role.name} is limited to {role.max_users} users")

    user_role = UserRole(
        user_id=user_id,
        role_id=role.id,
        assigned_by=assigned_by,
        expires_at=expires_at,
        role_data=role_data or {},
    )
    user_role.record("assigned", assigned_by, reason)
    db.add(user_role)
    db.commit()
    db.refresh(user_role)
    logger.info("Role %s assigned to user %s by %s", role.name, user_id, assigned_by)
    return user_role


def revoke_role(db: Session, user_id: int, role_id: int, revoked_by, reason=""):
    user_role = db.query(UserRole).filter(
        UserRole.user_id == user_id,
        UserRole.role_id == role_id,
        UserRole.is_active.is_(True),
    ).first()
    if not user_role:
        return None
    user_role.revoke(revoked_by, reason)
    db.commit()
    logger.info("Role %s revoked from user %s by %s", role_id, user_id, revoked_by)
    return user_role


def assign_system_role(db: Session, user: User, assigned_by=None):
    """Give an account the system role matching its role tag, if both exist and it lacks it."""
    role = db.query(Role).filter(Role.name == user.role, Role.is_active.is_(True)).first()
    if not role:
        return None
    try:
        return assign_role(db, user.id, role, assigned_by=assigned_by, reason="Default role for account type")
    except RoleAlreadyAssigned:
        return None


def cleanup_expired_roles(db: Session) -> int:
    now = datetime.utcnow()
    expired = db.query(UserRole).filter(
        UserRole.is_active.is_(True),
        UserRole.expires_at.isnot(None),
        UserRole.expires_at < now,
    ).all()
    for user_role in expired:
        user_role.is_active = False
        user_role.record("expired", None, "Automatic expiration")
    db.commit()
    if expired:
        logger.info("Deactivated %d expired role assignments", len(expired))
    return len(expired)


def role_statistics(db: Session):
    now = datetime.utcnow()
    stats = {}
    for user_role in db.query(UserRole).all():
        entry = stats.setdefault(user_role.role.name, {
            "role": user_role.role.name,
            "role_name": user_role.role.display_name,
            "total_assignments": 0,
            "active_assignments": 0,
            "expired_assignments": 0,
        })
        entry["total_assignments"] += 1
        if user_role.is_active:
            if user_role.is_expired(now):
                entry["expired_assignments"] += 1
            else:
                entry["active_assignments"] += 1
    return sorted(stats.values(), key=lambda s: s["total_assignments"], reverse=True)


# ---- default catalog ----

def _permission_description(resource: str, action: str) -> str:
    return f"{action.capitalize()} {resource.replace('_', ' ')}"


def seed_default_rbac(db: Session):
    """
    Idempotently create every resource:action permission, the four system
    roles with their grants, and assign those roles to existing accounts
    by role tag.
    """
    permissions = {}
    for resource in RESOURCES:
        for action in ACTIONS:
            name = f"{resource}:{action}"
            perm = db.query(Permission).filter(Permission.name == name).first()
            if not perm:
                perm = Permission(
                    name=name,
                    description=_permission_description(resource, action),
                    resource=resource,
                    action=action,
                )
                db.add(perm)
            permissions[name] = perm
    db.flush()

    roles = {}
    for name, (display_name, description, level) in SYSTEM_ROLES.items():
        role = db.query(Role).filter(Role.name == name).first()
        if not role:
            role = Role(name=name, display_name=display_name, description=description, level=level, is_system=True)
            db.add(role)
        roles[name] = role

    for perm in permissions.values():
        roles["admin"].grant(perm)
    for name, grants in SYSTEM_ROLE_GRANTS.items():
        for resource, actions, own_data_only in grants:
            for action in actions:
                roles[name].grant(permissions[f"{resource}:{action}"], own_data_only=own_data_only)
    db.commit()

    assigned = 0
    for user in db.query(User).filter(User.role.in_(tuple(SYSTEM_ROLES))).all():
        if assign_system_role(db, user):
            assigned += 1

    logger.info("RBAC seeded: %d permissions, %d roles, %d new assignments", len(permissions), len(roles), assigned)
    return list(roles.values())
