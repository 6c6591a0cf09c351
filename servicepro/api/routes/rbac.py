# servicepro/api/routes/rbac.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from servicepro.core.rbac import get_user_permissions
from servicepro.core.security import get_current_user, require_admin
from servicepro.db.base import get_db
from servicepro.db.models.rbac import Permission, Role, UserRole
from servicepro.db.models.user import User
from servicepro.schemas.rbac import (
    MyPermissionsResponse,
    PermissionCreate,
    PermissionResponse,
    RoleAssign,
    RoleAssignmentUpdate,
    RoleCreate,
    RolePermissionIn,
    RoleResponse,
    RoleRevoke,
    RoleUpdate,
    UserRoleResponse,
)
from servicepro.services.rbac import (
    RoleAlreadyAssigned,
    RoleLimitReached,
    assign_role,
    cleanup_expired_roles,
    get_user_roles,
    revoke_role,
    role_statistics,
    seed_default_rbac,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rbac", tags=["rbac"])


def user_role_out(user_role: UserRole) -> dict:
    return {
        "id": user_role.id,
        "user_id": user_role.user_id,
        "role_id": user_role.role_id,
        "role_name": user_role.role.name,
        "assigned_by": user_role.assigned_by,
        "assigned_at": user_role.assigned_at,
        "expires_at": user_role.expires_at,
        "is_active": user_role.is_active,
        "status": user_role.status,
        "days_until_expiration": user_role.days_until_expiration,
        "role_data": user_role.role_data or {},
    }


def get_role_or_404(db: Session, role_id: int) -> Role:
    role = db.query(Role).filter(Role.id == role_id).first()
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def apply_grants(db: Session, role: Role, grants: List[RolePermissionIn], replace: bool = False):
    """Grant `resource:action` permissions; with replace=True the list becomes the role's full set."""
    wanted = {}
    for item in grants:
        permission = db.query(Permission).filter(Permission.name == item.permission).first()
        if not permission:
            raise HTTPException(status_code=400, detail=f"Unknown permission: {item.permission}")
        wanted[permission.id] = (permission, item)

    if replace:
        for rp in list(role.permissions):
            if rp.permission_id not in wanted:
                role.revoke(rp.permission_id)

    for permission, item in wanted.values():
        rp = role.grant(permission)
        rp.own_data_only = item.own_data_only
        rp.same_organization = item.same_organization
        rp.same_category = item.same_category


# ---- Caller ----

@router.get("/me/permissions", response_model=MyPermissionsResponse)
def my_permissions(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {
        "user_id": current_user.id,
        "roles": [ur.role.name for ur in get_user_roles(db, current_user.id)],
        "permissions": get_user_permissions(db, current_user),
    }


# ---- Catalog ----

@router.post("/initialize")
def initialize(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    roles = seed_default_rbac(db)
    return {
        "message": "RBAC system initialized",
        "roles": [r.name for r in roles],
        "permissions": db.query(Permission).count(),
    }


@router.get("/permissions", response_model=List[PermissionResponse])
def list_permissions(
    resource: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(Permission)
    if resource:
        q = q.filter(Permission.resource == resource)
    return q.order_by(Permission.resource, Permission.action).all()


@router.post("/permissions", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
def create_permission(payload: PermissionCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    name = f"{payload.resource}:{payload.action}"
    if db.query(Permission).filter(Permission.name == name).first():
        raise HTTPException(status_code=400, detail="Permission already exists")
    permission = Permission(name=name, **payload.model_dump())
    db.add(permission)
    db.commit()
    db.refresh(permission)
    return permission


# ---- Roles ----

@router.get("/roles", response_model=List[RoleResponse])
def list_roles(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return db.query(Role).order_by(Role.level.desc(), Role.name).all()


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
def create_role(payload: RoleCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if db.query(Role).filter(Role.name == payload.name).first():
        raise HTTPException(status_code=400, detail="Role already exists")

    role = Role(
        name=payload.name,
        display_name=payload.display_name,
        description=payload.description,
        level=payload.level,
        max_users=payload.max_users,
    )
    db.add(role)
    apply_grants(db, role, payload.permissions)
    db.commit()
    db.refresh(role)
    logger.info("Role %s created by admin %s", role.name, admin.id)
    return role


@router.put("/roles/{role_id}", response_model=RoleResponse)
def update_role(role_id: int, payload: RoleUpdate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    role = get_role_or_404(db, role_id)
    updates = payload.model_dump(exclude_none=True, exclude={"permissions"})
    for field, value in updates.items():
        setattr(role, field, value)
    if payload.permissions is not None:
        apply_grants(db, role, payload.permissions, replace=True)
    db.commit()
    db.refresh(role)
    return role


@router.delete("/roles/{role_id}")
def delete_role(role_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    role = get_role_or_404(db, role_id)
    if role.is_system:
        raise HTTPException(status_code=400, detail="System roles cannot be deleted")

    in_use = db.query(UserRole).filter(UserRole.role_id == role.id, UserRole.is_active.is_(True)).count()
    if in_use:
        raise HTTPException(status_code=400, detail=f"Role is assigned to {in_use} users")

    for user_role in db.query(UserRole).filter(UserRole.role_id == role.id).all():
        db.delete(user_role)
    db.delete(role)
    db.commit()
    logger.info("Role %s deleted by admin %s", role.name, admin.id)
    return {"message": "Role deleted successfully"}


# ---- User assignments ----

@router.get("/users/{user_id}/roles", response_model=List[UserRoleResponse])
def list_user_roles(
    user_id: int,
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    get_user_or_404(db, user_id)
    return [user_role_out(ur) for ur in get_user_roles(db, user_id, include_inactive=include_inactive)]


@router.post("/users/{user_id}/roles", response_model=UserRoleResponse, status_code=status.HTTP_201_CREATED)
def assign_user_role(
    user_id: int,
    payload: RoleAssign,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    get_user_or_404(db, user_id)
    role = get_role_or_404(db, payload.role_id)
    if not role.is_active:
        raise HTTPException(status_code=400, detail="Role is not active")

    try:
        user_role = assign_role(
            db,
            user_id,
            role,
            assigned_by=admin.id,
            expires_at=payload.expires_at,
            role_data=payload.role_data.model_dump(exclude_none=True) if payload.role_data else None,
            reason=payload.reason or "",
        )
    except (RoleAlreadyAssigned, RoleLimitReached) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return user_role_out(user_role)


@router.put("/users/{user_id}/roles/{role_id}", response_model=UserRoleResponse)
def update_user_role(
    user_id: int,
    role_id: int,
    payload: RoleAssignmentUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user_role = db.query(UserRole).filter(
        UserRole.user_id == user_id, UserRole.role_id == role_id
    ).order_by(UserRole.assigned_at.desc()).first()
    if not user_role:
        raise HTTPException(status_code=404, detail="Role assignment not found")

    reason = payload.reason or ""
    if payload.expires_at is not None:
        user_role.extend_expiration(payload.expires_at, admin.id, reason)
    if payload.role_data is not None:
        user_role.update_role_data(payload.role_data.model_dump(exclude_none=True), admin.id, reason)
    if payload.is_active is True and not user_role.is_active:
        user_role.activate(admin.id, reason)
    elif payload.is_active is False and user_role.is_active:
        user_role.deactivate(admin.id, reason)

    db.commit()
    db.refresh(user_role)
    return user_role_out(user_role)


@router.delete("/users/{user_id}/roles/{role_id}")
def revoke_user_role(
    user_id: int,
    role_id: int,
    payload: Optional[RoleRevoke] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user_role = revoke_role(db, user_id, role_id, admin.id, payload.reason if payload and payload.reason else "")
    if not user_role:
        raise HTTPException(status_code=404, detail="Active role assignment not found")
    return {"message": "Role revoked successfully"}


# ---- Maintenance ----

@router.get("/statistics")
def statistics(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return {
        "roles": role_statistics(db),
        "total_roles": db.query(Role).count(),
        "total_permissions": db.query(Permission).count(),
    }


@router.post("/cleanup")
def cleanup(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    count = cleanup_expired_roles(db)
    return {"message": f"Deactivated {count} expired role assignments", "count": count}
