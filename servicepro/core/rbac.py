# servicepro/core/rbac.py
"""
Permission evaluation and the FastAPI dependencies built on it.

A permission is a `resource:action` pair. The caller's active role
assignments are walked newest first; the first role that grants the
permission and whose conditions all hold for the requested resource
wins. Nothing is cached, so revocations apply to the next request.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from servicepro.core.security import get_current_user
from servicepro.db.base import get_db
from servicepro.db.models.appointment import Appointment
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.rbac import Permission
from servicepro.db.models.review import Review
from servicepro.db.models.user import User
from servicepro.services.rbac import get_user_roles

logger = logging.getLogger(__name__)


# ---- conditions ----

def owns_resource(db: Session, user_id: int, resource: str, resource_id: Optional[int]) -> bool:
    if resource_id is None:
        return False

    if resource == "users":
        return resource_id == user_id
    if resource == "providers":
        provider = db.query(ServiceProvider).filter(ServiceProvider.id == resource_id).first()
        return provider is not None and provider.user_id == user_id
    if resource == "appointments":
        appointment = db.query(Appointment).filter(Appointment.id == resource_id).first()
        if not appointment:
            return False
        if appointment.user_id == user_id:
            return True
        # the provider side of the booking
        return appointment.provider is not None and appointment.provider.user_id == user_id
    if resource == "reviews":
        review = db.query(Review).filter(Review.id == resource_id).first()
        return review is not None and review.user_id == user_id
    return False


def in_same_organization(user_role) -> bool:
    return bool((user_role.role_data or {}).get("organization"))


def in_same_category(db: Session, user_role, resource: str, resource_id: Optional[int]) -> bool:
    categories = (user_role.role_data or {}).get("categories") or []
    if not categories or resource != "providers" or resource_id is None:
        return False
    provider = db.query(ServiceProvider).filter(ServiceProvider.id == resource_id).first()
    return provider is not None and provider.category in categories


# ---- checks ----

def check_user_permission(db: Session, user: User, resource: str, action: str, resource_id=None) -> bool:
    user_roles = get_user_roles(db, user.id)
    if not user_roles:
        return False

    permission = db.query(Permission).filter(
        Permission.resource == resource,
        Permission.action == action,
        Permission.is_active.is_(True),
    ).first()
    if not permission:
        return False

    if resource_id is not None:
        resource_id = int(resource_id)

    for user_role in user_roles:
        role = user_role.role
        if not role or not role.is_active:
            continue
        grant = role.find_grant(permission.id)
        if not grant:
            continue
        if grant.own_data_only and not owns_resource(db, user.id, resource, resource_id):
            continue
        if grant.same_organization and not in_same_organization(user_role):
            continue
        if grant.same_category and not in_same_category(db, user_role, resource, resource_id):
            continue
        return True
    return False


def check_user_permissions(db: Session, user: User, permissions, resource_id=None) -> bool:
    """True when any of the `resource:action` strings is granted."""
    for name in permissions:
        resource, action = name.split(":", 1)
        if check_user_permission(db, user, resource, action, resource_id):
            return True
    return False


def get_user_permissions(db: Session, user: User):
    """Flattened grants of the user's active roles, with their conditions."""
    result = []
    for user_role in get_user_roles(db, user.id):
        role = user_role.role
        if not role or not role.is_active:
            continue
        for grant in role.permissions:
            if not grant.granted or not grant.permission:
                continue
            result.append({
                "role": role.name,
                "resource": grant.permission.resource,
                "action": grant.permission.action,
                "conditions": {
                    "own_data_only": grant.own_data_only,
                    "same_organization": grant.same_organization,
                    "same_category": grant.same_category,
                },
            })
    return result


# ---- dependencies ----

def _resource_id(request: Request, id_param):
    if not id_param:
        return None
    return request.path_params.get(id_param)


def require_permission(resource: str, action: str, id_param: Optional[str] = None):
    """
    Dependency: the caller must hold resource:action. `id_param` names the
    path parameter carrying the resource id that ownership conditions are
    checked against.
    """

    def checker(
        request: Request,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        if not get_user_roles(db, current_user.id):
            logger.warning("User %s has no roles (needs %s:%s)", current_user.id, resource, action)
            raise HTTPException(status_code=403, detail="No roles assigned")
        if not check_user_permission(db, current_user, resource, action, _resource_id(request, id_param)):
            logger.warning("User %s denied %s:%s on %s", current_user.id, resource, action, request.url.path)
            raise HTTPException(status_code=403, detail=f"Insufficient permissions. Required: {resource}:{action}")
        return current_user

    return checker


def require_any_permission(*permissions, id_param: Optional[str] = None):
    def checker(
        request: Request,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        if not check_user_permissions(db, current_user, permissions, _resource_id(request, id_param)):
            logger.warning("User %s denied any of %s", current_user.id, ", ".join(permissions))
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user

    return checker


def require_all_permissions(*permissions, id_param: Optional[str] = None):
    def checker(
        request: Request,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        resource_id = _resource_id(request, id_param)
        for name in permissions:
            resource, action = name.split(":", 1)
            if not check_user_permission(db, current_user, resource, action, resource_id):
                logger.warning("User %s missing %s", current_user.id, name)
                raise HTTPException(status_code=403, detail=f"Missing required permission: {name}")
        return current_user

    return checker


def require_role(role_name: str):
    def checker(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> User:
        names = {ur.role.name for ur in get_user_roles(db, current_user.id)}
        if role_name not in names:
            raise HTTPException(status_code=403, detail=f"Required role: {role_name}")
        return current_user

    return checker


def require_any_role(*role_names):
    def checker(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> User:
        names = {ur.role.name for ur in get_user_roles(db, current_user.id)}
        if not names.intersection(role_names):
            raise HTTPException(status_code=403, detail=f"Required roles: {', '.join(role_names)}")
        return current_user

    return checker
