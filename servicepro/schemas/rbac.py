# servicepro/schemas/rbac.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from servicepro.db.models.rbac import ACTIONS, RESOURCES


class PermissionCreate(BaseModel):
    resource: str
    action: str
    description: str = Field(..., min_length=3)
    level: int = Field(1, ge=1, le=10)

    @field_validator("resource")
    @classmethod
    def known_resource(cls, v):
        if v not in RESOURCES:
            raise ValueError(f"resource must be one of: {', '.join(RESOURCES)}")
        return v

    @field_validator("action")
    @classmethod
    def known_action(cls, v):
        if v not in ACTIONS:
            raise ValueError(f"action must be one of: {', '.join(ACTIONS)}")
        return v


class PermissionResponse(BaseModel):
    id: int
    name: str
    description: str
    resource: str
    action: str
    level: int
    is_active: bool

    class Config:
        from_attributes = True


class RolePermissionIn(BaseModel):
    permission: str  # resource:action
    own_data_only: bool = False
    same_organization: bool = False
    same_category: bool = False


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, pattern=r"^[a-z0-9_]+$")
    display_name: str = Field(..., min_length=2)
    description: str = Field(..., min_length=3)
    level: int = Field(..., ge=1, le=10)
    permissions: List[RolePermissionIn] = []
    max_users: Optional[int] = Field(None, ge=1)


class RoleUpdate(BaseModel):
    display_name: Optional[str] = None
    description: Optional[str] = None
    level: Optional[int] = Field(None, ge=1, le=10)
    is_active: Optional[bool] = None
    permissions: Optional[List[RolePermissionIn]] = None
    max_users: Optional[int] = Field(None, ge=1)


class RolePermissionResponse(BaseModel):
    permission_id: int
    granted: bool
    own_data_only: bool
    same_organization: bool
    same_category: bool

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    id: int
    name: str
    display_name: str
    description: str
    level: int
    is_active: bool
    is_system: bool
    permission_count: int
    permissions: List[RolePermissionResponse]

    class Config:
        from_attributes = True


class RoleData(BaseModel):
    organization: Optional[str] = None
    department: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    categories: List[str] = []


class RoleAssign(BaseModel):
    role_id: int
    expires_at: Optional[datetime] = None
    role_data: Optional[RoleData] = None
    reason: Optional[str] = None


class RoleRevoke(BaseModel):
    reason: Optional[str] = None


class UserRoleResponse(BaseModel):
    id: int
    user_id: int
    role_id: int
    role_name: str
    assigned_by: Optional[int] = None
    assigned_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool
    status: str
    days_until_expiration: Optional[int] = None
    role_data: dict


class MyPermissionsResponse(BaseModel):
    user_id: int
    roles: List[str]
    permissions: List[dict]


class RoleAssignmentUpdate(BaseModel):
    expires_at: Optional[datetime] = None
    role_data: Optional[RoleData] = None
    is_active: Optional[bool] = None
    reason: Optional[str] = None
