# servicepro/schemas/admin.py
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from servicepro.schemas.provider import ProviderResponse
from servicepro.schemas.user import UserResponse


class UserStatusUpdate(BaseModel):
    is_active: bool
    reason: Optional[str] = None


class ProviderApproval(BaseModel):
    approval_status: Literal["approved", "rejected"]
    reason: Optional[str] = Field(None, max_length=500)


class ReviewModeration(BaseModel):
    action: Literal["hide", "show", "verify"]
    reason: Optional[str] = None


class DashboardCounts(BaseModel):
    users: int
    providers: int
    appointments: int
    reviews: int
    complaints: int


class AdminDashboard(BaseModel):
    counts: DashboardCounts
    pending_providers: int
    pending_complaints: int
    sqi: dict
    recent_users: List[UserResponse]
    recent_providers: List[ProviderResponse]
