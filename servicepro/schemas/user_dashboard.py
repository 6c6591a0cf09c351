# servicepro/schemas/user_dashboard.py
from typing import List

from pydantic import BaseModel

from servicepro.schemas.appointment import AppointmentResponse
from servicepro.schemas.provider import ProviderResponse


class AppointmentOverview(BaseModel):
    total: int
    pending: int
    confirmed: int
    completed: int
    cancelled: int
    total_spent: float


class UserDashboardResponse(BaseModel):
    overview: AppointmentOverview
    upcoming: List[AppointmentResponse]
    past: List[AppointmentResponse]
    reward_points: int
    unread_notifications: int
    recommended_providers: List[ProviderResponse]
