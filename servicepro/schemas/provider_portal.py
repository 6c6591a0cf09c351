# servicepro/schemas/provider_portal.py
import datetime as dt
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from servicepro.schemas.appointment import TIME_PATTERN, AppointmentResponse

MeetingPlatform = Literal["zoom", "teams", "google_meet", "custom"]
NoteType = Literal["consultation", "follow_up", "prescription", "diagnosis", "treatment", "general"]
NoteStatus = Literal["draft", "completed", "archived"]


class ProviderProfileUpdate(BaseModel):
    specialty: Optional[str] = None
    sub_specialty: Optional[str] = None
    clinic_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    advance_booking_days: Optional[int] = Field(None, ge=1, le=365)
    cancellation_hours: Optional[int] = Field(None, ge=0, le=168)
    auto_confirm: Optional[bool] = None
    buffer_time: Optional[int] = Field(None, ge=0, le=120)
    default_meeting_platform: Optional[MeetingPlatform] = None
    social_links: Optional[Dict[str, str]] = None


class ProviderProfileResponse(BaseModel):
    id: int
    user_id: int
    provider_id: int
    specialty: Optional[str] = None
    sub_specialty: Optional[str] = None
    clinic_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    full_address: str
    advance_booking_days: int
    cancellation_hours: int
    auto_confirm: bool
    buffer_time: int
    default_meeting_platform: str
    social_links: dict

    class Config:
        from_attributes = True


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class RescheduleRequest(BaseModel):
    date: dt.date
    time: str = Field(..., pattern=TIME_PATTERN)
    reason: Optional[str] = None


class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=10, max_length=5000)
    note_type: NoteType = "general"
    is_private: bool = False
    is_visible_to_patient: bool = True
    status: NoteStatus = "draft"
    follow_up_required: bool = False
    follow_up_date: Optional[dt.date] = None
    tags: List[str] = []


class NoteResponse(BaseModel):
    id: int
    appointment_id: int
    provider_id: int
    user_id: int
    title: str
    content: str
    note_type: str
    is_private: bool
    is_visible_to_patient: bool
    status: str
    follow_up_required: bool
    follow_up_date: Optional[dt.date] = None
    tags: List[str]
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class MeetingCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    platform: Optional[MeetingPlatform] = None
    duration: int = Field(60, ge=15)
    password: Optional[str] = None


class MeetingResponse(BaseModel):
    id: int
    appointment_id: int
    provider_id: int
    user_id: int
    title: str
    description: Optional[str] = None
    platform: str
    scheduled_at: dt.datetime
    duration: int
    meeting_id: str
    meeting_url: str
    password: Optional[str] = None
    status: str

    class Config:
        from_attributes = True


class ProviderDashboard(BaseModel):
    provider_id: int
    today: List[AppointmentResponse]
    upcoming: List[AppointmentResponse]
    pending_count: int
    unread_notifications: int
    rating: float
    review_count: int
