# servicepro/schemas/appointment.py
import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled", "no-show"]
PaymentMethod = Literal["cash", "card", "online", "bank_transfer"]
PaymentStatus = Literal["pending", "paid", "refunded", "failed"]
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentCreate(BaseModel):
    provider_id: int
    date: dt.date
    time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM")
    notes: Optional[str] = Field(None, max_length=500)
    service_type: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None


class AppointmentUpdate(BaseModel):
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = Field(None, max_length=500)
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    payment_status: Optional[PaymentStatus] = None
    receipt_url: Optional[str] = None


class AppointmentCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentResponse(BaseModel):
    id: int
    user_id: int
    provider_id: int
    date: dt.date
    time: str
    duration: int
    status: str
    notes: Optional[str] = None
    service_type: Optional[str] = None
    has_review: bool
    has_receipt: bool
    receipt_url: Optional[str] = None
    total_amount: Optional[float] = None
    payment_status: str
    payment_method: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class AppointmentListResponse(BaseModel):
    total: int
    page: int
    per_page: int
    items: List[AppointmentResponse]
