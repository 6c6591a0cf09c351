# servicepro/schemas/complaint.py
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ComplaintCategory = Literal[
    "service_quality",
    "professional_conduct",
    "billing_issues",
    "scheduling_problems",
    "communication_issues",
    "safety_concerns",
    "other",
]
Severity = Literal["low", "medium", "high", "critical"]
Compensation = Literal["refund", "discount", "free_service", "apology", "none"]


class ComplaintCreate(BaseModel):
    appointment_id: int
    category: ComplaintCategory
    severity: Severity = "medium"
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)


class ComplaintAssign(BaseModel):
    admin_id: int


class ComplaintEscalate(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)


class ComplaintResolve(BaseModel):
    description: str = Field(..., min_length=3, max_length=2000)
    compensation_type: Optional[Compensation] = None
    compensation_amount: Optional[float] = Field(None, ge=0)
    follow_up_required: bool = False
    follow_up_date: Optional[date] = None


class ComplaintNoteCreate(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)


class ComplaintNoteResponse(BaseModel):
    id: int
    note: str
    added_by: Optional[int] = None
    added_at: datetime

    class Config:
        from_attributes = True


class ComplaintResponse(BaseModel):
    id: int
    user_id: int
    provider_id: int
    appointment_id: Optional[int] = None
    category: str
    severity: str
    title: str
    description: str
    status: str
    priority: str
    assigned_to: Optional[int] = None
    resolution_description: Optional[str] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    compensation_type: Optional[str] = None
    compensation_amount: Optional[float] = None
    follow_up_required: bool
    escalation_level: int
    escalation_reason: Optional[str] = None
    admin_notes: List[ComplaintNoteResponse] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
