# servicepro/db/models/complaint.py
import math
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

COMPLAINT_CATEGORIES = (
    "service_quality",
    "professional_conduct",
    "billing_issues",
    "scheduling_problems",
    "communication_issues",
    "safety_concerns",
    "other",
)
SEVERITIES = ("low", "medium", "high", "critical")
COMPLAINT_STATUSES = ("pending", "investigating", "resolved", "dismissed", "escalated")
PRIORITIES = ("low", "medium", "high", "urgent")
COMPENSATION_TYPES = ("refund", "discount", "free_service", "apology", "none")

MAX_ESCALATION_LEVEL = 3


class Complaint(Base):
    __tablename__ = "complaints"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)

    category = Column(String, nullable=False)
    severity = Column(String, nullable=False, default="medium")
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)
    priority = Column(String, nullable=False, default="medium")

    assigned_to = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # resolution
    resolution_description = Column(Text, nullable=True)
    resolved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    compensation_type = Column(String, nullable=True)
    compensation_amount = Column(Float, nullable=True)

    follow_up_required = Column(Boolean, nullable=False, default=False)
    follow_up_date = Column(Date, nullable=True)
    follow_up_completed = Column(Boolean, nullable=False, default=False)

    resolution_rating = Column(Integer, nullable=True)  # 1..5
    resolution_feedback = Column(Text, nullable=True)

    escalation_level = Column(Integer, nullable=False, default=0)
    escalated_at = Column(DateTime, nullable=True)
    escalation_reason = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])
    provider = relationship("ServiceProvider")
    admin_notes = relationship(
        "ComplaintNote", back_populates="complaint", cascade="all, delete-orphan", order_by="ComplaintNote.added_at"
    )

    def age_in_days(self, now=None) -> int:
        now = now or datetime.utcnow()
        seconds = abs((now - self.created_at).total_seconds())
        return math.ceil(seconds / 86400)

    def escalate(self, reason):
        self.escalation_level = min((self.escalation_level or 0) + 1, MAX_ESCALATION_LEVEL)
        self.escalated_at = datetime.utcnow()
        self.escalation_reason = reason
        self.status = "escalated"
        if self.escalation_level >= 2:
            self.priority = "urgent"
        elif self.escalation_level == 1:
            self.priority = "high"

    def add_admin_note(self, note, admin_id):
        entry = ComplaintNote(note=note, added_by=admin_id)
        self.admin_notes.append(entry)
        return entry

    def resolve(self, description, admin_id, compensation_type=None, compensation_amount=None):
        self.status = "resolved"
        self.resolution_description = description
        self.compensation_type = compensation_type
        self.compensation_amount = compensation_amount
        self.resolved_by = admin_id
        self.resolved_at = datetime.utcnow()

    @property
    def resolution_hours(self):
        if self.status != "resolved" or not self.resolved_at:
            return None
        return (self.resolved_at - self.created_at).total_seconds() / 3600


class ComplaintNote(Base):
    __tablename__ = "complaint_notes"

    id = Column(Integer, primary_key=True, index=True)
    complaint_id = Column(Integer, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False)
    note = Column(Text, nullable=False)
    added_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow)

    complaint = relationship("Complaint", back_populates="admin_notes")
