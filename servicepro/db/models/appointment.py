# servicepro/db/models/appointment.py
from datetime import datetime, timedelta

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled", "no-show")
ACTIVE_STATUSES = ("pending", "confirmed")
PAYMENT_STATUSES = ("pending", "paid", "refunded", "failed")
PAYMENT_METHODS = ("cash", "card", "online", "bank_transfer")
CANCELLED_BY = ("user", "provider", "admin")

APPOINTMENT_DURATION_MINUTES = 60
CANCELLATION_NOTICE = timedelta(hours=24)
RESCHEDULE_NOTICE = timedelta(hours=2)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String, nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)
    service_type = Column(String, nullable=True)

    has_review = Column(Boolean, nullable=False, default=False)
    has_receipt = Column(Boolean, nullable=False, default=False)
    receipt_url = Column(String, nullable=True)

    total_amount = Column(Float, nullable=True)
    payment_status = Column(String, nullable=False, default="pending")
    payment_method = Column(String, nullable=True)

    cancellation_reason = Column(String, nullable=True)
    cancelled_by = Column(String, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    reminder_sent = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")
    provider = relationship("ServiceProvider")

    @property
    def duration(self) -> int:
        return APPOINTMENT_DURATION_MINUTES

    @property
    def scheduled_at(self) -> datetime:
        return datetime.combine(self.date, datetime.strptime(self.time, "%H:%M").time())

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration)

    def can_be_cancelled(self, now=None) -> bool:
        """Confirmed appointments can be cancelled up to 24 hours before they start."""
        now = now or datetime.utcnow()
        return self.status == "confirmed" and self.scheduled_at - now > CANCELLATION_NOTICE

    def can_be_rescheduled(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return self.status in ACTIVE_STATUSES and self.scheduled_at - now > RESCHEDULE_NOTICE

    def cancel(self, reason, cancelled_by):
        self.status = "cancelled"
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.cancelled_at = datetime.utcnow()


NOTE_TYPES = ("consultation", "follow_up", "prescription", "diagnosis", "treatment", "general")
NOTE_STATUSES = ("draft", "completed", "archived")


class AppointmentNote(Base):
    __tablename__ = "appointment_notes"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    note_type = Column(String, nullable=False, default="general")
    is_private = Column(Boolean, nullable=False, default=False)
    is_visible_to_patient = Column(Boolean, nullable=False, default=True)
    status = Column(String, nullable=False, default="draft")

    follow_up_required = Column(Boolean, nullable=False, default=False)
    follow_up_date = Column(Date, nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    appointment = relationship("Appointment")

    def is_visible_to(self, user_id: int) -> bool:
        return self.is_visible_to_patient and not self.is_private and self.user_id == user_id
