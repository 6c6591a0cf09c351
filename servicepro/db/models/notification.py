# servicepro/db/models/notification.py
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

NOTIFICATION_TYPES = (
    "appointment_confirmed",
    "appointment_cancelled",
    "appointment_reminder",
    "review_received",
    "complaint_filed",
    "complaint_resolved",
    "provider_approved",
    "provider_rejected",
    "system_announcement",
    "reward_earned",
    "message_received",
    "quality_score_update",
    "admin_action_required",
)
NOTIFICATION_ENTITY_TYPES = ("appointment", "review", "complaint", "provider", "user", "system")
NOTIFICATION_STATUSES = ("pending", "sent", "delivered", "failed", "cancelled")
ACTION_STYLES = ("primary", "secondary", "success", "danger", "warning")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    notification_type = Column(String, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)
    related_entity_type = Column(String, nullable=True)
    related_entity_id = Column(Integer, nullable=True)

    # only in-app delivery is performed; the other channels stay unsent
    in_app_sent = Column(Boolean, nullable=False, default=True)
    in_app_sent_at = Column(DateTime, default=datetime.utcnow)
    email_sent = Column(Boolean, nullable=False, default=False)
    push_sent = Column(Boolean, nullable=False, default=False)
    sms_sent = Column(Boolean, nullable=False, default=False)

    priority = Column(String, nullable=False, default="medium")
    scheduled_for = Column(DateTime, default=datetime.utcnow)
    status = Column(String, nullable=False, default="sent")

    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime, nullable=True)

    actions = Column(JSON, nullable=False, default=list)
    extra = Column("metadata", JSON, nullable=False, default=dict)
    expires_at = Column(DateTime, nullable=True, index=True)

    retry_count = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=False, default=3)
    last_retry_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    sender = relationship("User", foreign_keys=[sender_id])

    def mark_as_read(self):
        self.is_read = True
        self.read_at = datetime.utcnow()

    def archive(self):
        self.is_archived = True
        self.archived_at = datetime.utcnow()

    def retry(self) -> bool:
        if self.retry_count >= self.max_retries:
            return False
        self.retry_count += 1
        self.last_retry_at = datetime.utcnow()
        self.status = "pending"
        return True
