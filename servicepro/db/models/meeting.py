# servicepro/db/models/meeting.py
import secrets
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

MEETING_STATUSES = ("scheduled", "started", "ended", "cancelled", "failed")
MEETING_URL_TEMPLATES = {
    "zoom": "https://zoom.us/j/{meeting_id}",
    "teams": "https://teams.microsoft.com/l/meetup-join/{meeting_id}",
    "google_meet": "https://meet.google.com/{meeting_id}",
    "custom": "/meetings/{meeting_id}",
}
MIN_MEETING_MINUTES = 15


def build_meeting_url(platform: str, meeting_id: str) -> str:
    template = MEETING_URL_TEMPLATES.get(platform, MEETING_URL_TEMPLATES["custom"])
    return template.format(meeting_id=meeting_id)


def new_meeting_id() -> str:
    return secrets.token_hex(6)


class Meeting(Base):
    __tablename__ = "meetings"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, unique=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    platform = Column(String, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False, default=60)  # minutes

    meeting_id = Column(String, nullable=False, default=new_meeting_id)
    meeting_url = Column(String, nullable=False)
    password = Column(String, nullable=True)
    status = Column(String, nullable=False, default="scheduled")

    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    appointment = relationship("Appointment")

    def generate_link(self):
        if not self.meeting_id:
            self.meeting_id = new_meeting_id()
        self.meeting_url = build_meeting_url(self.platform, self.meeting_id)
        return self.meeting_url

    def is_upcoming(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return self.status == "scheduled" and self.scheduled_at > now

    @property
    def duration_in_hours(self) -> float:
        return self.duration / 60

    def start(self):
        self.status = "started"
        self.started_at = datetime.utcnow()

    def end(self):
        self.status = "ended"
        self.ended_at = datetime.utcnow()
