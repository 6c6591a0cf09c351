# servicepro/db/models/availability.py
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.orm import relationship

from servicepro.db.base import Base


class ProviderAvailability(Base):
    """
    Recurring weekly availability for a provider listing.
    weekday: 1 (Monday) .. 7 (Sunday)
    start_time, end_time: times (HH:MM:SS)
    """
    __tablename__ = "provider_availabilities"
    __table_args__ = (
        CheckConstraint('weekday BETWEEN 1 AND 7'),
    )

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    weekday = Column(Integer, nullable=False)   # store 1–7
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    max_bookings = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True)

    provider = relationship("ServiceProvider", back_populates="availabilities")


class ProviderTimeOff(Base):
    """
    One-off time off (holiday, vacation, break) for a provider listing.
    start_date/start_time and end_date/end_time define the blocked window.
    NULL start_time/end_time blocks the whole day.
    """
    __tablename__ = "provider_timeoffs"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)  # optional for whole day
    end_time = Column(Time, nullable=True)
    reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    provider = relationship("ServiceProvider", back_populates="timeoffs")

    @property
    def is_full_day(self) -> bool:
        return self.start_time is None or self.end_time is None
