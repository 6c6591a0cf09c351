# servicepro/db/models/review.py
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

REVIEW_TAGS = (
    "professional", "friendly", "clean", "affordable",
    "quick", "thorough", "knowledgeable", "helpful",
)


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False, index=True)

    rating = Column(Integer, nullable=False)   # 1..5
    comment = Column(String(1000), nullable=False)
    tags = Column(JSON, nullable=False, default=list)

    is_verified = Column(Boolean, nullable=False, default=False)
    is_visible = Column(Boolean, nullable=False, default=True)
    helpful_count = Column(Integer, nullable=False, default=0)
    report_count = Column(Integer, nullable=False, default=0)
    is_reported = Column(Boolean, nullable=False, default=False)

    # provider's public reply
    response_text = Column(String(500), nullable=True)
    response_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    appointment = relationship("Appointment", foreign_keys=[appointment_id])
    user = relationship("User", foreign_keys=[user_id])
    provider = relationship("ServiceProvider", foreign_keys=[provider_id])
    reports = relationship("ReviewReport", back_populates="review", cascade="all, delete-orphan")

    @property
    def helpful_percentage(self) -> float:
        return min(100, self.helpful_count * 10) if self.helpful_count else 0


class ReviewReport(Base):
    __tablename__ = "review_reports"
    __table_args__ = (UniqueConstraint("review_id", "reported_by"),)

    id = Column(Integer, primary_key=True, index=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False)
    reported_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(String, nullable=False)
    reported_at = Column(DateTime, default=datetime.utcnow)

    review = relationship("Review", back_populates="reports")
