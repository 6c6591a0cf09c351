# servicepro/db/models/quality.py
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from servicepro.core.numbers import round_half_up
from servicepro.db.base import Base

SQI_WEIGHTS = {
    "review_rating": 0.4,
    "completion_rate": 0.3,
    "response_speed": 0.2,
    "complaint_rate": 0.1,  # inverse
}


class QualityScore(Base):
    """
    Service Quality Index snapshot for one provider and reporting period.
    """
    __tablename__ = "quality_scores"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    review_rating = Column(Float, nullable=False, default=0)               # 0..5
    appointment_completion_rate = Column(Float, nullable=False, default=0)  # 0..100
    response_speed = Column(Float, nullable=False, default=0)              # hours
    complaint_rate = Column(Float, nullable=False, default=0)              # 0..100
    sqi = Column(Integer, nullable=False, default=0, index=True)           # 0..100

    total_appointments = Column(Integer, nullable=False, default=0)
    completed_appointments = Column(Integer, nullable=False, default=0)
    total_complaints = Column(Integer, nullable=False, default=0)
    average_response_time = Column(Float, nullable=False, default=0)

    period = Column(String, nullable=False, default="monthly")
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    provider = relationship("ServiceProvider")

    def calculate_sqi(self) -> int:
        rating = (self.review_rating or 0) / 5 * 100
        completion = self.appointment_completion_rate or 0
        # 24 hours or slower earns nothing
        speed = max(0, 100 - (self.response_speed or 0) / 24 * 100)
        complaints = max(0, 100 - (self.complaint_rate or 0))

        self.sqi = int(round_half_up(
            rating * SQI_WEIGHTS["review_rating"]
            + completion * SQI_WEIGHTS["completion_rate"]
            + speed * SQI_WEIGHTS["response_speed"]
            + complaints * SQI_WEIGHTS["complaint_rate"]
        ))
        return self.sqi
