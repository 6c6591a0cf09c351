# servicepro/schemas/quality.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

Period = Literal["daily", "weekly", "monthly", "quarterly", "yearly"]


class CalculateRequest(BaseModel):
    period: Period = "monthly"


class QualityScoreResponse(BaseModel):
    id: int
    provider_id: int
    review_rating: float
    appointment_completion_rate: float
    response_speed: float
    complaint_rate: float
    sqi: int
    total_appointments: int
    completed_appointments: int
    total_complaints: int
    period: str
    period_start: datetime
    period_end: datetime
    is_active: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QualityScoreListResponse(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
    items: List[QualityScoreResponse]


class RecommendationsResponse(BaseModel):
    provider_id: int
    sqi: int
    recommendations: List[dict]
    summary: dict
