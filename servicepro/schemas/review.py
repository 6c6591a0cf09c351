# servicepro/schemas/review.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, conint

ReviewTag = Literal["professional", "friendly", "clean", "affordable", "quick", "thorough", "knowledgeable", "helpful"]


class ReviewCreate(BaseModel):
    appointment_id: int
    provider_id: int
    rating: conint(ge=1, le=5)
    comment: str = Field(..., min_length=10, max_length=1000)
    tags: List[ReviewTag] = []


class ReviewUpdate(BaseModel):
    rating: Optional[conint(ge=1, le=5)] = None
    comment: Optional[str] = Field(None, min_length=10, max_length=1000)
    tags: Optional[List[ReviewTag]] = None


class ReviewReportCreate(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)


class ReviewRespond(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


class ReviewResponse(BaseModel):
    id: int
    appointment_id: int
    user_id: int
    provider_id: int
    rating: int
    comment: str
    tags: List[str]
    is_verified: bool
    is_visible: bool
    helpful_count: int
    report_count: int
    is_reported: bool
    response_text: Optional[str] = None
    response_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewListResponse(BaseModel):
    total: int
    page: int
    per_page: int
    items: List[ReviewResponse]
