# servicepro/schemas/provider.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from servicepro.schemas.review import ReviewResponse

Category = Literal["healthcare", "restaurants", "education", "beauty", "automotive", "home"]
ApprovalStatus = Literal["pending", "approved", "rejected"]


class ProviderCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str
    category: Category
    subcategory: str
    location: str
    country: str
    experience: int = Field(0, ge=0)
    price: float = Field(..., ge=0)
    price_unit: str
    wait_time: str
    photo: str = ""
    bio: str = Field(..., max_length=1000)
    credentials: List[str] = []
    languages: List[str] = []
    service_hours: str
    website: Optional[str] = None


class ProviderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    category: Optional[Category] = None
    subcategory: Optional[str] = None
    location: Optional[str] = None
    country: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    price_unit: Optional[str] = None
    wait_time: Optional[str] = None
    photo: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=1000)
    credentials: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    service_hours: Optional[str] = None
    website: Optional[str] = None
    # admin only
    badges: Optional[List[str]] = None
    is_verified: Optional[bool] = None
    is_active: Optional[bool] = None
    approval_status: Optional[ApprovalStatus] = None


ADMIN_ONLY_FIELDS = ("badges", "is_verified", "is_active", "approval_status")


class ProviderResponse(BaseModel):
    id: int
    user_id: int
    name: str
    email: str
    phone: str
    category: str
    subcategory: str
    location: str
    country: str
    experience: int
    rating: float
    review_count: int
    average_rating: float
    price: float
    price_unit: str
    wait_time: str
    photo: Optional[str] = None
    badges: List[str]
    credentials: List[str]
    languages: List[str]
    bio: str
    service_hours: str
    website: Optional[str] = None
    is_verified: bool
    is_active: bool
    approval_status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProviderSearchResponse(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
    results: List[ProviderResponse]


class ProviderDetailResponse(ProviderResponse):
    recent_reviews: List[ReviewResponse] = []
