# servicepro/db/models/provider.py
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

PROVIDER_CATEGORIES = ("healthcare", "restaurants", "education", "beauty", "automotive", "home")
APPROVAL_STATUSES = ("pending", "approved", "rejected")
MEETING_PLATFORMS = ("zoom", "teams", "google_meet", "custom")


class ServiceProvider(Base):
    __tablename__ = "service_providers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)

    category = Column(String, nullable=False, index=True)
    subcategory = Column(String, nullable=False)
    location = Column(String, nullable=False)
    country = Column(String, nullable=False)

    experience = Column(Integer, nullable=False, default=0)  # years
    rating = Column(Float, nullable=False, default=0)  # 0..5
    review_count = Column(Integer, nullable=False, default=0)

    price = Column(Float, nullable=False)
    price_unit = Column(String, nullable=False)
    wait_time = Column(String, nullable=False)

    photo = Column(String, default="")
    badges = Column(JSON, nullable=False, default=list)
    credentials = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)

    bio = Column(String, nullable=False)
    service_hours = Column(String, nullable=False)
    website = Column(String, nullable=True)

    is_verified = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    approval_status = Column(String, nullable=False, default="pending", index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", back_populates="provider_listing")
    availabilities = relationship(
        "ProviderAvailability", back_populates="provider", cascade="all, delete-orphan", lazy="selectin"
    )
    timeoffs = relationship(
        "ProviderTimeOff", back_populates="provider", cascade="all, delete-orphan", lazy="selectin"
    )
    profile = relationship("ProviderProfile", back_populates="provider", uselist=False)

    @property
    def average_rating(self) -> float:
        if not self.review_count:
            return 0
        return self.rating

    @property
    def is_approved(self) -> bool:
        return self.approval_status == "approved"

    @property
    def is_bookable(self) -> bool:
        return bool(self.is_active) and self.is_approved


class ProviderProfile(Base):
    """
    Provider-portal settings for a listing: professional details, booking
    rules and the default online meeting platform.
    """
    __tablename__ = "provider_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False, unique=True)

    specialty = Column(String, nullable=True)
    sub_specialty = Column(String, nullable=True)
    clinic_name = Column(String, nullable=True)
    street = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    country = Column(String, nullable=True)
    zip_code = Column(String, nullable=True)

    # booking settings
    advance_booking_days = Column(Integer, nullable=False, default=30)
    cancellation_hours = Column(Integer, nullable=False, default=24)
    auto_confirm = Column(Boolean, nullable=False, default=False)
    buffer_time = Column(Integer, nullable=False, default=15)  # minutes between appointments

    default_meeting_platform = Column(String, nullable=False, default="zoom")
    social_links = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    provider = relationship("ServiceProvider", back_populates="profile")

    @property
    def full_address(self) -> str:
        parts = [self.street, self.city, self.state, self.country, self.zip_code]
        return ", ".join(p.strip() for p in parts if p and p.strip())
