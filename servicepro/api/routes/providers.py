# servicepro/api/routes/providers.py
import logging
import math
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import asc, desc, or_
from sqlalchemy.orm import Session

from servicepro.api.deps import get_provider_or_404
from servicepro.api.routes.availability import provider_has_availability_on_date
from servicepro.api.routes.categories import refresh_provider_count
from servicepro.core.security import get_current_user
from servicepro.db.base import get_db
from servicepro.db.models.appointment import Appointment
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.review import Review
from servicepro.db.models.user import User
from servicepro.schemas.appointment import AppointmentResponse
from servicepro.schemas.provider import (
    ADMIN_ONLY_FIELDS,
    ProviderCreate,
    ProviderDetailResponse,
    ProviderResponse,
    ProviderSearchResponse,
    ProviderUpdate,
)
from servicepro.schemas.review import ReviewResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/service-providers", tags=["service providers"])

SORTS = {
    "rating": (desc(ServiceProvider.rating), desc(ServiceProvider.review_count)),
    "price_asc": (asc(ServiceProvider.price),),
    "price_desc": (desc(ServiceProvider.price),),
    "experience": (desc(ServiceProvider.experience),),
    "newest": (desc(ServiceProvider.created_at),),
}


def ensure_owner_or_admin(provider: ServiceProvider, current_user: User, action: str):
    if current_user.role != "admin" and provider.user_id != current_user.id:
        raise HTTPException(status_code=403, detail=f"Not authorized to {action} this profile")


# ---- 1. Search (public) ----

@router.get("/", response_model=ProviderSearchResponse)
def search_providers(
    q: Optional[str] = Query(None, description="Matches name, bio and subcategory"),
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0.0, le=5.0),
    max_price: Optional[float] = Query(None, ge=0.0),
    availability_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    sort: str = Query("rating", description="rating | price_asc | price_desc | experience | newest"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    base = db.query(ServiceProvider).filter(
        ServiceProvider.is_active.is_(True),
        ServiceProvider.approval_status == "approved",
    )

    if q:
        q_like = f"%{q.strip()}%"
        base = base.filter(or_(
            ServiceProvider.name.ilike(q_like),
            ServiceProvider.bio.ilike(q_like),
            ServiceProvider.subcategory.ilike(q_like),
        ))
    if category:
        base = base.filter(ServiceProvider.category == category)
    if subcategory:
        base = base.filter(ServiceProvider.subcategory.ilike(f"%{subcategory}%"))
    if location:
        base = base.filter(ServiceProvider.location.ilike(f"%{location}%"))
    if country:
        base = base.filter(ServiceProvider.country == country)
    if min_rating is not None:
        base = base.filter(ServiceProvider.rating >= min_rating)
    if max_price is not None:
        base = base.filter(ServiceProvider.price <= max_price)

    base = base.order_by(*SORTS.get(sort, SORTS["rating"]), ServiceProvider.id)

    if availability_date:
        try:
            target_date = datetime.strptime(availability_date, "%Y-%m-%d").date()
        except ValueError:
            raise HTTPException(status_code=400, detail="availability_date must be YYYY-MM-DD")
        # availability is per provider, so filter in Python before paginating
        matches = [p for p in base.all() if provider_has_availability_on_date(db, p.id, target_date)]
        total = len(matches)
        results = matches[(page - 1) * limit: page * limit]
    else:
        total = base.count()
        results = base.offset((page - 1) * limit).limit(limit).all()

    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if total else 0,
        "results": results,
    }


# ---- 2. Detail (public) ----

@router.get("/{provider_id}", response_model=ProviderDetailResponse)
def get_provider(provider_id: int, db: Session = Depends(get_db)):
    provider = get_provider_or_404(db, provider_id)
    reviews = db.query(Review).filter(
        Review.provider_id == provider.id, Review.is_visible.is_(True)
    ).order_by(Review.created_at.desc()).limit(10).all()

    data = ProviderResponse.model_validate(provider).model_dump()
    data["recent_reviews"] = [ReviewResponse.model_validate(r) for r in reviews]
    return data


# ---- 3. Create listing (provider) ----

@router.post("/", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
def create_provider(
    payload: ProviderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role != "provider":
        raise HTTPException(status_code=403, detail="Only providers can create a listing")

    if db.query(ServiceProvider).filter(ServiceProvider.user_id == current_user.id).first():
        raise HTTPException(status_code=400, detail="Service provider profile already exists")

    provider = ServiceProvider(user_id=current_user.id, approval_status="pending", **payload.model_dump())
    db.add(provider)
    db.commit()
    db.refresh(provider)
    logger.info("Provider listing %s created by user %s (pending approval)", provider.id, current_user.id)
    return provider


# ---- 4. Update listing (owner or admin) ----

@router.put("/{provider_id}", response_model=ProviderResponse)
def update_provider(
    provider_id: int,
    payload: ProviderUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    provider = get_provider_or_404(db, provider_id)
    ensure_owner_or_admin(provider, current_user, "update")

    updates = payload.model_dump(exclude_none=True)
    if current_user.role != "admin":
        blocked = [f for f in ADMIN_ONLY_FIELDS if f in updates]
        if blocked:
            raise HTTPException(status_code=403, detail=f"Only admins can change: {', '.join(blocked)}")

    old_category = provider.category
    for field, value in updates.items():
        setattr(provider, field, value)
    db.flush()

    refresh_provider_count(db, provider.category)
    if old_category != provider.category:
        refresh_provider_count(db, old_category)
    db.commit()
    db.refresh(provider)
    return provider


# ---- 5. Deactivate listing (owner or admin) ----

@router.delete("/{provider_id}")
def delete_provider(
    provider_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    provider = get_provider_or_404(db, provider_id)
    ensure_owner_or_admin(provider, current_user, "delete")

    provider.is_active = False
    db.flush()
    refresh_provider_count(db, provider.category)
    db.commit()
    logger.info("Provider listing %s deactivated by user %s", provider.id, current_user.id)
    return {"message": "Service provider profile deleted successfully"}


# ---- 6. Listing appointments (owner or admin) ----

@router.get("/{provider_id}/appointments", response_model=List[AppointmentResponse])
def provider_appointments(
    provider_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    provider = get_provider_or_404(db, provider_id)
    if current_user.role != "admin" and provider.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to view these appointments")

    return db.query(Appointment).filter(
        Appointment.provider_id == provider.id
    ).order_by(Appointment.date.desc(), Appointment.time.desc()).all()
