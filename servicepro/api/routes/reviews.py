# servicepro/api/routes/reviews.py
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from servicepro.api.deps import get_provider_or_404, paginate
from servicepro.core.config import REVIEW_REWARD_POINTS
from servicepro.core.numbers import round_half_up
from servicepro.core.security import get_current_user
from servicepro.db.base import get_db
from servicepro.db.models.appointment import Appointment
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.review import Review, ReviewReport
from servicepro.db.models.user import User
from servicepro.schemas.review import (
    ReviewCreate,
    ReviewListResponse,
    ReviewReportCreate,
    ReviewRespond,
    ReviewResponse,
    ReviewUpdate,
)
from servicepro.services.notifications import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


def recalculate_provider_rating(db: Session, provider: ServiceProvider):
    """Average of visible reviews rounded to one decimal; caller commits."""
    rows = db.query(Review.rating).filter(
        Review.provider_id == provider.id, Review.is_visible.is_(True)
    ).all()
    total = len(rows)
    if total == 0:
        provider.rating = 0
        provider.review_count = 0
    else:
        provider.rating = round_half_up(sum(r.rating for r in rows) / total, 1)
        provider.review_count = total
    db.add(provider)


def get_review_or_404(db: Session, review_id: int) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


# ---- Create (customer) ----

@router.post("/", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(payload: ReviewCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if current_user.role != "user":
        raise HTTPException(status_code=403, detail="Only customers can create reviews")

    appointment = db.query(Appointment).filter(Appointment.id == payload.appointment_id).first()
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")
    if appointment.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to review this appointment")
    if appointment.provider_id != payload.provider_id:
        raise HTTPException(status_code=400, detail="Provider does not match the appointment")
    if appointment.status != "completed":
        raise HTTPException(status_code=400, detail="Can only review completed appointments")
    if appointment.has_review or db.query(Review).filter(Review.appointment_id == appointment.id).first():
        raise HTTPException(status_code=400, detail="Appointment already reviewed")

    provider = get_provider_or_404(db, payload.provider_id)

    review = Review(
        appointment_id=appointment.id,
        user_id=current_user.id,
        provider_id=provider.id,
        rating=payload.rating,
        comment=payload.comment,
        tags=list(payload.tags),
        is_verified=True,
    )
    db.add(review)
    appointment.has_review = True
    db.flush()

    recalculate_provider_rating(db, provider)
    current_user.add_reward_points(REVIEW_REWARD_POINTS)

    create_notification(
        db,
        recipient_id=provider.user_id,
        sender_id=current_user.id,
        notification_type="review_received",
        title="New review",
        message=f"{current_user.name} rated you {payload.rating}/5",
        related_entity_type="review",
        related_entity_id=review.id,
        commit=False,
    )
    create_notification(
        db,
        recipient_id=current_user.id,
        notification_type="reward_earned",
        title="Reward points earned",
        message=f"You earned {REVIEW_REWARD_POINTS} points for your review",
        related_entity_type="review",
        related_entity_id=review.id,
        priority="low",
        commit=False,
    )
    db.commit()
    db.refresh(review)
    logger.info("Review %s created for provider %s by user %s", review.id, provider.id, current_user.id)
    return review


# ---- Public listing ----

@router.get("/", response_model=ReviewListResponse)
def list_reviews(
    provider_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    rating: Optional[int] = Query(None, ge=1, le=5),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = db.query(Review).filter(Review.is_visible.is_(True))
    if provider_id:
        q = q.filter(Review.provider_id == provider_id)
    if user_id:
        q = q.filter(Review.user_id == user_id)
    if rating:
        q = q.filter(Review.rating == rating)

    total, items = paginate(q.order_by(Review.created_at.desc(), Review.id.desc()), page, per_page)
    return {"total": total, "page": page, "per_page": per_page, "items": items}


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(review_id: int, db: Session = Depends(get_db)):
    review = get_review_or_404(db, review_id)
    if not review.is_visible:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


# ---- Owner update / delete ----

@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    if review.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to update this review")

    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(review, field, value)
    db.flush()
    recalculate_provider_rating(db, review.provider)
    db.commit()
    db.refresh(review)
    return review


@router.delete("/{review_id}")
def delete_review(review_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    review = get_review_or_404(db, review_id)
    if review.user_id != current_user.id and current_user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized to delete this review")

    provider = review.provider
    if review.appointment is not None:
        review.appointment.has_review = False
    db.delete(review)
    db.flush()
    recalculate_provider_rating(db, provider)
    db.commit()
    logger.info("Review %s deleted by user %s", review_id, current_user.id)
    return {"message": "Review deleted successfully"}


# ---- Community actions ----

@router.post("/{review_id}/report", response_model=ReviewResponse)
def report_review(
    review_id: int,
    payload: ReviewReportCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    already = db.query(ReviewReport).filter(
        ReviewReport.review_id == review.id, ReviewReport.reported_by == current_user.id
    ).first()
    if already:
        raise HTTPException(status_code=400, detail="You have already reported this review")

    db.add(ReviewReport(review_id=review.id, reported_by=current_user.id, reason=payload.reason))
    review.report_count = (review.report_count or 0) + 1
    review.is_reported = True
    db.commit()
    db.refresh(review)
    logger.warning("Review %s reported by user %s", review.id, current_user.id)
    return review


@router.post("/{review_id}/respond", response_model=ReviewResponse)
def respond_to_review(
    review_id: int,
    payload: ReviewRespond,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    if review.provider is None or review.provider.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only the reviewed provider can respond")

    review.response_text = payload.text
    review.response_at = datetime.utcnow()
    db.commit()
    db.refresh(review)
    return review


@router.post("/{review_id}/helpful", response_model=ReviewResponse)
def mark_helpful(review_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    review = get_review_or_404(db, review_id)
    review.helpful_count = (review.helpful_count or 0) + 1
    db.commit()
    db.refresh(review)
    return review
