# servicepro/api/routes/admin.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from servicepro.api.deps import get_provider_or_404
from servicepro.api.routes.categories import refresh_provider_count
from servicepro.api.routes.reviews import get_review_or_404, recalculate_provider_rating
from servicepro.core.periods import PERIODS, period_bounds
from servicepro.core.security import require_admin
from servicepro.db.base import get_db
from servicepro.db.models.appointment import Appointment
from servicepro.db.models.complaint import Complaint
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.quality import QualityScore
from servicepro.db.models.review import Review
from servicepro.db.models.user import User
from servicepro.schemas.admin import AdminDashboard, ProviderApproval, ReviewModeration, UserStatusUpdate
from servicepro.schemas.provider import ProviderResponse
from servicepro.schemas.review import ReviewResponse
from servicepro.schemas.user import UserResponse
from servicepro.services.notifications import create_notification
from servicepro.services.quality import sqi_distribution

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


# -------------------------
# 1. Dashboard
# -------------------------
@router.get("/dashboard", response_model=AdminDashboard)
def dashboard(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    scores = db.query(QualityScore).filter(QualityScore.is_active.is_(True)).all()
    average_sqi = round(sum(s.sqi for s in scores) / len(scores), 1) if scores else 0

    return {
        "counts": {
            "users": db.query(User).count(),
            "providers": db.query(ServiceProvider).count(),
            "appointments": db.query(Appointment).count(),
            "reviews": db.query(Review).count(),
            "complaints": db.query(Complaint).count(),
        },
        "pending_providers": db.query(ServiceProvider).filter(ServiceProvider.approval_status == "pending").count(),
        "pending_complaints": db.query(Complaint).filter(Complaint.status == "pending").count(),
        "sqi": {"average": average_sqi, "scored_providers": len(scores), "distribution": sqi_distribution(scores)},
        "recent_users": db.query(User).order_by(User.created_at.desc(), User.id.desc()).limit(5).all(),
        "recent_providers": db.query(ServiceProvider).order_by(
            ServiceProvider.created_at.desc(), ServiceProvider.id.desc()
        ).limit(5).all(),
    }


# -------------------------
# 2. Users
# -------------------------
@router.get("/users", response_model=List[UserResponse])
def list_users(
    role: Optional[str] = Query(None, description="user/provider/admin/evaluator"),
    active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(User)
    if role:
        q = q.filter(User.role == role)
    if active is not None:
        q = q.filter(User.is_active == active)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(User.name.ilike(like), User.email.ilike(like)))
    return q.order_by(User.id).offset((page - 1) * per_page).limit(per_page).all()


@router.put("/users/{user_id}/status", response_model=UserResponse)
def set_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == admin.id and not payload.is_active:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    user.is_active = payload.is_active
    db.commit()
    db.refresh(user)
    logger.info("User %s set active=%s by admin %s", user.id, user.is_active, admin.id)
    return user


# -------------------------
# 3. Providers
# -------------------------
@router.get("/providers", response_model=List[ProviderResponse])
def list_providers(
    approval_status: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(ServiceProvider)
    if approval_status:
        q = q.filter(ServiceProvider.approval_status == approval_status)
    if category:
        q = q.filter(ServiceProvider.category == category)
    return q.order_by(ServiceProvider.created_at.desc(), ServiceProvider.id.desc()).offset(
        (page - 1) * per_page
    ).limit(per_page).all()


@router.put("/providers/{provider_id}/approval", response_model=ProviderResponse)
def set_provider_approval(
    provider_id: int,
    payload: ProviderApproval,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    provider = get_provider_or_404(db, provider_id)
    provider.approval_status = payload.approval_status
    if payload.approval_status == "approved":
        provider.is_verified = True
    db.flush()
    refresh_provider_count(db, provider.category)

    approved = payload.approval_status == "approved"
    message = "Your provider profile was approved" if approved else "Your provider profile was rejected"
    if payload.reason:
        message += f": {payload.reason}"
    create_notification(
        db,
        recipient_id=provider.user_id,
        sender_id=admin.id,
        notification_type="provider_approved" if approved else "provider_rejected",
        title="Provider application " + payload.approval_status,
        message=message,
        related_entity_type="provider",
        related_entity_id=provider.id,
        priority="high",
        commit=False,
    )
    db.commit()
    db.refresh(provider)
    logger.info("Provider %s %s by admin %s", provider.id, payload.approval_status, admin.id)
    return provider


# -------------------------
# 4. Reviews moderation
# -------------------------
@router.get("/reviews", response_model=List[ReviewResponse])
def list_reviews(
    reported: Optional[bool] = Query(None),
    visible: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(Review)
    if reported is not None:
        q = q.filter(Review.is_reported == reported)
    if visible is not None:
        q = q.filter(Review.is_visible == visible)
    return q.order_by(Review.report_count.desc(), Review.created_at.desc()).offset(
        (page - 1) * per_page
    ).limit(per_page).all()


@router.put("/reviews/{review_id}/moderate", response_model=ReviewResponse)
def moderate_review(
    review_id: int,
    payload: ReviewModeration,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    review = get_review_or_404(db, review_id)
    if payload.action == "hide":
        review.is_visible = False
    elif payload.action == "show":
        review.is_visible = True
        review.is_reported = False
    else:
        review.is_verified = True
    db.flush()
    recalculate_provider_rating(db, review.provider)
    db.commit()
    db.refresh(review)
    logger.info("Review %s moderated (%s) by admin %s", review.id, payload.action, admin.id)
    return review


# -------------------------
# 5. Analytics
# -------------------------
@router.get("/analytics")
def analytics(period: str = Query("monthly"), db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"period must be one of: {', '.join(PERIODS)}")
    start, end = period_bounds(period)

    def in_period(column):
        return [column >= start, column < end]

    by_status = dict(
        db.query(Appointment.status, func.count(Appointment.id))
        .filter(*in_period(Appointment.created_at))
        .group_by(Appointment.status)
        .all()
    )
    revenue = db.query(func.coalesce(func.sum(Appointment.total_amount), 0)).filter(
        Appointment.status == "completed", *in_period(Appointment.created_at)
    ).scalar() or 0.0
    by_category = (
        db.query(ServiceProvider.category, func.count(Appointment.id))
        .join(Appointment, Appointment.provider_id == ServiceProvider.id)
        .filter(*in_period(Appointment.created_at))
        .group_by(ServiceProvider.category)
        .all()
    )

    return {
        "period": period,
        "start": start,
        "end": end,
        "new_users": db.query(User).filter(*in_period(User.created_at)).count(),
        "new_providers": db.query(ServiceProvider).filter(*in_period(ServiceProvider.created_at)).count(),
        "appointments": {"total": sum(by_status.values()), "by_status": by_status},
        "revenue": float(revenue),
        "appointments_by_category": {c: int(n) for c, n in by_category},
        "reviews": db.query(Review).filter(*in_period(Review.created_at)).count(),
        "complaints": db.query(Complaint).filter(*in_period(Complaint.created_at)).count(),
    }
