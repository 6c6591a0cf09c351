# servicepro/api/routes/user_dashboard.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from servicepro.core.security import get_current_user
from servicepro.db.base import get_db
from servicepro.db.models.appointment import ACTIVE_STATUSES, Appointment
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.user import User
from servicepro.schemas.user_dashboard import UserDashboardResponse
from servicepro.services.notifications import unread_count

router = APIRouter(prefix="/api/dashboard", tags=["user dashboard"])


@router.get("/user", response_model=UserDashboardResponse)
def user_dashboard(
    limit_recommend: int = Query(6, ge=1, le=20),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    today = datetime.utcnow().date()
    mine = db.query(Appointment).filter(Appointment.user_id == current_user.id)

    # --- Overview ---
    counts = dict(
        db.query(Appointment.status, func.count(Appointment.id))
        .filter(Appointment.user_id == current_user.id)
        .group_by(Appointment.status)
        .all()
    )
    total_spent = db.query(func.coalesce(func.sum(Appointment.total_amount), 0)).filter(
        Appointment.user_id == current_user.id, Appointment.status == "completed"
    ).scalar() or 0.0

    overview = {
        "total": sum(counts.values()),
        "pending": counts.get("pending", 0),
        "confirmed": counts.get("confirmed", 0),
        "completed": counts.get("completed", 0),
        "cancelled": counts.get("cancelled", 0),
        "total_spent": float(total_spent),
    }

    # --- Upcoming / past ---
    upcoming = mine.filter(
        Appointment.date >= today, Appointment.status.in_(ACTIVE_STATUSES)
    ).order_by(Appointment.date.asc(), Appointment.time.asc()).limit(10).all()
    past = mine.filter(Appointment.date < today).order_by(
        Appointment.date.desc(), Appointment.time.desc()
    ).limit(10).all()

    # --- Recommendations: top rated in the categories this user has booked ---
    booked_categories = [
        c for (c,) in db.query(ServiceProvider.category)
        .join(Appointment, Appointment.provider_id == ServiceProvider.id)
        .filter(Appointment.user_id == current_user.id)
        .distinct()
        .all()
    ]
    booked_provider_ids = [pid for (pid,) in db.query(Appointment.provider_id).filter(
        Appointment.user_id == current_user.id
    ).distinct().all()]

    rec_q = db.query(ServiceProvider).filter(
        ServiceProvider.is_active.is_(True),
        ServiceProvider.approval_status == "approved",
    )
    if booked_categories:
        rec_q = rec_q.filter(ServiceProvider.category.in_(booked_categories))
    if booked_provider_ids:
        rec_q = rec_q.filter(ServiceProvider.id.notin_(booked_provider_ids))
    recommended = rec_q.order_by(
        ServiceProvider.rating.desc(), ServiceProvider.review_count.desc()
    ).limit(limit_recommend).all()

    return {
        "overview": overview,
        "upcoming": upcoming,
        "past": past,
        "reward_points": current_user.reward_points or 0,
        "unread_notifications": unread_count(db, current_user.id),
        "recommended_providers": recommended,
    }
