# servicepro/api/routes/provider_portal.py
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from servicepro.api.deps import get_appointment_or_404, get_own_listing
from servicepro.api.routes.availability import is_available_at
from servicepro.core.numbers import round_half_up
from servicepro.core.periods import PERIODS, period_bounds
from servicepro.core.security import get_current_user
from servicepro.db.base import get_db
from servicepro.db.models.appointment import APPOINTMENT_STATUSES, Appointment, AppointmentNote
from servicepro.db.models.availability import ProviderAvailability
from servicepro.db.models.meeting import Meeting
from servicepro.db.models.provider import ProviderProfile, ServiceProvider
from servicepro.db.models.review import Review
from servicepro.db.models.user import User
from servicepro.schemas.appointment import AppointmentResponse
from servicepro.schemas.availability import ProviderAvailabilityResponse, WeeklyAvailabilityReplace
from servicepro.schemas.provider_portal import (
    MeetingCreate,
    MeetingResponse,
    NoteCreate,
    NoteResponse,
    ProviderDashboard,
    ProviderProfileResponse,
    ProviderProfileUpdate,
    RejectRequest,
    RescheduleRequest,
)
from servicepro.services.notifications import create_notification, unread_count
from servicepro.services.quality import get_current_score

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/provider-portal", tags=["provider portal"])


def get_or_create_profile(db: Session, listing: ServiceProvider) -> ProviderProfile:
    profile = db.query(ProviderProfile).filter(ProviderProfile.provider_id == listing.id).first()
    if profile:
        return profile
    profile = ProviderProfile(
        user_id=listing.user_id,
        provider_id=listing.id,
        specialty=listing.subcategory,
        country=listing.country,
        city=listing.location,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info("Provider profile created for listing %s", listing.id)
    return profile


def get_listing_appointment(db: Session, listing: ServiceProvider, appointment_id: int) -> Appointment:
    appointment = get_appointment_or_404(db, appointment_id)
    if appointment.provider_id != listing.id:
        raise HTTPException(status_code=403, detail="Not authorized to manage this appointment")
    return appointment


def notify_customer(db: Session, appointment: Appointment, notification_type: str, title: str, message: str,
                    priority: str = "medium"):
    create_notification(
        db,
        recipient_id=appointment.user_id,
        sender_id=appointment.provider.user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        related_entity_type="appointment",
        related_entity_id=appointment.id,
        priority=priority,
        commit=False,
    )


# ---- Profile ----

@router.get("/profile", response_model=ProviderProfileResponse)
def get_profile(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    listing = get_own_listing(db, current_user)
    return get_or_create_profile(db, listing)


@router.put("/profile", response_model=ProviderProfileResponse)
def update_profile(
    payload: ProviderProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)
    profile = get_or_create_profile(db, listing)
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(profile, field, value)
    db.commit()
    db.refresh(profile)
    return profile


# ---- Weekly availability (replace all windows) ----

@router.put("/availability", response_model=List[ProviderAvailabilityResponse])
def replace_availability(
    payload: WeeklyAvailabilityReplace,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)

    for window in payload.windows:
        if window.start_time >= window.end_time:
            raise HTTPException(status_code=400, detail="start_time must be before end_time")

    db.query(ProviderAvailability).filter(ProviderAvailability.provider_id == listing.id).delete()
    windows = [ProviderAvailability(provider_id=listing.id, **w.model_dump()) for w in payload.windows]
    db.add_all(windows)
    db.commit()
    logger.info("Provider %s replaced weekly availability (%d windows)", listing.id, len(windows))

    return db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == listing.id
    ).order_by(ProviderAvailability.weekday, ProviderAvailability.start_time).all()


# ---- Appointments ----

@router.get("/appointments", response_model=List[AppointmentResponse])
def list_portal_appointments(
    status_filter: Optional[str] = Query(None, alias="status"),
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)
    q = db.query(Appointment).filter(Appointment.provider_id == listing.id)
    if status_filter:
        q = q.filter(Appointment.status == status_filter)
    if on_date:
        q = q.filter(Appointment.date == on_date)
    return q.order_by(Appointment.date.asc(), Appointment.time.asc()).all()


@router.put("/appointments/{appointment_id}/confirm", response_model=AppointmentResponse)
def confirm_appointment(appointment_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    listing = get_own_listing(db, current_user)
    appointment = get_listing_appointment(db, listing, appointment_id)

    if appointment.status != "pending":
        raise HTTPException(status_code=400, detail="Only pending appointments can be confirmed")

    appointment.status = "confirmed"
    notify_customer(
        db, appointment, "appointment_confirmed", "Appointment confirmed",
        f"{listing.name} confirmed your appointment on {appointment.date.isoformat()} at {appointment.time}",
    )
    db.commit()
    db.refresh(appointment)
    logger.info("Appointment %s confirmed by provider %s", appointment.id, listing.id)
    return appointment


@router.put("/appointments/{appointment_id}/reject", response_model=AppointmentResponse)
def reject_appointment(
    appointment_id: int,
    payload: RejectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)
    appointment = get_listing_appointment(db, listing, appointment_id)

    if appointment.status != "pending":
        raise HTTPException(status_code=400, detail="Only pending appointments can be rejected")

    appointment.cancel(payload.reason, "provider")
    notify_customer(
        db, appointment, "appointment_cancelled", "Appointment rejected",
        f"{listing.name} could not accept your appointment: {payload.reason}", priority="high",
    )
    db.commit()
    db.refresh(appointment)
    logger.info("Appointment %s rejected by provider %s", appointment.id, listing.id)
    return appointment


@router.put("/appointments/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    payload: RescheduleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)
    appointment = get_listing_appointment(db, listing, appointment_id)

    if not appointment.can_be_rescheduled():
        raise HTTPException(status_code=400, detail="Appointment cannot be rescheduled")
    new_start = datetime.combine(payload.date, datetime.strptime(payload.time, "%H:%M").time())
    if new_start <= datetime.utcnow():
        raise HTTPException(status_code=400, detail="New time must be in the future")

    ok, reason = is_available_at(db, listing, payload.date, payload.time, exclude_id=appointment.id)
    if not ok:
        raise HTTPException(status_code=400, detail=reason)

    old_slot = f"{appointment.date.isoformat()} {appointment.time}"
    appointment.date = payload.date
    appointment.time = payload.time
    appointment.status = "pending"

    message = f"Your appointment moved from {old_slot} to {payload.date.isoformat()} {payload.time}"
    if payload.reason:
        message += f": {payload.reason}"
    notify_customer(db, appointment, "appointment_reminder", "Appointment rescheduled", message, priority="high")
    db.commit()
    db.refresh(appointment)
    return appointment


# ---- Notes ----

@router.post("/appointments/{appointment_id}/notes", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
def add_note(
    appointment_id: int,
    payload: NoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)
    appointment = get_listing_appointment(db, listing, appointment_id)

    note = AppointmentNote(
        appointment_id=appointment.id,
        provider_id=listing.id,
        user_id=appointment.user_id,
        **payload.model_dump(),
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


@router.get("/appointments/{appointment_id}/notes", response_model=List[NoteResponse])
def list_notes(appointment_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Providers see every note on their appointments; customers only the ones shared with them."""
    appointment = get_appointment_or_404(db, appointment_id)
    notes = db.query(AppointmentNote).filter(
        AppointmentNote.appointment_id == appointment.id
    ).order_by(AppointmentNote.created_at.desc()).all()

    if appointment.provider is not None and appointment.provider.user_id == current_user.id:
        return notes
    if appointment.user_id == current_user.id:
        return [n for n in notes if n.is_visible_to(current_user.id)]
    raise HTTPException(status_code=403, detail="Not authorized to view these notes")


# ---- Meeting ----

@router.post("/appointments/{appointment_id}/meeting", response_model=MeetingResponse, status_code=status.HTTP_201_CREATED)
def create_meeting(
    appointment_id: int,
    payload: MeetingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)
    appointment = get_listing_appointment(db, listing, appointment_id)

    if db.query(Meeting).filter(Meeting.appointment_id == appointment.id).first():
        raise HTTPException(status_code=400, detail="Meeting already exists for this appointment")

    profile = get_or_create_profile(db, listing)
    meeting = Meeting(
        appointment_id=appointment.id,
        provider_id=listing.id,
        user_id=appointment.user_id,
        title=payload.title or f"Appointment with {listing.name}",
        description=payload.description,
        platform=payload.platform or profile.default_meeting_platform,
        scheduled_at=appointment.scheduled_at,
        duration=payload.duration,
        password=payload.password,
    )
    meeting.generate_link()
    db.add(meeting)

    notify_customer(
        db, appointment, "appointment_reminder", "Online meeting scheduled",
        f"Join your appointment online: {meeting.meeting_url}",
    )
    db.commit()
    db.refresh(meeting)
    return meeting


# ---- Analytics ----

@router.get("/analytics")
def provider_analytics(
    period: str = Query("monthly"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"period must be one of: {', '.join(PERIODS)}")
    start, end = period_bounds(period)

    rows = db.query(Appointment.status, func.count(Appointment.id)).filter(
        Appointment.provider_id == listing.id,
        Appointment.created_at >= start,
        Appointment.created_at < end,
    ).group_by(Appointment.status).all()
    by_status = {s: 0 for s in APPOINTMENT_STATUSES}
    by_status.update({s: int(c) for s, c in rows})
    total = sum(by_status.values())

    revenue = db.query(func.coalesce(func.sum(Appointment.total_amount), 0)).filter(
        Appointment.provider_id == listing.id,
        Appointment.status == "completed",
        Appointment.created_at >= start,
        Appointment.created_at < end,
    ).scalar() or 0.0

    avg_rating, review_total = db.query(func.avg(Review.rating), func.count(Review.id)).filter(
        Review.provider_id == listing.id,
        Review.is_visible.is_(True),
        Review.created_at >= start,
        Review.created_at < end,
    ).one()

    score = get_current_score(db, listing.id, period)
    return {
        "period": period,
        "start": start,
        "end": end,
        "appointments": {"total": total, **by_status},
        "revenue": float(revenue),
        "reviews": {
            "total": int(review_total or 0),
            "average_rating": round_half_up(float(avg_rating), 1) if avg_rating is not None else 0,
        },
        "completion_rate": round(by_status["completed"] / total * 100, 1) if total else 0,
        "sqi": score.sqi if score else None,
    }


# ---- Dashboard ----

@router.get("/dashboard", response_model=ProviderDashboard)
def provider_dashboard(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    listing = get_own_listing(db, current_user)
    today = datetime.utcnow().date()

    base = db.query(Appointment).filter(Appointment.provider_id == listing.id)
    todays = base.filter(Appointment.date == today).order_by(Appointment.time.asc()).all()
    upcoming = base.filter(
        Appointment.date > today,
        Appointment.status.in_(("pending", "confirmed")),
    ).order_by(Appointment.date.asc(), Appointment.time.asc()).limit(10).all()
    pending_count = base.filter(Appointment.status == "pending").count()

    return {
        "provider_id": listing.id,
        "today": todays,
        "upcoming": upcoming,
        "pending_count": pending_count,
        "unread_notifications": unread_count(db, current_user.id),
        "rating": listing.average_rating,
        "review_count": listing.review_count or 0,
    }
