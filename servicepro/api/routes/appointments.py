# servicepro/api/routes/appointments.py
import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from servicepro.api.deps import get_appointment_or_404, get_provider_or_404, paginate
from servicepro.api.routes.availability import is_available_at
from servicepro.core.rbac import require_permission
from servicepro.core.security import get_current_user, require_admin
from servicepro.db.base import get_db
from servicepro.db.models.appointment import Appointment
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.user import User
from servicepro.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentUpdate,
)
from servicepro.services.notifications import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


def is_provider_side(appointment: Appointment, user: User) -> bool:
    return appointment.provider is not None and appointment.provider.user_id == user.id


def ensure_participant_or_admin(appointment: Appointment, user: User):
    if user.role == "admin":
        return
    if appointment.user_id != user.id and not is_provider_side(appointment, user):
        raise HTTPException(status_code=403, detail="Not authorized to access this appointment")


# ---- List (scoped by caller) ----

@router.get("/", response_model=AppointmentListResponse)
def list_appointments(
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    provider_id: Optional[int] = Query(None, description="admin only"),
    user_id: Optional[int] = Query(None, description="admin only"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    q = db.query(Appointment)

    if current_user.role == "admin":
        if provider_id:
            q = q.filter(Appointment.provider_id == provider_id)
        if user_id:
            q = q.filter(Appointment.user_id == user_id)
    elif current_user.role == "provider":
        listing = db.query(ServiceProvider).filter(ServiceProvider.user_id == current_user.id).first()
        if not listing:
            return {"total": 0, "page": page, "per_page": per_page, "items": []}
        q = q.filter(Appointment.provider_id == listing.id)
    else:
        q = q.filter(Appointment.user_id == current_user.id)

    if status_filter:
        q = q.filter(Appointment.status == status_filter)
    if date_from:
        q = q.filter(Appointment.date >= date_from)
    if date_to:
        q = q.filter(Appointment.date <= date_to)

    total, items = paginate(q.order_by(Appointment.date.desc(), Appointment.time.desc()), page, per_page)
    return {"total": total, "page": page, "per_page": per_page, "items": items}


# ---- Detail (permission gated) ----

@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("appointments", "read", id_param="appointment_id")),
):
    return get_appointment_or_404(db, appointment_id)


# ---- Book (user) ----

@router.post("/", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role != "user":
        raise HTTPException(status_code=403, detail="Only customers can book appointments")

    provider = get_provider_or_404(db, payload.provider_id)
    if not provider.is_bookable:
        raise HTTPException(status_code=400, detail="Service provider is not available for booking")

    if payload.date <= date.today():
        raise HTTPException(status_code=400, detail="Appointment date must be in the future")

    ok, reason = is_available_at(db, provider, payload.date, payload.time)
    if not ok:
        raise HTTPException(status_code=400, detail=reason)

    appointment = Appointment(
        user_id=current_user.id,
        provider_id=provider.id,
        date=payload.date,
        time=payload.time,
        notes=payload.notes,
        service_type=payload.service_type,
        payment_method=payload.payment_method,
        total_amount=provider.price,
        status="pending",
    )
    if provider.profile is not None and provider.profile.auto_confirm:
        appointment.status = "confirmed"

    db.add(appointment)
    db.flush()

    create_notification(
        db,
        recipient_id=provider.user_id,
        sender_id=current_user.id,
        notification_type="appointment_confirmed" if appointment.status == "confirmed" else "admin_action_required",
        title="New appointment booked",
        message=f"{current_user.name} booked {appointment.date.isoformat()} at {appointment.time}",
        related_entity_type="appointment",
        related_entity_id=appointment.id,
        commit=False,
    )
    db.commit()
    db.refresh(appointment)
    logger.info("Appointment %s booked by user %s with provider %s", appointment.id, current_user.id, provider.id)
    return appointment


# ---- Update (participants or admin) ----

@router.put("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    appointment = get_appointment_or_404(db, appointment_id)
    ensure_participant_or_admin(appointment, current_user)

    updates = payload.model_dump(exclude_none=True)
    # cancellation only through PUT /{id}/cancel
    if updates.get("status") == "cancelled":
        raise HTTPException(status_code=400, detail="Use the cancel endpoint to cancel an appointment")

    new_date = updates.get("date", appointment.date)
    new_time = updates.get("time", appointment.time)
    if (new_date, new_time) != (appointment.date, appointment.time):
        ok, reason = is_available_at(db, appointment.provider, new_date, new_time, exclude_id=appointment.id)
        if not ok:
            raise HTTPException(status_code=400, detail=reason)

    for field, value in updates.items():
        setattr(appointment, field, value)
    if "receipt_url" in updates:
        appointment.has_receipt = True

    db.commit()
    db.refresh(appointment)
    return appointment


# ---- Cancel ----

@router.put("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    payload: Optional[AppointmentCancel] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    appointment = get_appointment_or_404(db, appointment_id)
    ensure_participant_or_admin(appointment, current_user)

    if not appointment.can_be_cancelled():
        raise HTTPException(
            status_code=400,
            detail="Appointment cannot be cancelled. Only confirmed appointments more than 24 hours away can be cancelled.",
        )

    if current_user.role == "admin":
        cancelled_by = "admin"
    elif appointment.user_id == current_user.id:
        cancelled_by = "user"
    else:
        cancelled_by = "provider"

    reason = payload.reason if payload and payload.reason else None
    appointment.cancel(reason, cancelled_by)

    recipients = []
    if cancelled_by != "user":
        recipients.append(appointment.user_id)
    if cancelled_by != "provider":
        recipients.append(appointment.provider.user_id)
    for recipient_id in recipients:
        create_notification(
            db,
            recipient_id=recipient_id,
            sender_id=current_user.id,
            notification_type="appointment_cancelled",
            title="Appointment cancelled",
            message=f"The appointment on {appointment.date.isoformat()} at {appointment.time} was cancelled"
                    + (f": {reason}" if reason else ""),
            related_entity_type="appointment",
            related_entity_id=appointment.id,
            priority="high",
            commit=False,
        )

    db.commit()
    db.refresh(appointment)
    logger.info("Appointment %s cancelled by %s %s", appointment.id, cancelled_by, current_user.id)
    return appointment


# ---- Delete (admin) ----

@router.delete("/{appointment_id}")
def delete_appointment(appointment_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    appointment = get_appointment_or_404(db, appointment_id)
    db.delete(appointment)
    db.commit()
    logger.info("Appointment %s deleted by admin %s", appointment_id, admin.id)
    return {"message": "Appointment deleted successfully"}
