# servicepro/api/routes/availability.py
from datetime import date, datetime, time, timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from servicepro.api.deps import get_own_listing, get_provider_or_404
from servicepro.core.security import get_current_user
from servicepro.db.base import get_db
from servicepro.db.models.appointment import ACTIVE_STATUSES, APPOINTMENT_DURATION_MINUTES, Appointment
from servicepro.db.models.availability import ProviderAvailability, ProviderTimeOff
from servicepro.db.models.user import User
from servicepro.schemas.availability import (
    ProviderAvailabilityCreate,
    ProviderAvailabilityResponse,
    ProviderTimeOffCreate,
    ProviderTimeOffResponse,
    SlotsResponse,
)

router = APIRouter(prefix="/api/availability", tags=["availability"])


# Slot generation + conflict detection (shared with appointments)

def overlaps(start1, end1, start2, end2):
    return max(start1, start2) < min(end1, end2)


def provider_bookings_on_date(db: Session, provider_id: int, dt: date, exclude_id=None):
    # returns list of (start_datetime, end_datetime) for pending/confirmed appointments
    q = db.query(Appointment).filter(
        Appointment.provider_id == provider_id,
        Appointment.date == dt,
        Appointment.status.in_(ACTIVE_STATUSES),
    )
    if exclude_id is not None:
        q = q.filter(Appointment.id != exclude_id)
    return [(a.scheduled_at, a.ends_at) for a in q.all()]


def is_blocked_by_timeoff(db: Session, provider_id: int, slot_start_dt: datetime, slot_end_dt: datetime):
    timeoffs = db.query(ProviderTimeOff).filter(
        ProviderTimeOff.provider_id == provider_id,
        ProviderTimeOff.start_date <= slot_end_dt.date(),
        ProviderTimeOff.end_date >= slot_start_dt.date(),
    ).all()
    for t in timeoffs:
        cur = max(t.start_date, slot_start_dt.date())
        last = min(t.end_date, slot_end_dt.date())
        while cur <= last:
            if t.is_full_day:
                block_start = datetime.combine(cur, time.min)
                block_end = datetime.combine(cur, time.max)
            else:
                block_start = datetime.combine(cur, t.start_time)
                block_end = datetime.combine(cur, t.end_time)
            if overlaps(block_start, block_end, slot_start_dt, slot_end_dt):
                return True
            cur = cur + timedelta(days=1)
    return False


def active_windows(db: Session, provider_id: int, target_date: date):
    return db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == provider_id,
        ProviderAvailability.weekday == target_date.isoweekday(),
        ProviderAvailability.is_active.is_(True),
    ).order_by(ProviderAvailability.start_time).all()


def has_configured_windows(db: Session, provider_id: int) -> bool:
    return db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == provider_id,
        ProviderAvailability.is_active.is_(True),
    ).count() > 0


def containing_window(db: Session, provider_id: int, start: datetime, end: datetime):
    for w in active_windows(db, provider_id, start.date()):
        if start >= datetime.combine(start.date(), w.start_time) and end <= datetime.combine(start.date(), w.end_time):
            return w
    return None


def count_overlapping(bookings, start: datetime, end: datetime) -> int:
    return sum(1 for b_start, b_end in bookings if overlaps(b_start, b_end, start, end))


def is_available_at(db: Session, provider, target_date: date, time_str: str,
                    duration: int = APPOINTMENT_DURATION_MINUTES, exclude_id=None):
    """
    Returns (ok, reason). A provider without any weekly windows is treated as
    bookable at any time, one appointment at a time; otherwise the slot must
    sit inside a window and that window's max_bookings caps the overlapping
    pending/confirmed appointments.
    """
    start = datetime.combine(target_date, datetime.strptime(time_str, "%H:%M").time())
    end = start + timedelta(minutes=duration)

    capacity = 1
    if has_configured_windows(db, provider.id):
        window = containing_window(db, provider.id, start, end)
        if window is None:
            return False, "Requested time is outside provider availability"
        capacity = window.max_bookings or 1

    bookings = provider_bookings_on_date(db, provider.id, target_date, exclude_id)
    if count_overlapping(bookings, start, end) >= capacity:
        return False, "Time slot is already booked"

    if is_blocked_by_timeoff(db, provider.id, start, end):
        return False, "Requested time falls during provider time off"

    return True, None


def provider_has_availability_on_date(db: Session, provider_id: int, target_date: date) -> bool:
    """Fast pre-filter: a window on that weekday and no full-day time off."""
    if not active_windows(db, provider_id, target_date):
        return False
    toffs = db.query(ProviderTimeOff).filter(
        ProviderTimeOff.provider_id == provider_id,
        ProviderTimeOff.start_date <= target_date,
        ProviderTimeOff.end_date >= target_date,
    ).all()
    return not any(t.is_full_day for t in toffs)


def free_slots(db: Session, provider_id: int, target_date: date, duration: int, interval: int) -> List[str]:
    slots = []
    existing = provider_bookings_on_date(db, provider_id, target_date)

    for w in active_windows(db, provider_id, target_date):
        window_end = datetime.combine(target_date, w.end_time)
        slot_start = datetime.combine(target_date, w.start_time)
        while slot_start + timedelta(minutes=duration) <= window_end:
            slot_end = slot_start + timedelta(minutes=duration)
            full = count_overlapping(existing, slot_start, slot_end) >= (w.max_bookings or 1)
            if not full and not is_blocked_by_timeoff(db, provider_id, slot_start, slot_end):
                slots.append(slot_start.strftime("%H:%M"))
            slot_start += timedelta(minutes=interval)
    return slots


# ---- Provider: weekly windows ----

@router.post("/weekly", response_model=ProviderAvailabilityResponse, status_code=status.HTTP_201_CREATED)
def add_weekly_availability(
    payload: ProviderAvailabilityCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)

    if payload.start_time >= payload.end_time:
        raise HTTPException(status_code=400, detail="start_time must be before end_time")

    avail = ProviderAvailability(provider_id=listing.id, **payload.model_dump())
    db.add(avail)
    db.commit()
    db.refresh(avail)
    return avail


@router.get("/weekly", response_model=List[ProviderAvailabilityResponse])
def list_weekly_availability(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    listing = get_own_listing(db, current_user)
    return db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == listing.id
    ).order_by(ProviderAvailability.weekday, ProviderAvailability.start_time).all()


@router.delete("/weekly/{availability_id}")
def delete_weekly_availability(
    availability_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)
    avail = db.query(ProviderAvailability).filter(ProviderAvailability.id == availability_id).first()
    if not avail or avail.provider_id != listing.id:
        raise HTTPException(status_code=404, detail="Availability window not found")
    db.delete(avail)
    db.commit()
    return {"message": "Availability window deleted"}


# ---- Provider: time off ----

@router.post("/timeoff", response_model=ProviderTimeOffResponse, status_code=status.HTTP_201_CREATED)
def add_timeoff(
    payload: ProviderTimeOffCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_own_listing(db, current_user)

    if payload.start_date > payload.end_date:
        raise HTTPException(status_code=400, detail="start_date must be <= end_date")
    if (payload.start_time is None) != (payload.end_time is None):
        raise HTTPException(status_code=400, detail="Provide both start_time and end_time, or neither")
    if payload.start_time and payload.start_time >= payload.end_time:
        raise HTTPException(status_code=400, detail="start_time must be before end_time")

    timeoff = ProviderTimeOff(provider_id=listing.id, **payload.model_dump())
    db.add(timeoff)
    db.commit()
    db.refresh(timeoff)
    return timeoff


@router.get("/timeoff", response_model=List[ProviderTimeOffResponse])
def list_timeoffs(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    listing = get_own_listing(db, current_user)
    return db.query(ProviderTimeOff).filter(
        ProviderTimeOff.provider_id == listing.id
    ).order_by(ProviderTimeOff.start_date).all()


@router.delete("/timeoff/{timeoff_id}")
def delete_timeoff(timeoff_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    listing = get_own_listing(db, current_user)
    timeoff = db.query(ProviderTimeOff).filter(ProviderTimeOff.id == timeoff_id).first()
    if not timeoff or timeoff.provider_id != listing.id:
        raise HTTPException(status_code=404, detail="Time off not found")
    db.delete(timeoff)
    db.commit()
    return {"message": "Time off deleted"}


# ---- Public: free slots ----

@router.get("/providers/{provider_id}/slots", response_model=SlotsResponse)
def get_available_slots_for_date(
    provider_id: int,
    date_str: str = Query(..., alias="date", description="date in YYYY-MM-DD"),
    duration: int = Query(APPOINTMENT_DURATION_MINUTES, ge=15, le=480),
    interval: int = Query(30, ge=5, le=240, description="slot step in minutes"),
    db: Session = Depends(get_db),
):
    """
    Returns free slot start times (HH:MM) for the provider on the given date:
    inside an active weekly window, below the window's max_bookings in
    pending/confirmed appointments and clear of time off.
    """
    try:
        target_date = datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format, use YYYY-MM-DD")

    get_provider_or_404(db, provider_id)
    return {
        "provider_id": provider_id,
        "date": target_date,
        "duration": duration,
        "slots": free_slots(db, provider_id, target_date, duration, interval),
    }
