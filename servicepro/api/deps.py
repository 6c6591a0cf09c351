# servicepro/api/deps.py
from fastapi import HTTPException
from sqlalchemy.orm import Session

from servicepro.db.models.appointment import Appointment
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.user import User


def get_provider_or_404(db: Session, provider_id: int) -> ServiceProvider:
    provider = db.query(ServiceProvider).filter(ServiceProvider.id == provider_id).first()
    if not provider:
        raise HTTPException(status_code=404, detail="Service provider not found")
    return provider


def get_own_listing(db: Session, current_user: User) -> ServiceProvider:
    """The caller's provider listing; 403 for non-providers, 404 before one is created."""
    if current_user.role != "provider":
        raise HTTPException(status_code=403, detail="Providers only")
    listing = db.query(ServiceProvider).filter(ServiceProvider.user_id == current_user.id).first()
    if not listing:
        raise HTTPException(status_code=404, detail="Provider profile not found")
    return listing


def get_appointment_or_404(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


def paginate(query, page: int, per_page: int):
    total = query.count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return total, items
