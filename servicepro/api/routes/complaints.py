# servicepro/api/routes/complaints.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from servicepro.api.deps import get_appointment_or_404
from servicepro.core.periods import PERIODS, period_bounds
from servicepro.core.security import get_current_user, require_admin
from servicepro.db.base import get_db
from servicepro.db.models.complaint import Complaint
from servicepro.db.models.user import User
from servicepro.schemas.complaint import (
    ComplaintAssign,
    ComplaintCreate,
    ComplaintEscalate,
    ComplaintNoteCreate,
    ComplaintResolve,
    ComplaintResponse,
)
from servicepro.services.notifications import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/complaints", tags=["complaints"])

SEVERITY_PRIORITY = {"low": "low", "medium": "medium", "high": "high", "critical": "urgent"}


def complaint_stats(db: Session, provider_id: Optional[int] = None, period: str = "monthly"):
    start, end = period_bounds(period)
    q = db.query(Complaint).filter(Complaint.created_at >= start, Complaint.created_at < end)
    if provider_id:
        q = q.filter(Complaint.provider_id == provider_id)
    complaints = q.all()

    resolution_hours = [c.resolution_hours for c in complaints if c.resolution_hours is not None]
    return {
        "period": period,
        "total": len(complaints),
        "pending": len([c for c in complaints if c.status == "pending"]),
        "resolved": len([c for c in complaints if c.status == "resolved"]),
        "critical": len([c for c in complaints if c.severity == "critical"]),
        "high": len([c for c in complaints if c.severity == "high"]),
        "urgent": len([c for c in complaints if c.priority == "urgent"]),
        "average_resolution_hours": round(sum(resolution_hours) / len(resolution_hours), 1) if resolution_hours else 0,
    }


def get_complaint_or_404(db: Session, complaint_id: int) -> Complaint:
    complaint = db.query(Complaint).filter(Complaint.id == complaint_id).first()
    if not complaint:
        raise HTTPException(status_code=404, detail="Complaint not found")
    return complaint


# ---- Customer ----

@router.post("/", response_model=ComplaintResponse, status_code=status.HTTP_201_CREATED)
def file_complaint(payload: ComplaintCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    appointment = get_appointment_or_404(db, payload.appointment_id)
    if appointment.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="You can only complain about your own appointments")

    complaint = Complaint(
        user_id=current_user.id,
        provider_id=appointment.provider_id,
        appointment_id=appointment.id,
        category=payload.category,
        severity=payload.severity,
        title=payload.title,
        description=payload.description,
        priority=SEVERITY_PRIORITY[payload.severity],
    )
    db.add(complaint)
    db.flush()

    create_notification(
        db,
        recipient_id=appointment.provider.user_id,
        sender_id=current_user.id,
        notification_type="complaint_filed",
        title="A complaint was filed",
        message=complaint.title,
        related_entity_type="complaint",
        related_entity_id=complaint.id,
        priority="high" if payload.severity in ("high", "critical") else "medium",
        commit=False,
    )
    db.commit()
    db.refresh(complaint)
    logger.info("Complaint %s filed by user %s against provider %s", complaint.id, current_user.id, complaint.provider_id)
    return complaint


@router.get("/mine", response_model=List[ComplaintResponse])
def my_complaints(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return db.query(Complaint).filter(
        Complaint.user_id == current_user.id
    ).order_by(Complaint.created_at.desc()).all()


# ---- Admin ----

@router.get("/stats")
def get_complaint_stats(
    provider_id: Optional[int] = Query(None),
    period: str = Query("monthly"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"period must be one of: {', '.join(PERIODS)}")
    return complaint_stats(db, provider_id, period)


@router.get("/", response_model=List[ComplaintResponse])
def list_complaints(
    status_filter: Optional[str] = Query(None, alias="status"),
    severity: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    provider_id: Optional[int] = Query(None),
    assigned_to: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(Complaint)
    if status_filter:
        q = q.filter(Complaint.status == status_filter)
    if severity:
        q = q.filter(Complaint.severity == severity)
    if priority:
        q = q.filter(Complaint.priority == priority)
    if provider_id:
        q = q.filter(Complaint.provider_id == provider_id)
    if assigned_to:
        q = q.filter(Complaint.assigned_to == assigned_to)
    return q.order_by(Complaint.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()


@router.get("/{complaint_id}", response_model=ComplaintResponse)
def get_complaint(complaint_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    complaint = get_complaint_or_404(db, complaint_id)
    if current_user.role != "admin" and complaint.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to view this complaint")
    return complaint


@router.put("/{complaint_id}/assign", response_model=ComplaintResponse)
def assign_complaint(
    complaint_id: int,
    payload: ComplaintAssign,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    complaint = get_complaint_or_404(db, complaint_id)
    assignee = db.query(User).filter(User.id == payload.admin_id, User.role == "admin").first()
    if not assignee:
        raise HTTPException(status_code=400, detail="Complaints can only be assigned to admins")

    complaint.assigned_to = assignee.id
    if complaint.status == "pending":
        complaint.status = "investigating"
    complaint.add_admin_note(f"Assigned to {assignee.name}", admin.id)
    db.commit()
    db.refresh(complaint)
    return complaint


@router.put("/{complaint_id}/escalate", response_model=ComplaintResponse)
def escalate_complaint(
    complaint_id: int,
    payload: ComplaintEscalate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    complaint = get_complaint_or_404(db, complaint_id)
    if complaint.status in ("resolved", "dismissed"):
        raise HTTPException(status_code=400, detail=f"Cannot escalate a {complaint.status} complaint")

    complaint.escalate(payload.reason)
    complaint.add_admin_note(f"Escalated to level {complaint.escalation_level}: {payload.reason}", admin.id)
    db.commit()
    db.refresh(complaint)
    logger.info("Complaint %s escalated to level %s by admin %s", complaint.id, complaint.escalation_level, admin.id)
    return complaint


@router.put("/{complaint_id}/resolve", response_model=ComplaintResponse)
def resolve_complaint(
    complaint_id: int,
    payload: ComplaintResolve,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    complaint = get_complaint_or_404(db, complaint_id)
    if complaint.status == "resolved":
        raise HTTPException(status_code=400, detail="Complaint is already resolved")

    complaint.resolve(payload.description, admin.id, payload.compensation_type, payload.compensation_amount)
    complaint.follow_up_required = payload.follow_up_required
    complaint.follow_up_date = payload.follow_up_date

    create_notification(
        db,
        recipient_id=complaint.user_id,
        sender_id=admin.id,
        notification_type="complaint_resolved",
        title="Your complaint was resolved",
        message=payload.description,
        related_entity_type="complaint",
        related_entity_id=complaint.id,
        commit=False,
    )
    db.commit()
    db.refresh(complaint)
    logger.info("Complaint %s resolved by admin %s", complaint.id, admin.id)
    return complaint


@router.post("/{complaint_id}/notes", response_model=ComplaintResponse)
def add_complaint_note(
    complaint_id: int,
    payload: ComplaintNoteCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    complaint = get_complaint_or_404(db, complaint_id)
    complaint.add_admin_note(payload.note, admin.id)
    db.commit()
    db.refresh(complaint)
    return complaint
