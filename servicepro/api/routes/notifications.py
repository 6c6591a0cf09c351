# servicepro/api/routes/notifications.py
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from servicepro.api.deps import paginate
from servicepro.core.security import get_current_user, require_admin
from servicepro.db.base import get_db
from servicepro.db.models.notification import Notification
from servicepro.db.models.user import User
from servicepro.schemas.notification import (
    BulkNotificationCreate,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
from servicepro.services.notifications import (
    cleanup_expired,
    create_notification,
    send_bulk_notifications,
    unread_count,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def get_own_notification(db: Session, notification_id: int, user: User) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id, Notification.recipient_id == user.id
    ).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    notification_type: Optional[str] = Query(None, alias="type"),
    include_archived: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    q = db.query(Notification).filter(Notification.recipient_id == current_user.id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    if notification_type:
        q = q.filter(Notification.notification_type == notification_type)
    if not include_archived:
        q = q.filter(Notification.is_archived.is_(False))

    total, items = paginate(q.order_by(Notification.created_at.desc(), Notification.id.desc()), page, per_page)
    return {
        "total": total,
        "page": page,
        "per_page": per_page,
        "unread": unread_count(db, current_user.id),
        "items": items,
    }


@router.get("/unread-count")
def get_unread_count(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"unread": unread_count(db, current_user.id)}


@router.put("/read-all")
def mark_all_read(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    updated = db.query(Notification).filter(
        Notification.recipient_id == current_user.id,
        Notification.is_read.is_(False),
    ).update({"is_read": True, "read_at": datetime.utcnow()}, synchronize_session=False)
    db.commit()
    return {"updated": updated}


@router.get("/stats")
def notification_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    rows = db.query(Notification.notification_type, func.count(Notification.id)).filter(
        Notification.recipient_id == current_user.id
    ).group_by(Notification.notification_type).all()
    total = db.query(Notification).filter(Notification.recipient_id == current_user.id).count()
    archived = db.query(Notification).filter(
        Notification.recipient_id == current_user.id, Notification.is_archived.is_(True)
    ).count()
    return {
        "total": total,
        "unread": unread_count(db, current_user.id),
        "archived": archived,
        "by_type": {t: int(c) for t, c in rows},
    }


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    notification = get_own_notification(db, notification_id, current_user)
    notification.mark_as_read()
    db.commit()
    db.refresh(notification)
    return notification


@router.put("/{notification_id}/archive", response_model=NotificationResponse)
def archive_notification(notification_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    notification = get_own_notification(db, notification_id, current_user)
    notification.archive()
    db.commit()
    db.refresh(notification)
    return notification


# ---- Admin ----

@router.post("/", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def admin_create_notification(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if not db.query(User).filter(User.id == payload.recipient_id).first():
        raise HTTPException(status_code=404, detail="Recipient not found")
    return create_notification(db, sender_id=admin.id, **payload.model_dump())


@router.post("/bulk")
def bulk_create(payload: BulkNotificationCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    items = [dict(n.model_dump(), sender_id=admin.id) for n in payload.notifications]
    results = send_bulk_notifications(db, items)
    sent = len([r for r in results if r["success"]])
    logger.info("Admin %s sent %d/%d bulk notifications", admin.id, sent, len(results))
    return {"sent": sent, "failed": len(results) - sent, "results": results}


@router.delete("/cleanup")
def cleanup(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return {"deleted": cleanup_expired(db)}
