# servicepro/services/notifications.py
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from servicepro.db.models.notification import NOTIFICATION_TYPES, Notification

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    recipient_id: int,
    notification_type: str,
    title: str,
    message: str,
    sender_id=None,
    related_entity_type=None,
    related_entity_id=None,
    priority="medium",
    scheduled_for=None,
    actions=None,
    metadata=None,
    expires_at=None,
    commit=True,
) -> Notification:
    """
    Record an in-app notification. Pass commit=False to let the caller
    commit it together with the change that triggered it.
    """
    if notification_type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {notification_type}")

    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        notification_type=notification_type,
        title=title[:200],
        message=message[:1000],
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        priority=priority,
        scheduled_for=scheduled_for or datetime.utcnow(),
        actions=actions or [],
        extra=metadata or {},
        expires_at=expires_at,
        status="sent",
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    logger.debug("Notification %s queued for user %s", notification_type, recipient_id)
    return notification


def send_bulk_notifications(db: Session, items):
    """Create each notification independently; one failure does not stop the rest."""
    results = []
    for item in items:
        try:
            notification = create_notification(db, **item)
            results.append({"success": True, "notification_id": notification.id})
        except (ValueError, TypeError, SQLAlchemyError) as e:
            db.rollback()
            logger.warning("Bulk notification failed for %s: %s", item.get("recipient_id"), e)
            results.append({"success": False, "error": str(e), "recipient_id": item.get("recipient_id")})
    return results


def unread_count(db: Session, user_id: int) -> int:
    return db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.is_read.is_(False),
        Notification.is_archived.is_(False),
        Notification.status.in_(("sent", "delivered")),
    ).count()


def cleanup_expired(db: Session) -> int:
    deleted = db.query(Notification).filter(
        Notification.expires_at.isnot(None),
        Notification.expires_at < datetime.utcnow(),
    ).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info("Removed %d expired notifications", deleted)
    return deleted
