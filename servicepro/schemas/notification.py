# servicepro/schemas/notification.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

NotificationType = Literal[
    "appointment_confirmed",
    "appointment_cancelled",
    "appointment_reminder",
    "review_received",
    "complaint_filed",
    "complaint_resolved",
    "provider_approved",
    "provider_rejected",
    "system_announcement",
    "reward_earned",
    "message_received",
    "quality_score_update",
    "admin_action_required",
]
Priority = Literal["low", "medium", "high", "urgent"]


class NotificationAction(BaseModel):
    label: str
    action: str
    url: Optional[str] = None
    style: Literal["primary", "secondary", "success", "danger", "warning"] = "primary"


class NotificationCreate(BaseModel):
    recipient_id: int
    notification_type: NotificationType
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    related_entity_type: Optional[Literal["appointment", "review", "complaint", "provider", "user", "system"]] = None
    related_entity_id: Optional[int] = None
    priority: Priority = "medium"
    scheduled_for: Optional[datetime] = None
    actions: List[NotificationAction] = []
    metadata: dict = {}
    expires_at: Optional[datetime] = None


class BulkNotificationCreate(BaseModel):
    notifications: List[NotificationCreate] = Field(..., min_length=1)


class NotificationResponse(BaseModel):
    id: int
    recipient_id: int
    sender_id: Optional[int] = None
    notification_type: str
    title: str
    message: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    priority: str
    status: str
    is_read: bool
    read_at: Optional[datetime] = None
    is_archived: bool
    actions: list
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    total: int
    page: int
    per_page: int
    unread: int
    items: List[NotificationResponse]
