# servicepro/api/routes/messages.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from servicepro.core.periods import PERIODS, period_bounds
from servicepro.core.security import get_current_user
from servicepro.db.base import get_db
from servicepro.db.models.messaging import Conversation, ConversationParticipant, Message
from servicepro.db.models.user import User
from servicepro.schemas.messaging import (
    ArchiveRequest,
    ConversationCreate,
    ConversationResponse,
    MessageCreate,
    MessageEdit,
    MessageResponse,
    ReactionCreate,
)
from servicepro.services.messaging import find_or_create_conversation, participant_role
from servicepro.services.notifications import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["messages"])


def get_conversation_for(db: Session, conversation_id: int, user: User) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    if not conversation.is_participant(user.id):
        raise HTTPException(status_code=403, detail="Not a participant in this conversation")
    return conversation


def get_message_or_404(db: Session, message_id: int) -> Message:
    message = db.query(Message).filter(Message.id == message_id, Message.is_deleted.is_(False)).first()
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    return message


# ---- Conversations ----

@router.get("/conversations", response_model=List[ConversationResponse])
def list_conversations(
    status_filter: str = Query("active", alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return (
        db.query(Conversation)
        .join(ConversationParticipant)
        .filter(
            ConversationParticipant.user_id == current_user.id,
            ConversationParticipant.is_active.is_(True),
            Conversation.status == status_filter,
        )
        .order_by(Conversation.updated_at.desc())
        .all()
    )


@router.post("/conversations", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
def create_conversation(
    payload: ConversationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    requested = set(payload.participant_ids) - {current_user.id}
    others = db.query(User).filter(User.id.in_(requested)).all()
    if len(others) != len(requested):
        raise HTTPException(status_code=404, detail="Participant not found")
    if not others:
        raise HTTPException(status_code=400, detail="At least one other participant is required")

    participants = [(current_user.id, participant_role(current_user))]
    participants += [(u.id, participant_role(u)) for u in others]

    conversation, created = find_or_create_conversation(
        db,
        participants,
        conversation_type=payload.conversation_type,
        title=payload.title,
        description=payload.description,
        related_entity_type=payload.related_entity_type,
        related_entity_id=payload.related_entity_id,
    )
    if not created:
        logger.debug("Reusing conversation %s for user %s", conversation.id, current_user.id)
    return conversation


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageResponse])
def conversation_messages(
    conversation_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    conversation = get_conversation_for(db, conversation_id, current_user)

    messages = (
        db.query(Message)
        .filter(Message.conversation_id == conversation.id, Message.is_deleted.is_(False))
        .order_by(Message.created_at.asc(), Message.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    unread = [m for m in messages if m.recipient_id == current_user.id and not m.is_read]
    for m in unread:
        m.mark_as_read()
    conversation.mark_read_by(current_user.id)
    if unread:
        conversation.unread_count = max(0, (conversation.unread_count or 0) - len(unread))
    db.commit()
    return messages


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    conversation_id: int,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    conversation = get_conversation_for(db, conversation_id, current_user)
    if conversation.status != "active":
        raise HTTPException(status_code=400, detail=f"Conversation is {conversation.status}")

    recipients = [p.user_id for p in conversation.participants if p.is_active and p.user_id != current_user.id]
    if not recipients:
        raise HTTPException(status_code=400, detail="Conversation has no other participants")

    if payload.reply_to is not None:
        parent = db.query(Message).filter(
            Message.id == payload.reply_to, Message.conversation_id == conversation.id
        ).first()
        if not parent:
            raise HTTPException(status_code=400, detail="Replied message is not in this conversation")

    message = Message(
        conversation_id=conversation.id,
        sender_id=current_user.id,
        recipient_id=recipients[0],
        message_type=payload.message_type,
        text=payload.text,
        reply_to=payload.reply_to,
        appointment_id=payload.appointment_id,
    )
    db.add(message)
    db.flush()

    conversation.update_last_message(message)
    conversation.unread_count = (conversation.unread_count or 0) + 1

    for recipient_id in recipients:
        create_notification(
            db,
            recipient_id=recipient_id,
            sender_id=current_user.id,
            notification_type="message_received",
            title=f"New message from {current_user.name}",
            message=conversation.last_message_content,
            priority="low",
            metadata={"conversation_id": conversation.id, "message_id": message.id},
            commit=False,
        )
    db.commit()
    db.refresh(message)
    return message


@router.put("/conversations/{conversation_id}/archive", response_model=ConversationResponse)
def archive_conversation(
    conversation_id: int,
    payload: Optional[ArchiveRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    conversation = get_conversation_for(db, conversation_id, current_user)
    conversation.archive(current_user.id, payload.reason if payload else None)
    db.commit()
    db.refresh(conversation)
    return conversation


# ---- Stats ----

@router.get("/stats")
def message_stats(
    period: str = Query("monthly"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"period must be one of: {', '.join(PERIODS)}")
    start, end = period_bounds(period)

    base = db.query(Message).filter(
        Message.created_at >= start, Message.created_at < end, Message.is_deleted.is_(False)
    )
    sent = base.filter(Message.sender_id == current_user.id).count()
    received = base.filter(Message.recipient_id == current_user.id).count()
    unread = db.query(Message).filter(
        Message.recipient_id == current_user.id,
        Message.is_read.is_(False),
        Message.is_deleted.is_(False),
    ).count()
    conversations = db.query(ConversationParticipant).join(Conversation).filter(
        ConversationParticipant.user_id == current_user.id,
        ConversationParticipant.is_active.is_(True),
        Conversation.status == "active",
    ).count()
    return {
        "period": period,
        "sent": sent,
        "received": received,
        "unread": unread,
        "active_conversations": conversations,
    }


# ---- Single message ----

@router.put("/{message_id}/read", response_model=MessageResponse)
def mark_message_read(message_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    message = get_message_or_404(db, message_id)
    if message.recipient_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only the recipient can mark a message as read")
    if not message.is_read:
        message.mark_as_read()
        conversation = db.query(Conversation).filter(Conversation.id == message.conversation_id).first()
        if conversation:
            conversation.unread_count = max(0, (conversation.unread_count or 0) - 1)
        db.commit()
        db.refresh(message)
    return message


@router.put("/{message_id}", response_model=MessageResponse)
def edit_message(
    message_id: int,
    payload: MessageEdit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    message = get_message_or_404(db, message_id)
    if message.sender_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only the sender can edit this message")
    message.edit(payload.text)
    db.commit()
    db.refresh(message)
    return message


@router.delete("/{message_id}")
def delete_message(message_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    message = get_message_or_404(db, message_id)
    if message.sender_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only the sender can delete this message")
    message.soft_delete(current_user.id)
    db.commit()
    return {"message": "Message deleted successfully"}


@router.post("/{message_id}/reactions", response_model=MessageResponse)
def add_reaction(
    message_id: int,
    payload: ReactionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    message = get_message_or_404(db, message_id)
    get_conversation_for(db, message.conversation_id, current_user)
    message.add_reaction(current_user.id, payload.emoji)
    db.commit()
    db.refresh(message)
    return message


@router.delete("/{message_id}/reactions", response_model=MessageResponse)
def remove_reaction(message_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    message = get_message_or_404(db, message_id)
    get_conversation_for(db, message.conversation_id, current_user)
    message.remove_reaction(current_user.id)
    db.commit()
    db.refresh(message)
    return message
