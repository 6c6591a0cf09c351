# servicepro/db/models/messaging.py
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

CONVERSATION_TYPES = ("direct", "appointment", "support", "group")
CONVERSATION_STATUSES = ("active", "archived", "blocked", "closed")
RELATED_ENTITY_TYPES = ("appointment", "complaint", "review", "service")
MESSAGE_TYPES = ("text", "image", "file", "system", "appointment_request", "appointment_confirmation")
MESSAGE_STATUSES = ("sent", "delivered", "read", "failed")

PREVIEW_LENGTH = 100


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    conversation_type = Column(String, nullable=False, default="direct")
    title = Column(String(200), nullable=True)
    description = Column(String(500), nullable=True)
    related_entity_type = Column(String, nullable=True)
    related_entity_id = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default="active", index=True)

    last_message_id = Column(Integer, nullable=True)
    last_message_content = Column(String(PREVIEW_LENGTH), nullable=True)
    last_message_sender_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    last_message_at = Column(DateTime, nullable=True)

    message_count = Column(Integer, nullable=False, default=0)
    unread_count = Column(Integer, nullable=False, default=0)
    priority = Column(String, nullable=False, default="medium")
    tags = Column(JSON, nullable=False, default=list)

    archived_at = Column(DateTime, nullable=True)
    archived_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    archive_reason = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    participants = relationship(
        "ConversationParticipant", back_populates="conversation", cascade="all, delete-orphan", lazy="selectin"
    )

    def participant(self, user_id: int):
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    def is_participant(self, user_id: int) -> bool:
        p = self.participant(user_id)
        return p is not None and p.is_active

    def add_participant(self, user_id: int, role: str):
        existing = self.participant(user_id)
        if existing:
            existing.is_active = True
            existing.joined_at = datetime.utcnow()
            return existing
        p = ConversationParticipant(user_id=user_id, role=role)
        self.participants.append(p)
        return p

    def remove_participant(self, user_id: int):
        p = self.participant(user_id)
        if p:
            p.is_active = False

    def mark_read_by(self, user_id: int):
        p = self.participant(user_id)
        if p:
            p.last_read_at = datetime.utcnow()

    def update_last_message(self, message):
        self.last_message_id = message.id
        self.last_message_content = (message.text or "")[:PREVIEW_LENGTH]
        self.last_message_sender_id = message.sender_id
        self.last_message_at = datetime.utcnow()
        self.message_count = (self.message_count or 0) + 1

    def archive(self, archived_by, reason=None):
        self.status = "archived"
        self.archived_at = datetime.utcnow()
        self.archived_by = archived_by
        self.archive_reason = reason


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"
    __table_args__ = (UniqueConstraint("conversation_id", "user_id"),)

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, nullable=False, default="user")  # user | provider | admin
    joined_at = Column(DateTime, default=datetime.utcnow)
    last_read_at = Column(DateTime, default=datetime.utcnow)
    is_active = Column(Boolean, nullable=False, default=True)

    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("User")


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    message_type = Column(String, nullable=False, default="text")
    text = Column(String(2000), nullable=False)
    attachments = Column(JSON, nullable=False, default=list)

    status = Column(String, nullable=False, default="sent")
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)

    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)
    reply_to = Column(Integer, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)

    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime, nullable=True)
    original_content = Column(String(2000), nullable=True)

    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reactions = relationship(
        "MessageReaction", back_populates="message", cascade="all, delete-orphan", lazy="selectin"
    )

    def mark_as_read(self):
        self.is_read = True
        self.read_at = datetime.utcnow()
        self.status = "read"

    def add_reaction(self, user_id: int, emoji: str):
        # one reaction per user; a new one replaces the old
        for r in self.reactions:
            if r.user_id == user_id:
                r.emoji = emoji
                return r
        reaction = MessageReaction(user_id=user_id, emoji=emoji)
        self.reactions.append(reaction)
        return reaction

    def remove_reaction(self, user_id: int):
        self.reactions = [r for r in self.reactions if r.user_id != user_id]

    def edit(self, text: str):
        if not self.original_content:
            self.original_content = self.text
        self.text = text
        self.is_edited = True
        self.edited_at = datetime.utcnow()

    def soft_delete(self, deleted_by: int):
        self.is_deleted = True
        self.deleted_at = datetime.utcnow()
        self.deleted_by = deleted_by


class MessageReaction(Base):
    __tablename__ = "message_reactions"
    __table_args__ = (UniqueConstraint("message_id", "user_id"),)

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(Integer, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    emoji = Column(String(16), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    message = relationship("Message", back_populates="reactions")
