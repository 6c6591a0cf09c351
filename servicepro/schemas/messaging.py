# servicepro/schemas/messaging.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ConversationType = Literal["direct", "appointment", "support", "group"]
MessageType = Literal["text", "image", "file", "system", "appointment_request", "appointment_confirmation"]


class ConversationCreate(BaseModel):
    participant_ids: List[int] = Field(..., min_length=1)
    conversation_type: ConversationType = "direct"
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    related_entity_type: Optional[Literal["appointment", "complaint", "review", "service"]] = None
    related_entity_id: Optional[int] = None


class ParticipantResponse(BaseModel):
    user_id: int
    role: str
    joined_at: Optional[datetime] = None
    last_read_at: Optional[datetime] = None
    is_active: bool

    class Config:
        from_attributes = True


class ConversationResponse(BaseModel):
    id: int
    conversation_type: str
    title: Optional[str] = None
    status: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    last_message_content: Optional[str] = None
    last_message_sender_id: Optional[int] = None
    last_message_at: Optional[datetime] = None
    message_count: int
    unread_count: int
    priority: str
    participants: List[ParticipantResponse]
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)
    message_type: MessageType = "text"
    reply_to: Optional[int] = None
    appointment_id: Optional[int] = None


class MessageEdit(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class ReactionCreate(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=16)


class ReactionResponse(BaseModel):
    user_id: int
    emoji: str

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    recipient_id: int
    message_type: str
    text: str
    status: str
    is_read: bool
    read_at: Optional[datetime] = None
    reply_to: Optional[int] = None
    is_edited: bool
    original_content: Optional[str] = None
    is_deleted: bool
    reactions: List[ReactionResponse] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ArchiveRequest(BaseModel):
    reason: Optional[str] = None
