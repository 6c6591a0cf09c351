# servicepro/services/messaging.py
import logging

from sqlalchemy.orm import Session

from servicepro.db.models.messaging import Conversation, ConversationParticipant

logger = logging.getLogger(__name__)


def participant_role(user) -> str:
    return user.role if user.role in ("provider", "admin") else "user"


def find_or_create_conversation(
    db: Session,
    participants,
    conversation_type="direct",
    title=None,
    description=None,
    related_entity_type=None,
    related_entity_id=None,
):
    """
    `participants` is a list of (user_id, role). A direct conversation
    between the same two users is reused while it is active.
    """
    user_ids = {user_id for user_id, _ in participants}

    if conversation_type == "direct" and len(user_ids) == 2:
        candidates = (
            db.query(Conversation)
            .join(ConversationParticipant)
            .filter(
                Conversation.conversation_type == "direct",
                Conversation.status == "active",
                ConversationParticipant.user_id.in_(user_ids),
                ConversationParticipant.is_active.is_(True),
            )
            .all()
        )
        for conversation in candidates:
            active_ids = {p.user_id for p in conversation.participants if p.is_active}
            if active_ids == user_ids:
                return conversation, False

    conversation = Conversation(
        conversation_type=conversation_type,
        title=title,
        description=description,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        status="active",
    )
    for user_id, role in participants:
        conversation.add_participant(user_id, role)
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    logger.info("Conversation %s created (%s)", conversation.id, conversation_type)
    return conversation, True
