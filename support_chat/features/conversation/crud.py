"""
CRUD operations for conversations and messages.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ...core.database import utcnow
from .models import Conversation, ConversationStatus, Message

logger = logging.getLogger(__name__)


class ConversationCRUD:
    """
    Database access for conversations.

    Handles:
    - conversation lifecycle (create, close, metadata)
    - appending messages and reading history in chronological order
    """

    def __init__(self, db: Session):
        self.db = db

    def create_conversation(self, metadata: Optional[Dict[str, Any]] = None) -> Conversation:
        conversation = Conversation(meta=metadata, status=ConversationStatus.ACTIVE.value)
        self.db.add(conversation)
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.db.query(Conversation).filter(Conversation.id == conversation_id).first()

    def add_message(
        self,
        conversation_id: str,
        sender: str,
        text: str,
        channel: str = "web",
        channel_user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        """
        Append a message and touch the conversation's ``updated_at``.

        Both writes happen in one transaction.
        """
        now = utcnow()
        message = Message(
            conversation_id=conversation_id,
            sender=sender,
            text=text,
            channel=channel,
            channel_user_id=channel_user_id,
            meta=metadata,
            created_at=now,
        )
        self.db.add(message)
        self.db.query(Conversation).filter(Conversation.id == conversation_id).update(
            {Conversation.updated_at: now}, synchronize_session=False
        )
        self.db.commit()
        self.db.refresh(message)
        return message

    def get_messages(self, conversation_id: str) -> List[Message]:
        return (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
            .all()
        )

    def get_recent_messages(self, conversation_id: str, limit: int) -> List[Message]:
        """Last ``limit`` messages, oldest first."""
        recent = (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .limit(limit)
            .all()
        )
        # Reverse to chronological order (oldest first)
        return list(reversed(recent))

    def close_conversation(self, conversation_id: str) -> bool:
        updated = self.db.query(Conversation).filter(Conversation.id == conversation_id).update(
            {Conversation.status: ConversationStatus.CLOSED.value, Conversation.updated_at: utcnow()},
            synchronize_session=False,
        )
        self.db.commit()
        return updated > 0

    def update_metadata(self, conversation_id: str, metadata: Dict[str, Any]) -> bool:
        updated = self.db.query(Conversation).filter(Conversation.id == conversation_id).update(
            {Conversation.meta: metadata, Conversation.updated_at: utcnow()},
            synchronize_session=False,
        )
        self.db.commit()
        return updated > 0

    def find_active_conversation_for_channel_user(self, channel: str, channel_user_id: str) -> Optional[str]:
        """Conversation of the user's latest message on ``channel``, if still active."""
        row = (
            self.db.query(Message.conversation_id)
            .join(Conversation, Conversation.id == Message.conversation_id)
            .filter(
                Message.channel == channel,
                Message.channel_user_id == channel_user_id,
                Conversation.status == ConversationStatus.ACTIVE.value,
            )
            .order_by(Message.created_at.desc())
            .first()
        )
        return row[0] if row else None
