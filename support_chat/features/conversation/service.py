"""
Conversation store service.

Async facade over ``ConversationCRUD``. Each call opens its own session and
runs the synchronous ORM work in a worker thread.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from ...core.database import run_in_session
from ...core.exceptions import NotFoundError, ValidationError
from .crud import ConversationCRUD
from .models import Conversation, Message, MessageSender

logger = logging.getLogger(__name__)


@dataclass
class ContextMessage:
    """Message reduced to what the LLM prompt needs."""

    sender: str
    text: str
    timestamp: datetime


class ConversationService:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def _run(self, operation):
        return await asyncio.to_thread(run_in_session, self._session_factory, operation)

    async def create_conversation(self, metadata: Optional[Dict[str, Any]] = None) -> Conversation:
        conversation = await self._run(lambda db: ConversationCRUD(db).create_conversation(metadata))
        logger.info(f"💬 Conversation created: {conversation.id}")
        return conversation

    async def get_conversation(self, conversation_id: str) -> Conversation:
        """
        Raises:
            NotFoundError: if the conversation does not exist
        """
        conversation = await self._run(lambda db: ConversationCRUD(db).get_conversation(conversation_id))
        if conversation is None:
            raise NotFoundError(f"Conversation with id {conversation_id} not found")
        return conversation

    async def conversation_exists(self, conversation_id: str) -> bool:
        conversation = await self._run(lambda db: ConversationCRUD(db).get_conversation(conversation_id))
        return conversation is not None

    async def add_message(
        self,
        conversation_id: str,
        sender: MessageSender,
        text: str,
        channel: str = "web",
        channel_user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        await self.get_conversation(conversation_id)

        sender_value = MessageSender(sender).value
        message = await self._run(
            lambda db: ConversationCRUD(db).add_message(
                conversation_id, sender_value, text, channel, channel_user_id, metadata
            )
        )
        logger.info(f"💾 Message added: conversation={conversation_id}, id={message.id}, sender={sender_value}")
        return message

    async def get_history(self, conversation_id: str, limit: Optional[int] = None) -> List[Message]:
        """
        Messages of a conversation, oldest first.

        Args:
            conversation_id: conversation identifier
            limit: when given, only the most recent ``limit`` messages

        Raises:
            ValidationError: if ``limit`` is below 1
            NotFoundError: if the conversation does not exist
        """
        if limit is not None and limit < 1:
            raise ValidationError("History limit must be at least 1")
        await self.get_conversation(conversation_id)

        if limit is not None:
            messages = await self._run(lambda db: ConversationCRUD(db).get_recent_messages(conversation_id, limit))
        else:
            messages = await self._run(lambda db: ConversationCRUD(db).get_messages(conversation_id))

        logger.debug(f"Retrieved {len(messages)} messages for conversation {conversation_id}")
        return messages

    async def get_recent_messages_for_context(self, conversation_id: str, limit: int) -> List[ContextMessage]:
        messages = await self._run(lambda db: ConversationCRUD(db).get_recent_messages(conversation_id, limit))
        return [ContextMessage(sender=m.sender, text=m.text, timestamp=m.created_at) for m in messages]

    async def close_conversation(self, conversation_id: str):
        closed = await self._run(lambda db: ConversationCRUD(db).close_conversation(conversation_id))
        if not closed:
            raise NotFoundError(f"Conversation with id {conversation_id} not found")
        logger.info(f"🔒 Conversation closed: {conversation_id}")

    async def update_metadata(self, conversation_id: str, metadata: Dict[str, Any]):
        updated = await self._run(lambda db: ConversationCRUD(db).update_metadata(conversation_id, metadata))
        if not updated:
            raise NotFoundError(f"Conversation with id {conversation_id} not found")
        logger.debug(f"Conversation metadata updated: {conversation_id}")

    async def find_active_conversation_for_channel_user(self, channel: str, channel_user_id: str) -> Optional[str]:
        return await self._run(
            lambda db: ConversationCRUD(db).find_active_conversation_for_channel_user(channel, channel_user_id)
        )
