"""
Chat orchestration.

Turns one inbound customer message into a persisted, context-aware AI reply:

    validate -> resolve conversation -> persist user message -> assemble
    context -> generate reply -> [execute tools] -> persist AI reply

Lifecycle events are published on the event bus. Any failure after
validation publishes ``REQUEST_FAILED`` and is re-raised unchanged.
"""

import asyncio
import contextlib
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Tuple

from ...core.exceptions import ValidationError
from ..conversation.models import MessageSender
from ..conversation.service import ConversationService
from ..knowledge.service import KnowledgeService
from ..llm.service import LLMService
from ..llm.types import ConversationContext, ToolCall
from ..messaging.event_bus import EventBus
from ..messaging.events import DomainEvent, EventType
from ..tools.base import ToolExecutionResult
from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class SendMessageResult:
    reply: str
    session_id: str
    processing_time_ms: int


@dataclass
class HistoryMessage:
    id: str
    sender: str
    text: str
    timestamp: datetime


@dataclass
class ConversationHistory:
    session_id: str
    messages: List[HistoryMessage] = field(default_factory=list)


def summarize_tool_results(results: List[Tuple[ToolCall, ToolExecutionResult]]) -> str:
    """Reply text describing the outcome of each requested tool call."""
    lines = ["Here is what I found:"]
    for call, result in results:
        if result.success:
            data = result.data
            if isinstance(data, dict) and "message" in data:
                detail = data["message"]
            else:
                detail = json.dumps(data, ensure_ascii=False, default=str)
            lines.append(f"- {call.name}: {detail}")
        else:
            lines.append(f"- {call.name}: failed ({result.error})")
    return "\n".join(lines)


class _ConversationLocks:
    """Per-conversation asyncio locks, dropped when nobody holds or waits on them."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, conversation_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._users[conversation_id] = self._users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[conversation_id] -= 1
            if self._users[conversation_id] == 0:
                del self._users[conversation_id]
                del self._locks[conversation_id]

    def __len__(self):
        return len(self._locks)


class ChatService:
    def __init__(
        self,
        conversation_service: ConversationService,
        llm_service: LLMService,
        knowledge_service: KnowledgeService,
        event_bus: EventBus,
        tool_registry: Optional[ToolRegistry] = None,
        max_message_length: int = 2000,
        max_history: int = 10,
        tools_enabled: bool = False,
    ):
        self.conversation_service = conversation_service
        self.llm_service = llm_service
        self.knowledge_service = knowledge_service
        self.event_bus = event_bus
        self.tool_registry = tool_registry
        self.max_message_length = max_message_length
        self.max_history = max_history
        self.tools_enabled = tools_enabled
        self._locks = _ConversationLocks()

    def _validate_message(self, message: str):
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message cannot be empty")
        if len(message) > self.max_message_length:
            raise ValidationError(
                f"Message too long. Maximum length is {self.max_message_length} characters"
            )

    async def _start_conversation(self, channel: str, metadata: Optional[dict] = None) -> str:
        conversation = await self.conversation_service.create_conversation(metadata)
        await self.event_bus.publish(DomainEvent(
            type=EventType.CONVERSATION_STARTED,
            conversation_id=conversation.id,
            payload={"channel": channel, **(metadata or {})},
        ))
        return conversation.id

    async def _resolve_conversation(self, session_id: Optional[str], channel: str) -> str:
        if not session_id:
            return await self._start_conversation(channel)

        if await self.conversation_service.conversation_exists(session_id):
            return session_id

        # Unknown ids are not reused as primary keys; the caller gets a new session id back
        logger.warning(f"⚠️ Provided session ID {session_id} not found, creating new conversation")
        return await self._start_conversation(channel, {"original_session_id": session_id})

    def _tool_definitions(self) -> Optional[List[dict]]:
        if self.tools_enabled and self.tool_registry is not None and self.tool_registry.count:
            return self.tool_registry.definitions()
        return None

    async def _execute_tools(self, tool_calls: List[ToolCall]) -> List[Tuple[ToolCall, ToolExecutionResult]]:
        async def _run(call: ToolCall) -> ToolExecutionResult:
            if not self.tools_enabled or self.tool_registry is None:
                return ToolExecutionResult(success=False, error="Tools are disabled")
            return await self.tool_registry.execute(call.name, call.arguments)

        results = await asyncio.gather(*(_run(call) for call in tool_calls))
        return list(zip(tool_calls, results))

    async def send_message(
        self,
        message: str,
        session_id: Optional[str] = None,
        channel: str = "web",
        channel_user_id: Optional[str] = None,
    ) -> SendMessageResult:
        """
        Process a customer message and return the AI reply.

        Raises:
            ValidationError: empty or too long message, before any side effect
            LLMUnavailableError: provider failure
            PersistenceError: storage failure
        """
        start_time = time.monotonic()
        self._validate_message(message)

        conversation_id: Optional[str] = None
        try:
            conversation_id = await self._resolve_conversation(session_id, channel)
            logger.info(f"📨 Processing chat message: conversation={conversation_id}, length={len(message)}")

            async with self._locks.hold(conversation_id):
                return await self._process(conversation_id, message, channel, channel_user_id, start_time)
        except Exception as e:
            logger.error(
                f"❌ Failed to process chat message: conversation={conversation_id}, "
                f"{type(e).__name__}: {e}"
            )
            await self.event_bus.publish(DomainEvent(
                type=EventType.REQUEST_FAILED,
                conversation_id=conversation_id,
                payload={"error": str(e), "error_type": type(e).__name__, "channel": channel},
            ))
            raise

    async def _process(
        self,
        conversation_id: str,
        message: str,
        channel: str,
        channel_user_id: Optional[str],
        start_time: float,
    ) -> SendMessageResult:
        user_message = await self.conversation_service.add_message(
            conversation_id, MessageSender.USER, message, channel=channel, channel_user_id=channel_user_id
        )
        await self.event_bus.publish(DomainEvent(
            type=EventType.MESSAGE_RECEIVED,
            conversation_id=conversation_id,
            payload={"message_id": user_message.id, "channel": channel, "message_length": len(message)},
        ))

        history = await self.conversation_service.get_recent_messages_for_context(
            conversation_id, self.max_history
        )
        knowledge_base = await self.knowledge_service.format_for_prompt()
        tools = self._tool_definitions()

        llm_response = await self.llm_service.generate_reply(
            ConversationContext(
                conversation_id=conversation_id,
                messages=history,
                knowledge_base=knowledge_base,
                available_tools=tools,
            ),
            tools=tools,
        )

        reply = llm_response.reply
        tool_summary = None
        if llm_response.tool_calls:
            results = await self._execute_tools(llm_response.tool_calls)
            reply = summarize_tool_results(results)
            tool_summary = [
                {"id": call.id, "name": call.name, "success": result.success}
                for call, result in results
            ]

        ai_message = await self.conversation_service.add_message(
            conversation_id,
            MessageSender.AI,
            reply,
            channel=channel,
            channel_user_id=channel_user_id,
            metadata={
                "llm_model": llm_response.metadata.model,
                "tokens": llm_response.metadata.tokens,
                "processing_time_ms": llm_response.metadata.processing_time_ms,
                "tool_calls": tool_summary,
            },
        )

        processing_time_ms = int((time.monotonic() - start_time) * 1000)
        await self.event_bus.publish(DomainEvent(
            type=EventType.MESSAGE_SENT,
            conversation_id=conversation_id,
            payload={
                "message_id": ai_message.id,
                "channel": channel,
                "model": llm_response.metadata.model,
                "tokens": llm_response.metadata.tokens,
                "processing_time_ms": processing_time_ms,
            },
        ))

        logger.info(f"✅ Chat message processed: conversation={conversation_id}, time={processing_time_ms}ms")
        return SendMessageResult(reply=reply, session_id=conversation_id, processing_time_ms=processing_time_ms)

    async def get_conversation_history(self, session_id: str) -> ConversationHistory:
        """
        Raises:
            NotFoundError: if the conversation does not exist
        """
        conversation = await self.conversation_service.get_conversation(session_id)
        messages = await self.conversation_service.get_history(session_id)
        return ConversationHistory(
            session_id=conversation.id,
            messages=[
                HistoryMessage(id=m.id, sender=m.sender, text=m.text, timestamp=m.created_at)
                for m in messages
            ],
        )
