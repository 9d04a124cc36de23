"""
Tests for the chat orchestration pipeline.
"""

import asyncio
import uuid

import pytest
from sqlalchemy import text

from support_chat.core.exceptions import LLMUnavailableError, NotFoundError, ValidationError
from support_chat.features.chat.service import ChatService, _ConversationLocks, summarize_tool_results
from support_chat.features.llm.types import LLMMetadata, LLMResponse, ToolCall
from support_chat.features.messaging.events import EventType
from support_chat.features.tools.base import ToolExecutionResult
from support_chat.features.tools.implementations import default_tools
from support_chat.features.tools.registry import ToolRegistry


@pytest.fixture
def events(context):
    """Every published event, in order."""
    received = []
    for event_type in EventType:
        context.event_bus.subscribe(event_type, received.append)
    return received


@pytest.fixture
def chat(context) -> ChatService:
    return context.chat_service


def tool_response(*calls):
    return LLMResponse(
        reply="",
        tool_calls=list(calls),
        metadata=LLMMetadata(model="fake-model", tokens=10, processing_time_ms=3),
    )


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_new_conversation(self, chat, context, fake_llm, events):
        fake_llm.queue("Hello! How can I help?")

        result = await chat.send_message("Hi")

        assert result.reply == "Hello! How can I help?"
        assert uuid.UUID(result.session_id)
        assert result.processing_time_ms >= 0
        assert [e.type for e in events] == [
            EventType.CONVERSATION_STARTED,
            EventType.MESSAGE_RECEIVED,
            EventType.MESSAGE_SENT,
        ]
        history = await context.conversation_service.get_history(result.session_id)
        assert [(m.sender, m.text) for m in history] == [("user", "Hi"), ("ai", "Hello! How can I help?")]

    @pytest.mark.asyncio
    async def test_hello_then_thanks_gives_four_messages(self, chat, fake_llm):
        fake_llm.queue("Hi there!", "You're welcome!")

        first = await chat.send_message("Hello")
        second = await chat.send_message("Thanks", session_id=first.session_id)
        history = await chat.get_conversation_history(first.session_id)

        assert second.session_id == first.session_id
        assert [(m.sender, m.text) for m in history.messages] == [
            ("user", "Hello"),
            ("ai", "Hi there!"),
            ("user", "Thanks"),
            ("ai", "You're welcome!"),
        ]
        timestamps = [m.timestamp for m in history.messages]
        assert timestamps == sorted(timestamps)

    @pytest.mark.asyncio
    async def test_context_includes_history_and_knowledge(self, chat, context, fake_llm):
        await context.knowledge_service.add_knowledge("returns", "Return Window", "30 days from delivery.")
        first = await chat.send_message("Hello")

        await chat.send_message("What is your return policy?", session_id=first.session_id)

        llm_context, tools = fake_llm.calls[-1]
        assert [(m.sender, m.text) for m in llm_context.messages] == [
            ("user", "Hello"),
            ("ai", "Happy to help!"),
            ("user", "What is your return policy?"),
        ]
        assert "30 days from delivery." in llm_context.knowledge_base
        assert tools is None

    @pytest.mark.asyncio
    async def test_history_window_is_bounded(self, chat, fake_llm):
        chat.max_history = 2
        first = await chat.send_message("one")
        await chat.send_message("two", session_id=first.session_id)

        llm_context, _ = fake_llm.calls[-1]

        assert [m.text for m in llm_context.messages] == ["Happy to help!", "two"]

    @pytest.mark.asyncio
    async def test_ai_message_metadata(self, chat, context, fake_llm):
        result = await chat.send_message("Hi")

        history = await context.conversation_service.get_history(result.session_id)

        assert history[1].meta["llm_model"] == "fake-model"
        assert history[1].meta["tokens"] == 42
        assert history[1].meta["tool_calls"] is None

    @pytest.mark.asyncio
    async def test_unknown_session_starts_new_conversation(self, chat, context, events):
        unknown = str(uuid.uuid4())

        result = await chat.send_message("Hi", session_id=unknown)

        assert result.session_id != unknown
        conversation = await context.conversation_service.get_conversation(result.session_id)
        assert conversation.meta == {"original_session_id": unknown}
        assert events[0].type == EventType.CONVERSATION_STARTED


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["", "   ", "\n\t"])
    async def test_empty_message(self, chat, context, events, message):
        """Validation fails before anything is persisted or published."""
        with pytest.raises(ValidationError, match="Message cannot be empty"):
            await chat.send_message(message)

        assert events == []
        with context.session_factory() as db:
            assert db.execute(text("SELECT COUNT(*) FROM conversations")).scalar() == 0

    @pytest.mark.asyncio
    async def test_too_long_message(self, chat, events):
        with pytest.raises(ValidationError, match="Maximum length is 2000 characters"):
            await chat.send_message("x" * 2001)

        assert events == []

    @pytest.mark.asyncio
    async def test_message_at_limit_is_accepted(self, chat):
        result = await chat.send_message("x" * 2000)
        assert result.reply


class TestFailures:
    @pytest.mark.asyncio
    async def test_llm_failure_publishes_request_failed(self, chat, context, fake_llm, events):
        fake_llm.queue(LLMUnavailableError("AI service is temporarily busy. Please try again in a moment."))

        with pytest.raises(LLMUnavailableError):
            await chat.send_message("Hi")

        failed = events[-1]
        assert failed.type == EventType.REQUEST_FAILED
        assert failed.payload["error_type"] == "LLMUnavailableError"
        assert failed.payload["channel"] == "web"
        # the user message stays persisted, no AI reply
        history = await context.conversation_service.get_history(failed.conversation_id)
        assert [m.sender for m in history] == ["user"]

    @pytest.mark.asyncio
    async def test_history_of_unknown_conversation(self, chat):
        with pytest.raises(NotFoundError):
            await chat.get_conversation_history(str(uuid.uuid4()))


class TestToolCalls:
    @pytest.fixture
    def tool_chat(self, context):
        context.chat_service.tool_registry = ToolRegistry(default_tools())
        context.chat_service.tools_enabled = True
        return context.chat_service

    @pytest.mark.asyncio
    async def test_tool_results_replace_reply(self, tool_chat, context, fake_llm):
        fake_llm.queue(tool_response(
            ToolCall(id="call_1", name="track_order", arguments='{"orderId": "A-1"}'),
            ToolCall(id="call_2", name="calculate_shipping", arguments='{"country": "US"}'),
        ))

        result = await tool_chat.send_message("Where is order A-1?")

        assert result.reply.startswith("Here is what I found:")
        assert "- track_order: Order tracking is not connected yet." in result.reply
        assert "- calculate_shipping: failed (Missing required parameter: zipCode, cartTotal)" in result.reply

        _, tools = fake_llm.calls[0]
        assert [t["function"]["name"] for t in tools] == ["track_order", "check_inventory", "calculate_shipping"]

        history = await context.conversation_service.get_history(result.session_id)
        assert history[1].meta["tool_calls"] == [
            {"id": "call_1", "name": "track_order", "success": True},
            {"id": "call_2", "name": "calculate_shipping", "success": False},
        ]

    @pytest.mark.asyncio
    async def test_tool_calls_ignored_when_disabled(self, chat, fake_llm):
        fake_llm.queue(tool_response(ToolCall(id="call_1", name="track_order", arguments='{"orderId": "A-1"}')))

        result = await chat.send_message("Where is order A-1?")

        assert "failed (Tools are disabled)" in result.reply

    def test_summarize_tool_results(self):
        summary = summarize_tool_results([
            (ToolCall("1", "check_inventory", "{}"), ToolExecutionResult(success=True, data={"inStock": 3})),
        ])
        assert summary == 'Here is what I found:\n- check_inventory: {"inStock": 3}'


class TestConversationLocks:
    @pytest.mark.asyncio
    async def test_same_conversation_is_serialized(self):
        locks = _ConversationLocks()
        order = []

        async def worker(name):
            async with locks.hold("c-1"):
                order.append(f"{name}:start")
                await asyncio.sleep(0.01)
                order.append(f"{name}:end")

        await asyncio.gather(worker("a"), worker("b"))

        assert order in (
            ["a:start", "a:end", "b:start", "b:end"],
            ["b:start", "b:end", "a:start", "a:end"],
        )
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_different_conversations_do_not_block(self):
        locks = _ConversationLocks()
        inside = asyncio.Event()

        async def holder():
            async with locks.hold("c-1"):
                await asyncio.wait_for(inside.wait(), timeout=1)

        async def other():
            async with locks.hold("c-2"):
                inside.set()

        await asyncio.gather(holder(), other())
        assert len(locks) == 0
