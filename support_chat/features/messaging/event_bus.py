"""
In-process publish/subscribe for domain events.

``publish`` runs every handler of the event type concurrently and waits for
all of them. A failing handler is logged and does not affect the others or
the publisher.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional, Union

from .events import DomainEvent, EventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], Union[None, Awaitable[None]]]


class EventBus:
    def __init__(self, max_concurrency: Optional[int] = None):
        self._handlers: Dict[EventType, List[EventHandler]] = defaultdict(list)
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    def subscribe(self, event_type: EventType, handler: EventHandler) -> Callable[[], None]:
        """
        Register ``handler`` for ``event_type``.

        Returns:
            Callable that removes this subscription; calling it twice is a no-op
        """
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__name__', handler)} to {event_type.value}")

        def unsubscribe():
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    async def _invoke(self, handler: EventHandler, event: DomainEvent):
        try:
            if self._semaphore is not None:
                async with self._semaphore:
                    await self._call(handler, event)
            else:
                await self._call(handler, event)
        except Exception as e:
            logger.error(
                f"❌ Event handler {getattr(handler, '__name__', handler)} failed for {event.type.value}: {e}",
                exc_info=True,
            )

    @staticmethod
    async def _call(handler: EventHandler, event: DomainEvent):
        result = handler(event)
        if inspect.isawaitable(result):
            await result

    async def publish(self, event: DomainEvent):
        handlers = list(self._handlers.get(event.type, []))
        if not handlers:
            return
        logger.debug(f"📣 Publishing {event.type.value} to {len(handlers)} handlers")
        await asyncio.gather(*(self._invoke(handler, event) for handler in handlers))

    def clear(self):
        self._handlers.clear()

    def handler_count(self, event_type: EventType) -> int:
        return len(self._handlers.get(event_type, []))


def register_logging_subscribers(event_bus: EventBus) -> List[Callable[[], None]]:
    """Default subscribers that log the conversation lifecycle."""

    def on_message_received(event: DomainEvent):
        logger.info(
            f"📨 Message received: conversation={event.conversation_id}, "
            f"channel={event.payload.get('channel')}, length={event.payload.get('message_length')}"
        )

    def on_message_sent(event: DomainEvent):
        logger.info(
            f"📤 Message sent: conversation={event.conversation_id}, "
            f"model={event.payload.get('model')}, tokens={event.payload.get('tokens')}, "
            f"time={event.payload.get('processing_time_ms')}ms"
        )

    def on_conversation_started(event: DomainEvent):
        logger.info(f"💬 Conversation started: {event.conversation_id}, channel={event.payload.get('channel')}")

    def on_request_failed(event: DomainEvent):
        logger.warning(
            f"⚠️ Request failed: conversation={event.conversation_id}, "
            f"error={event.payload.get('error_type')}: {event.payload.get('error')}"
        )

    return [
        event_bus.subscribe(EventType.MESSAGE_RECEIVED, on_message_received),
        event_bus.subscribe(EventType.MESSAGE_SENT, on_message_sent),
        event_bus.subscribe(EventType.CONVERSATION_STARTED, on_conversation_started),
        event_bus.subscribe(EventType.REQUEST_FAILED, on_request_failed),
    ]
