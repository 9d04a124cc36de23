"""
Explicit construction of every service the application uses.

Nothing is created at import time: ``build_context`` wires the services from
``Settings`` (tests pass their own provider, store and session factory), and
``AppContext.start`` / ``AppContext.stop`` own the background lifecycle.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .core.config import Settings
from .core.database import create_db_engine, create_session_factory, init_db
from .core.redis import SharedStore
from .features.channels.registry import ChannelRegistry, build_channels
from .features.chat.service import ChatService
from .features.conversation.service import ConversationService
from .features.knowledge.service import KnowledgeService
from .features.llm.factory import create_provider
from .features.llm.service import LLMService
from .features.llm.types import LLMProvider
from .features.messaging.event_bus import EventBus, register_logging_subscribers
from .features.rate_limit.dependencies import RateLimitPolicy, build_policies
from .features.rate_limit.limiter import RateLimiter
from .features.tools.implementations import default_tools
from .features.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    shared_store: Optional[SharedStore]
    rate_limiter: RateLimiter
    rate_limit_policies: Dict[str, RateLimitPolicy]
    event_bus: EventBus
    knowledge_service: KnowledgeService
    conversation_service: ConversationService
    llm_service: LLMService
    tool_registry: ToolRegistry
    chat_service: ChatService
    channels: ChannelRegistry
    _unsubscribers: List[Callable[[], None]] = field(default_factory=list)

    async def start(self):
        init_db(self.engine)
        if self.shared_store is not None:
            await self.shared_store.connect()
        self.rate_limiter.start()
        await self.channels.initialize_all()
        self._unsubscribers = register_logging_subscribers(self.event_bus)
        logger.info("🚀 Application services started")

    async def stop(self):
        await self.rate_limiter.stop()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        await self.channels.shutdown_all()
        await self.llm_service.close()
        if self.shared_store is not None:
            await self.shared_store.close()
        self.engine.dispose()
        logger.info("👋 Application services stopped")


def build_context(
    settings: Settings,
    provider: Optional[LLMProvider] = None,
    shared_store: Optional[SharedStore] = None,
    engine: Optional[Engine] = None,
    channels: Optional[ChannelRegistry] = None,
) -> AppContext:
    """
    Wire all services.

    Raises:
        ConfigurationError: unknown LLM provider or missing API key (only
            when ``provider`` is not given)
    """
    engine = engine or create_db_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)

    if shared_store is None and settings.REDIS_ENABLED and settings.REDIS_URL:
        shared_store = SharedStore.from_url(settings.REDIS_URL)

    llm_service = LLMService(provider or create_provider(settings))
    event_bus = EventBus()
    rate_limiter = RateLimiter(shared_store, cleanup_interval=settings.RATE_LIMIT_CLEANUP_INTERVAL)
    knowledge_service = KnowledgeService(
        session_factory,
        shared_store,
        local_ttl=settings.KNOWLEDGE_CACHE_TTL,
        shared_ttl=settings.KNOWLEDGE_SHARED_CACHE_TTL,
    )
    conversation_service = ConversationService(session_factory)
    tool_registry = ToolRegistry(default_tools() if settings.TOOLS_ENABLED else [])

    chat_service = ChatService(
        conversation_service,
        llm_service,
        knowledge_service,
        event_bus,
        tool_registry=tool_registry,
        max_message_length=settings.MAX_MESSAGE_LENGTH,
        max_history=settings.MAX_CONVERSATION_HISTORY,
        tools_enabled=settings.TOOLS_ENABLED,
    )

    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        shared_store=shared_store,
        rate_limiter=rate_limiter,
        rate_limit_policies=build_policies(settings),
        event_bus=event_bus,
        knowledge_service=knowledge_service,
        conversation_service=conversation_service,
        llm_service=llm_service,
        tool_registry=tool_registry,
        chat_service=chat_service,
        channels=channels or build_channels(settings),
    )
