"""
Knowledge base service.

Formats the active knowledge entries into the text block embedded in the
LLM system prompt, and caches it in two tiers: Redis (shared between
instances) and a per-process copy. Every mutation clears both tiers before
returning, so the next prompt reflects the change.
"""

import asyncio
import logging
import time
from itertools import groupby
from typing import Callable, Iterable, List, Optional

from redis.exceptions import RedisError
from sqlalchemy.orm import sessionmaker

from ...core.database import run_in_session
from ...core.exceptions import NotFoundError, ValidationError
from ...core.redis import SharedStore
from .crud import KnowledgeCRUD
from .models import KnowledgeEntry

logger = logging.getLogger(__name__)

CACHE_KEY = "knowledge:prompt"
NO_KNOWLEDGE_TEXT = "No specific knowledge base available."
UPDATABLE_FIELDS = {"category", "title", "content", "priority", "is_active"}


def format_category(category: str) -> str:
    """``return_policy`` -> ``Return Policy``"""
    return " ".join(word[:1].upper() + word[1:] for word in category.split("_"))


def format_entries(entries: Iterable[KnowledgeEntry]) -> str:
    ordered = sorted(entries, key=lambda e: (e.category, -e.priority, e.title))
    if not ordered:
        return NO_KNOWLEDGE_TEXT

    sections = []
    for category, items in groupby(ordered, key=lambda e: e.category):
        items_text = "\n\n".join(f"**{item.title}**\n{item.content}" for item in items)
        sections.append(f"## {format_category(category)}\n\n{items_text}")
    return "\n\n".join(sections)


class KnowledgeService:
    """Knowledge base access with a two-tier prompt cache."""

    def __init__(
        self,
        session_factory: sessionmaker,
        shared_store: Optional[SharedStore] = None,
        local_ttl: int = 60,
        shared_ttl: int = 300,
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory
        self.shared_store = shared_store
        self.local_ttl = local_ttl
        self.shared_ttl = shared_ttl
        self._clock = clock

        self._cached_text: Optional[str] = None
        self._expires_at = 0.0
        # bumped by invalidate(); a recompute started before it must not be cached
        self._generation = 0
        # set when a shared delete failed: Redis may still hold a pre-mutation document
        self._shared_dirty = False

    async def _run(self, operation):
        return await asyncio.to_thread(run_in_session, self._session_factory, operation)

    def _shared_enabled(self) -> bool:
        return self.shared_store is not None and self.shared_store.is_available

    async def _clear_shared(self, force: bool = False) -> bool:
        try:
            await self.shared_store.delete(CACHE_KEY, force=force)
        except RedisError as e:
            self._shared_dirty = True
            logger.warning(f"⚠️ Shared knowledge cache delete failed, retrying before the next shared read: {e}")
            return False
        self._shared_dirty = False
        return True

    async def _shared_usable(self) -> bool:
        if not self._shared_enabled():
            return False
        if self._shared_dirty:
            return await self._clear_shared()
        return True

    async def get_knowledge(self, category: Optional[str] = None) -> List[KnowledgeEntry]:
        if category:
            return await self._run(lambda db: KnowledgeCRUD(db).get_by_category(category))
        return await self._run(lambda db: KnowledgeCRUD(db).get_active())

    async def format_for_prompt(self) -> str:
        """
        Knowledge document for the system prompt.

        Lookup order: shared cache, local cache, database. A recomputed
        document is written to both tiers.
        """
        if await self._shared_usable():
            try:
                cached = await self.shared_store.get(CACHE_KEY)
                if cached is not None:
                    logger.debug("📦 Knowledge prompt served from shared cache")
                    return cached
            except RedisError as e:
                logger.warning(f"⚠️ Shared knowledge cache read failed: {e}")

        now = self._clock()
        if self._cached_text is not None and now < self._expires_at:
            return self._cached_text

        generation = self._generation
        entries = await self._run(lambda db: KnowledgeCRUD(db).get_active())
        text = format_entries(entries)

        if generation != self._generation:
            # invalidated while we were reading; return fresh data but don't cache it
            return text

        self._cached_text = text
        self._expires_at = self._clock() + self.local_ttl

        if self._shared_enabled() and not self._shared_dirty:
            try:
                await self.shared_store.setex(CACHE_KEY, self.shared_ttl, text)
            except RedisError as e:
                logger.warning(f"⚠️ Shared knowledge cache write failed: {e}")

        logger.debug(f"🔄 Knowledge prompt recomputed from {len(entries)} entries")
        return text

    async def invalidate(self):
        """
        Clear both cache tiers.

        The shared delete is attempted even while the store is cooling down.
        If it fails, the shared tier is not read again until a later delete
        succeeds.
        """
        self._generation += 1
        self._cached_text = None
        self._expires_at = 0.0
        if self.shared_store is not None:
            await self._clear_shared(force=True)

    async def add_knowledge(self, category: str, title: str, content: str, priority: int = 0) -> KnowledgeEntry:
        logger.debug(f"Adding knowledge entry {category}/{title}")
        entry = await self._run(lambda db: KnowledgeCRUD(db).create(category, title, content, priority))
        await self.invalidate()
        return entry

    async def update_knowledge(self, entry_id: str, **updates) -> KnowledgeEntry:
        """
        Update fields of an entry.

        Raises:
            ValidationError: when an unknown field is passed
            NotFoundError: when the entry does not exist
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown knowledge fields: {', '.join(sorted(unknown))}")

        entry = await self._run(lambda db: KnowledgeCRUD(db).update(entry_id, updates))
        if entry is None:
            raise NotFoundError(f"Knowledge entry {entry_id} not found")
        await self.invalidate()
        return entry

    async def delete_knowledge(self, entry_id: str):
        deleted = await self._run(lambda db: KnowledgeCRUD(db).delete(entry_id))
        if not deleted:
            raise NotFoundError(f"Knowledge entry {entry_id} not found")
        await self.invalidate()
