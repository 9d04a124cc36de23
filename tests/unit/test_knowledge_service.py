"""
Tests for the knowledge base service and its prompt cache.
"""

from types import SimpleNamespace

import pytest

from support_chat.core.exceptions import NotFoundError, ValidationError
from support_chat.core.redis import SharedStore
from support_chat.features.knowledge.seed import DEFAULT_KNOWLEDGE, seed_knowledge
from support_chat.features.knowledge.service import (
    CACHE_KEY,
    NO_KNOWLEDGE_TEXT,
    KnowledgeService,
    format_category,
    format_entries,
)
from tests.fakes import FakeClock, FakeRedis


def entry(category, title, content, priority=0):
    return SimpleNamespace(category=category, title=title, content=content, priority=priority)


class TestFormatting:
    def test_format_category(self):
        assert format_category("return_policy") == "Return Policy"
        assert format_category("shipping") == "Shipping"

    def test_empty_gives_sentinel(self):
        assert format_entries([]) == NO_KNOWLEDGE_TEXT

    def test_groups_sorted_and_entries_by_priority(self):
        text = format_entries([
            entry("shipping", "Costs", "Free over $50.", priority=1),
            entry("returns", "Window", "30 days.", priority=5),
            entry("shipping", "Regions", "US and Canada.", priority=9),
            entry("shipping", "Alpha", "Same priority as Costs.", priority=1),
        ])

        assert text == (
            "## Returns\n\n**Window**\n30 days.\n\n"
            "## Shipping\n\n**Regions**\nUS and Canada.\n\n"
            "**Alpha**\nSame priority as Costs.\n\n"
            "**Costs**\nFree over $50."
        )


class TestKnowledgeService:
    @pytest.mark.asyncio
    async def test_empty_knowledge_base(self, session_factory):
        service = KnowledgeService(session_factory)
        assert await service.format_for_prompt() == NO_KNOWLEDGE_TEXT

    @pytest.mark.asyncio
    async def test_formatting_is_idempotent(self, session_factory):
        service = KnowledgeService(session_factory)
        await service.add_knowledge("returns", "Return Window", "30 days.", 10)

        first = await service.format_for_prompt()
        second = await service.format_for_prompt()

        assert first == second
        assert first.startswith("## Returns")

    @pytest.mark.asyncio
    async def test_inactive_entries_are_excluded(self, session_factory):
        service = KnowledgeService(session_factory)
        kept = await service.add_knowledge("support", "Hours", "9 to 6.")
        hidden = await service.add_knowledge("support", "Secret", "Do not show.")

        await service.update_knowledge(hidden.id, is_active=False)
        text = await service.format_for_prompt()

        assert kept.title in text
        assert "Secret" not in text

    @pytest.mark.asyncio
    async def test_local_cache_respects_ttl(self, session_factory):
        clock = FakeClock()
        service = KnowledgeService(session_factory, local_ttl=60, clock=clock)
        await service.format_for_prompt()

        # written behind the service's back, so no invalidation
        seed_knowledge(session_factory, DEFAULT_KNOWLEDGE[:1])
        assert await service.format_for_prompt() == NO_KNOWLEDGE_TEXT

        clock.advance(61)
        assert "Shipping Regions" in await service.format_for_prompt()

    @pytest.mark.asyncio
    async def test_mutations_are_visible_immediately(self, session_factory):
        """Every add/update/delete invalidates the cache before returning."""
        service = KnowledgeService(session_factory)
        created = await service.add_knowledge("payment", "Methods", "Cards only.")
        assert "Cards only." in await service.format_for_prompt()

        await service.update_knowledge(created.id, content="Cards and PayPal.")
        assert "Cards and PayPal." in await service.format_for_prompt()

        await service.delete_knowledge(created.id)
        assert await service.format_for_prompt() == NO_KNOWLEDGE_TEXT

    @pytest.mark.asyncio
    async def test_get_knowledge_by_category(self, session_factory):
        service = KnowledgeService(session_factory)
        await service.add_knowledge("shipping", "Costs", "$5.99", 1)
        await service.add_knowledge("shipping", "Regions", "US", 5)
        await service.add_knowledge("returns", "Window", "30 days")

        shipping = await service.get_knowledge("shipping")
        everything = await service.get_knowledge()

        assert [e.title for e in shipping] == ["Regions", "Costs"]
        assert len(everything) == 3

    @pytest.mark.asyncio
    async def test_update_unknown_entry(self, session_factory):
        service = KnowledgeService(session_factory)
        with pytest.raises(NotFoundError):
            await service.update_knowledge("missing-id", title="New")

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, session_factory):
        service = KnowledgeService(session_factory)
        created = await service.add_knowledge("payment", "Methods", "Cards.")
        with pytest.raises(ValidationError):
            await service.update_knowledge(created.id, id="other")

    @pytest.mark.asyncio
    async def test_delete_unknown_entry(self, session_factory):
        service = KnowledgeService(session_factory)
        with pytest.raises(NotFoundError):
            await service.delete_knowledge("missing-id")


class TestSharedCache:
    @pytest.mark.asyncio
    async def test_recompute_writes_shared_tier(self, session_factory):
        redis = FakeRedis()
        service = KnowledgeService(session_factory, SharedStore(redis), shared_ttl=300)
        await service.add_knowledge("support", "Hours", "9 to 6.")

        text = await service.format_for_prompt()

        assert redis.data[CACHE_KEY] == text
        assert CACHE_KEY in redis.expires

    @pytest.mark.asyncio
    async def test_shared_tier_is_read_first(self, session_factory):
        redis = FakeRedis()
        redis.data[CACHE_KEY] = "from another instance"
        service = KnowledgeService(session_factory, SharedStore(redis))

        assert await service.format_for_prompt() == "from another instance"

    @pytest.mark.asyncio
    async def test_invalidate_clears_shared_tier(self, session_factory):
        redis = FakeRedis()
        service = KnowledgeService(session_factory, SharedStore(redis))
        await service.format_for_prompt()
        assert CACHE_KEY in redis.data

        await service.add_knowledge("support", "Hours", "9 to 6.")

        assert CACHE_KEY not in redis.data
        assert "Hours" in await service.format_for_prompt()

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_database(self, session_factory):
        redis = FakeRedis()
        redis.failing = True
        service = KnowledgeService(session_factory, SharedStore(redis))
        await service.add_knowledge("support", "Hours", "9 to 6.")

        assert "Hours" in await service.format_for_prompt()

    @pytest.mark.asyncio
    async def test_mutation_during_cooldown_clears_shared_tier(self, session_factory):
        """Should delete the shared document even while the store is cooling down."""
        redis = FakeRedis()
        clock = FakeClock()
        service = KnowledgeService(session_factory, SharedStore(redis, clock=clock), clock=clock)
        assert await service.format_for_prompt() == NO_KNOWLEDGE_TEXT
        assert redis.data[CACHE_KEY] == NO_KNOWLEDGE_TEXT

        redis.failing = True
        await service.format_for_prompt()
        redis.failing = False

        await service.add_knowledge("support", "Hours", "9 to 6.")

        assert CACHE_KEY not in redis.data
        assert "Hours" in await service.format_for_prompt()

    @pytest.mark.asyncio
    async def test_failed_shared_delete_is_retried_before_reading(self, session_factory):
        """Should not serve the pre-mutation shared document once Redis is back."""
        redis = FakeRedis()
        clock = FakeClock()
        service = KnowledgeService(session_factory, SharedStore(redis, clock=clock), clock=clock)
        await service.format_for_prompt()

        redis.failing = True
        await service.format_for_prompt()
        await service.add_knowledge("support", "Hours", "9 to 6.")
        assert redis.data[CACHE_KEY] == NO_KNOWLEDGE_TEXT

        assert "Hours" in await service.format_for_prompt()

        redis.failing = False
        # past both the cool-down and the local TTL
        clock.advance(61)
        text = await service.format_for_prompt()

        assert "Hours" in text
        assert redis.data[CACHE_KEY] == text
