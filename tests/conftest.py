"""
Pytest configuration and fixtures for support chat tests.
"""

import os

import pytest
from fastapi.testclient import TestClient

# Set environment variables for tests BEFORE importing the app
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_API_KEY", "test-llm-key")
os.environ.setdefault("API_SECRET_KEY", "test-api-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from support_chat.bootstrap import build_context
from support_chat.core.config import Settings
from support_chat.core.database import create_db_engine, create_session_factory, init_db
from support_chat.core.redis import SharedStore
from support_chat.main import create_app
from tests.fakes import FakeLLMProvider, FakeRedis

API_KEY = "test-api-key"


# ============================================================================
# Settings / Database Fixtures
# ============================================================================

@pytest.fixture
def settings(monkeypatch):
    """Settings with a deterministic environment."""
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.setenv("LLM_API_KEY", "test-llm-key")
    monkeypatch.setenv("API_SECRET_KEY", API_KEY)
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("REDIS_ENABLED", "false")
    monkeypatch.setenv("TOOLS_ENABLED", "false")
    monkeypatch.delenv("TRUSTED_PROXY_HOPS", raising=False)
    return Settings()


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite, one shared connection (StaticPool) for every thread."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


# ============================================================================
# Fakes
# ============================================================================

@pytest.fixture
def fake_llm():
    return FakeLLMProvider()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def shared_store(fake_redis):
    return SharedStore(fake_redis)


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest.fixture
def make_context(settings, engine, fake_llm):
    """Build an AppContext; keyword overrides are applied to settings first."""

    def _make(provider=None, shared_store=None, channels=None, **overrides):
        for name, value in overrides.items():
            setattr(settings, name, value)
        return build_context(
            settings,
            provider=provider or fake_llm,
            shared_store=shared_store,
            engine=engine,
            channels=channels,
        )

    return _make


@pytest.fixture
def context(make_context):
    return make_context()


@pytest.fixture
def make_client(make_context):
    """Started TestClient factory; clients are shut down after the test."""
    clients = []

    def _make(raise_server_exceptions=True, **kwargs):
        app = create_app(make_context(**kwargs))
        test_client = TestClient(app, raise_server_exceptions=raise_server_exceptions)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def headers():
    """Admin API headers."""
    return {"X-API-KEY": API_KEY}
