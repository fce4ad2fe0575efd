"""
Shared fixtures: an in-memory SQLite store, a fake registry behind
httpx.MockTransport, and recording sleep/clock doubles.
"""

from __future__ import annotations

from typing import Callable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from benchwatch_core.db.base import Base
from benchwatch_core.db.models import import_models
from sync_service.orchestrator import SyncOrchestrator
from sync_service.registry.http_client import RateLimitedClient
from sync_service.settings import Settings
from tests.helpers import BASE_URL, NOW, FakeRegistry, FakeSleep


@pytest.fixture
def engine():
    import_models()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> Callable[[], Session]:
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def client(registry, sleep):
    with RateLimitedClient(
        base_url=BASE_URL,
        api_token="test-token",
        transport=registry.transport(),
        sleep=sleep,
        monotonic=lambda: 0.0,
    ) as client:
        yield client


@pytest.fixture
def settings() -> Settings:
    return Settings(
        registry_base_url=BASE_URL,
        registry_api_token="test-token",
        inter_batch_delay_ms=0,
        discover_limit=0,
    )


@pytest.fixture
def make_orchestrator(client, session_factory, settings, sleep):
    def _make(**overrides) -> SyncOrchestrator:
        kwargs = dict(
            client=client,
            session_factory=session_factory,
            settings=settings,
            sleep=sleep,
            clock=lambda: NOW,
        )
        kwargs.update(overrides)
        return SyncOrchestrator(**kwargs)

    return _make
