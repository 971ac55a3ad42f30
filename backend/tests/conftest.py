"""Shared test fixtures for orderflow."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from orderflow.config import ConcurrencyConfig
from orderflow.models.base import Base
from orderflow.notify.fake import RecordingNotificationBus
from orderflow.orders.lifecycle import OrderLifecycleService
from orderflow.orders.types import Principal, Role
from orderflow.store.fake import InMemoryOrderNumberAllocator, InMemoryOrderRepository
from tests.factories import FakeClock, make_principal


@pytest.fixture
async def db_session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Create in-memory async SQLite with all tables."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def repository() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def allocator() -> InMemoryOrderNumberAllocator:
    return InMemoryOrderNumberAllocator()


@pytest.fixture
def bus() -> RecordingNotificationBus:
    return RecordingNotificationBus()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fast_retry() -> ConcurrencyConfig:
    return ConcurrencyConfig(max_retries=5, base_delay_ms=0, max_delay_ms=0, jitter_ms=0)


@pytest.fixture
def service(
    repository: InMemoryOrderRepository,
    allocator: InMemoryOrderNumberAllocator,
    bus: RecordingNotificationBus,
    clock: FakeClock,
    fast_retry: ConcurrencyConfig,
) -> OrderLifecycleService:
    return OrderLifecycleService(
        repository,
        allocator,
        bus,
        concurrency=fast_retry,
        clock=clock,
    )


@pytest.fixture
def waitress() -> Principal:
    return make_principal(Role.WAITRESS, display_name="Hanna")


@pytest.fixture
def owner() -> Principal:
    return make_principal(Role.OWNER)


@pytest.fixture
def kitchen() -> Principal:
    return make_principal(Role.KITCHEN)


@pytest.fixture
def juicebar() -> Principal:
    return make_principal(Role.JUICEBAR)
