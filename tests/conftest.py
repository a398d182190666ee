"""Pytest configuration and fixtures."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.database import GuardedStore, InMemoryKeyValueStore, get_store
from app.main import app
from app.utils.auth import create_access_token


class FakeClock:
    """Controllable clock for services that read the current time."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class YieldingStore(InMemoryKeyValueStore):
    """In-memory store that yields to the event loop before every call."""

    async def put(self, item):
        await asyncio.sleep(0)
        await super().put(item)

    async def put_if_absent(self, item):
        await asyncio.sleep(0)
        return await super().put_if_absent(item)

    async def get(self, partition_key, sort_key):
        await asyncio.sleep(0)
        return await super().get(partition_key, sort_key)

    async def delete(self, partition_key, sort_key, condition=None):
        await asyncio.sleep(0)
        return await super().delete(partition_key, sort_key, condition)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return InMemoryKeyValueStore()


@pytest.fixture
def store(backend):
    return GuardedStore(backend, timeout=1.0)


@pytest.fixture
def yielding_store():
    return GuardedStore(YieldingStore(), timeout=1.0)


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user ID."""

    def _headers(user_id: str = "user123") -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id=user_id)}"}

    return _headers


@pytest_asyncio.fixture
async def app_client(backend):
    """
    Create a test client backed by a fresh in-memory store.

    This fixture:
    - Overrides the store dependency
    - Yields an async HTTP client for testing
    - Removes the override afterwards
    """
    async def _get_store():
        return GuardedStore(backend, timeout=1.0)

    app.dependency_overrides[get_store] = _get_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.pop(get_store, None)
