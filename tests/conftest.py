"""Pytest configuration and shared fixtures.

Nothing here needs a database: stores are replaced with in-memory fakes
or AsyncMock sessions, and the API is exercised through dependency
overrides.
"""

import os
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

# Set testing mode BEFORE importing app to use NullPool
os.environ["TESTING"] = "true"
os.environ["ADVISORY_LOCKS"] = "false"

from healthplan.config import settings

settings.testing = True
settings.advisory_locks = False

from healthplan.main import app
from healthplan.services.locks import KeyedLocks
from tests.fakes import (
    InMemoryLogStore,
    InMemoryPlanStore,
    StubPlanGenerator,
    make_profile,
)


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def profile(user_id):
    return make_profile(user_id)


@pytest.fixture
def log_store() -> InMemoryLogStore:
    return InMemoryLogStore()


@pytest.fixture
def plan_store() -> InMemoryPlanStore:
    return InMemoryPlanStore()


@pytest.fixture
def generator() -> StubPlanGenerator:
    return StubPlanGenerator()


@pytest.fixture
def locks() -> KeyedLocks:
    return KeyedLocks()


@pytest.fixture
async def client():
    """Create async test client; dependency overrides are reset afterwards."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
