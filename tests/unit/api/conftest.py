"""Fixtures for API unit tests: in-memory event store, mock alert channels, AsyncClient."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from audit_trail.infrastructure.store.memory_event_store import InMemoryEventStore
from audit_trail.main import app


@pytest.fixture
def memory_store():
    return InMemoryEventStore()


@pytest.fixture
def mock_publisher():
    """Mock RabbitMQ publisher so tests do not connect to a real broker."""
    p = AsyncMock()
    p.publish = AsyncMock(return_value=None)
    return p


@pytest.fixture
def mock_identity_provider():
    p = AsyncMock()
    p.restrict_actor = AsyncMock(return_value=None)
    return p


@pytest.fixture
def app_with_overrides(memory_store, mock_publisher, mock_identity_provider):
    """App with event store and alert channels overridden for testing."""
    from audit_trail.api import dependencies

    dependencies.get_metrics().reset()
    app.dependency_overrides[dependencies.get_event_store] = lambda: memory_store
    app.dependency_overrides[dependencies.get_publisher] = lambda: mock_publisher
    app.dependency_overrides[dependencies.get_identity_provider] = lambda: mock_identity_provider
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    """Async HTTP client for testing; uses overridden app."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def reader_headers():
    return {"X-Actor-ID": "officer-1", "X-Actor-Role": "SECURITY_OFFICER"}


@pytest.fixture
def writer_headers():
    return {"X-Actor-ID": "login-service", "X-Actor-Role": "SERVICE"}
