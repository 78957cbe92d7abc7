"""Tests for API middleware: correlation ID generation and propagation."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_correlation_id_generated(async_client: AsyncClient):
    """When X-Correlation-ID is not sent, response has a generated correlation ID."""
    r = await async_client.get("/health")
    assert r.status_code == 200
    assert len(r.headers["X-Correlation-ID"]) > 0


@pytest.mark.asyncio
async def test_correlation_id_preserved_when_passed(async_client: AsyncClient):
    correlation_id = "my-correlation-123"
    r = await async_client.get("/health", headers={"X-Correlation-ID": correlation_id})
    assert r.headers.get("X-Correlation-ID") == correlation_id
    assert r.json()["correlation_id"] == correlation_id


@pytest.mark.asyncio
async def test_correlation_id_on_error_responses(async_client: AsyncClient):
    r = await async_client.get("/audit/logs", params={"actor_id": "u1"})
    assert r.status_code == 403
    assert "X-Correlation-ID" in r.headers
