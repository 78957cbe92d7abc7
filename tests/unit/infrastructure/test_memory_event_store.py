"""InMemoryEventStore tests: same append-only and ordering rules as the Redis store."""

from unittest.mock import AsyncMock

import pytest

from audit_trail.application.audit_writer import AuditWriter
from audit_trail.application.event_store import StoreQuery
from audit_trail.application.exceptions import RecordConflictError


async def _login(writer, actor):
    return await writer.record_authentication(
        actor_id=actor, source_address="10.0.0.1", action="LOGIN", success=True,
    )


@pytest.mark.asyncio
async def test_append_is_refused_for_existing_key(writer, store):
    record = await _login(writer, "alice")
    with pytest.raises(RecordConflictError):
        await store.append(record)
    assert len(store) == 1


@pytest.mark.asyncio
async def test_version_claims_are_unique_per_resource(writer, store, logger, clock):
    await writer.record_modification(
        actor_id="alice", resource_type="loan", resource_id="L-1",
        changes=[{"field": "a", "old_value": 1, "new_value": 2}],
        source_address="10.0.0.1", action="UPDATE", version=1,
    )
    racing = AuditWriter(store, logger, clock=clock)
    racing._latest_version = AsyncMock(return_value=None)
    with pytest.raises(RecordConflictError):
        await racing.record_modification(
            actor_id="bob", resource_type="loan", resource_id="L-1",
            changes=[{"field": "a", "old_value": 1, "new_value": 3}],
            source_address="10.0.0.2", action="UPDATE", version=1,
        )
    assert len(store) == 1


@pytest.mark.asyncio
async def test_descending_paging_with_cursor(writer, store):
    written = [await _login(writer, "alice") for _ in range(5)]

    first = await store.query(StoreQuery(partition_key="AUTH", limit=2))
    second = await store.query(StoreQuery(partition_key="AUTH", limit=2, cursor=first.next_cursor))
    third = await store.query(StoreQuery(partition_key="AUTH", limit=2, cursor=second.next_cursor))

    keys = [r.sort_key for page in (first, second, third) for r in page.records]
    assert keys == [r.sort_key for r in reversed(written)]
    assert third.next_cursor is None


@pytest.mark.asyncio
async def test_ascending_paging_with_cursor(writer, store):
    written = [await _login(writer, "alice") for _ in range(4)]

    first = await store.query(StoreQuery(secondary_key="USER:alice", limit=3, descending=False))
    second = await store.query(
        StoreQuery(secondary_key="USER:alice", limit=3, descending=False, cursor=first.next_cursor)
    )

    keys = [r.sort_key for page in (first, second) for r in page.records]
    assert keys == [r.sort_key for r in written]


def test_store_query_needs_exactly_one_key():
    with pytest.raises(ValueError):
        StoreQuery()
    with pytest.raises(ValueError):
        StoreQuery(partition_key="AUTH", secondary_key="USER:alice")
    with pytest.raises(ValueError):
        StoreQuery(partition_key="AUTH", limit=0)
