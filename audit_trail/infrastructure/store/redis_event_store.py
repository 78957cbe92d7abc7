"""Redis-backed append-only event store. Score-0 sorted sets give lexicographic sort-key scans."""

import json
from typing import List, Optional

from redis.exceptions import RedisError

from audit_trail.application.event_store import StorePage, StoreQuery
from audit_trail.application.exceptions import RecordConflictError, StoreUnavailableError
from audit_trail.domain.models.audit_record import AuditEventType, AuditRecord
from audit_trail.infrastructure.cache.redis_client import RedisClient

# Separates the secondary sort from the record field in index members.
_INDEX_SEPARATOR = "|"

# Lua: append-only insert. Refuses an existing record key or an already-claimed version.
# KEYS: records hash, partition zset, index zset, version set
# ARGV: record field, record json, sort key, index member, version ("" when not versioned)
_APPEND_LUA = """
if redis.call('HEXISTS', KEYS[1], ARGV[1]) == 1 then
  return 0
end
if ARGV[5] ~= '' and redis.call('SISMEMBER', KEYS[4], ARGV[5]) == 1 then
  return -1
end
redis.call('HSET', KEYS[1], ARGV[1], ARGV[2])
redis.call('ZADD', KEYS[2], 0, ARGV[3])
redis.call('ZADD', KEYS[3], 0, ARGV[4])
if ARGV[5] ~= '' then
  redis.call('SADD', KEYS[4], ARGV[5])
end
return 1
"""


def _record_field(partition_key: str, sort_key: str) -> str:
    return f"{partition_key}{_INDEX_SEPARATOR}{sort_key}"


def _upper(bound: Optional[str], cursor: Optional[str], descending: bool) -> str:
    if descending and cursor is not None:
        return f"({cursor}"
    return f"[{bound}" if bound is not None else "+"


def _lower(bound: Optional[str], cursor: Optional[str], descending: bool) -> str:
    if not descending and cursor is not None:
        return f"({cursor}"
    return f"[{bound}" if bound is not None else "-"


class RedisEventStore:
    """Implements the EventStore protocol on Redis hashes and sorted sets."""

    def __init__(self, redis_client: RedisClient, namespace: str = "audit") -> None:
        self._redis = redis_client
        self._ns = namespace

    def _records_key(self) -> str:
        return f"{self._ns}:records"

    def _partition_key(self, partition_key: str) -> str:
        return f"{self._ns}:p:{partition_key}"

    def _index_key(self, secondary_key: str) -> str:
        return f"{self._ns}:i:{secondary_key}"

    def _versions_key(self, partition_key: str) -> str:
        return f"{self._ns}:v:{partition_key}"

    async def append(self, record: AuditRecord) -> None:
        field = _record_field(record.partition_key, record.sort_key)
        version = record.version if record.event_type == AuditEventType.DATA_MODIFICATION else None
        try:
            result = await self._redis.eval_script(
                _APPEND_LUA,
                [
                    self._records_key(),
                    self._partition_key(record.partition_key),
                    self._index_key(record.secondary_key),
                    self._versions_key(record.partition_key),
                ],
                [
                    field,
                    json.dumps(record.to_dict(), sort_keys=True),
                    record.sort_key,
                    f"{record.secondary_sort}{_INDEX_SEPARATOR}{field}",
                    str(version) if version is not None else "",
                ],
            )
        except RedisError as e:
            raise StoreUnavailableError(f"Event store write failed: {e}") from e
        if int(result) == 0:
            raise RecordConflictError(
                f"Record already exists: {record.partition_key} {record.sort_key}"
            )
        if int(result) == -1:
            raise RecordConflictError(
                f"Version {version} already recorded for {record.partition_key}"
            )

    async def query(self, query: StoreQuery) -> StorePage:
        if query.partition_key is not None:
            key = self._partition_key(query.partition_key)
        else:
            key = self._index_key(query.secondary_key)
        try:
            members = await self._redis.range_by_lex(
                key,
                _lower(query.lower_bound, query.cursor, query.descending),
                _upper(query.upper_bound, query.cursor, query.descending),
                query.limit,
                descending=query.descending,
            )
            if query.partition_key is not None:
                fields = [_record_field(query.partition_key, m) for m in members]
            else:
                fields = [m.split(_INDEX_SEPARATOR, 1)[1] for m in members]
            raw = await self._redis.hash_get_many(self._records_key(), fields)
        except RedisError as e:
            raise StoreUnavailableError(f"Event store read failed: {e}") from e

        records: List[AuditRecord] = []
        for field, payload in zip(fields, raw):
            if payload is None:
                raise StoreUnavailableError(f"Indexed record missing from store: {field}")
            records.append(AuditRecord.from_dict(json.loads(payload)))
        next_cursor = members[-1] if len(members) == query.limit else None
        return StorePage(records=records, next_cursor=next_cursor)
