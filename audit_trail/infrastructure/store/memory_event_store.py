"""In-memory event store. Same ordering and append-only semantics as the Redis store."""

import asyncio
from bisect import bisect_left, bisect_right, insort
from typing import Dict, List, Optional, Set, Tuple

from audit_trail.application.event_store import StorePage, StoreQuery
from audit_trail.application.exceptions import RecordConflictError
from audit_trail.domain.models.audit_record import AuditEventType, AuditRecord

_INDEX_SEPARATOR = "|"


def _scan(
    members: List[str],
    lower: Optional[str],
    upper: Optional[str],
    cursor: Optional[str],
    limit: int,
    descending: bool,
) -> List[str]:
    start = bisect_left(members, lower) if lower is not None else 0
    end = bisect_right(members, upper) if upper is not None else len(members)
    if cursor is not None:
        if descending:
            end = min(end, bisect_left(members, cursor))
        else:
            start = max(start, bisect_right(members, cursor))
    window = members[start:end]
    if descending:
        window = window[::-1]
    return window[:limit]


class InMemoryEventStore:
    """Implements the EventStore protocol in process memory. Used for tests and the memory backend."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], AuditRecord] = {}
        self._partitions: Dict[str, List[str]] = {}
        self._indexes: Dict[str, List[str]] = {}
        self._index_refs: Dict[str, Tuple[str, str]] = {}
        self._versions: Dict[str, Set[int]] = {}
        self._lock = asyncio.Lock()

    async def append(self, record: AuditRecord) -> None:
        key = (record.partition_key, record.sort_key)
        version = record.version if record.event_type == AuditEventType.DATA_MODIFICATION else None
        async with self._lock:
            if key in self._records:
                raise RecordConflictError(
                    f"Record already exists: {record.partition_key} {record.sort_key}"
                )
            claimed = self._versions.setdefault(record.partition_key, set())
            if version is not None and version in claimed:
                raise RecordConflictError(
                    f"Version {version} already recorded for {record.partition_key}"
                )
            self._records[key] = record
            insort(self._partitions.setdefault(record.partition_key, []), record.sort_key)
            member = f"{record.secondary_sort}{_INDEX_SEPARATOR}{record.partition_key}{_INDEX_SEPARATOR}{record.sort_key}"
            insort(self._indexes.setdefault(record.secondary_key, []), member)
            self._index_refs[member] = key
            if version is not None:
                claimed.add(version)

    async def query(self, query: StoreQuery) -> StorePage:
        async with self._lock:
            if query.partition_key is not None:
                members = _scan(
                    self._partitions.get(query.partition_key, []),
                    query.lower_bound,
                    query.upper_bound,
                    query.cursor,
                    query.limit,
                    query.descending,
                )
                records = [self._records[(query.partition_key, m)] for m in members]
            else:
                members = _scan(
                    self._indexes.get(query.secondary_key, []),
                    query.lower_bound,
                    query.upper_bound,
                    query.cursor,
                    query.limit,
                    query.descending,
                )
                records = [self._records[self._index_refs[m]] for m in members]
        next_cursor = members[-1] if len(members) == query.limit else None
        return StorePage(records=records, next_cursor=next_cursor)

    def __len__(self) -> int:
        return len(self._records)
