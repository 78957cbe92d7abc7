"""
Query engine: bounded historical lookups over the event store.

Partition selection keeps every query a keyed range scan, independent of total
record count:

* resource_type + resource_id  -> CHANGE:{type}:{id} partition
* actor_id                     -> USER:{actor} secondary index
* event_type only              -> that family's shared partition

An event_type given alongside a resource or actor scope is applied as a
post-filter on the scanned range, never used for partition selection.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from audit_trail.application.deadline import run_with_deadline
from audit_trail.application.event_store import EventStore, StoreQuery
from audit_trail.core.clock import Clock, format_timestamp, utc_now
from audit_trail.domain.models.audit_record import (
    AuditRecord,
    change_partition,
    family_partition,
    user_index,
)
from audit_trail.domain.models.query import AuditQueryFilter
from audit_trail.domain.validators.audit_validator import validate_limit, validate_query_filter
from audit_trail.observability import metrics as m
from audit_trail.observability.metrics import MetricsCollector

# Sorts after '#', '|' and every character used in timestamps, so "<ts>~" is an
# inclusive upper bound for every key that starts with <ts>.
_UPPER_BOUND_SUFFIX = "~"


@dataclass(frozen=True)
class QueryResult:
    records: List[AuditRecord]
    scanned: int
    truncated: bool
    duration_ms: float

    @property
    def count(self) -> int:
        return len(self.records)


def _post_filter(query: AuditQueryFilter, base: StoreQuery) -> Optional[Callable[[AuditRecord], bool]]:
    checks = []
    if query.event_type is not None and base.partition_key != family_partition(query.event_type):
        checks.append(lambda r: r.event_type == query.event_type)
    if query.has_resource_scope and query.actor_id:
        checks.append(lambda r: r.actor_id == query.actor_id)
    if not checks:
        return None
    return lambda r: all(check(r) for check in checks)


class QueryEngine:
    """Answers filtered, most-recent-first queries. Rejects unscoped or over-wide queries."""

    def __init__(
        self,
        store: EventStore,
        logger: logging.Logger,
        *,
        clock: Clock = utc_now,
        max_range_days: int = 90,
        default_limit: int = 100,
        max_limit: int = 1000,
        page_size: int = 200,
        max_scanned_records: int = 10000,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._store = store
        self._logger = logger
        self._clock = clock
        self._max_range_days = max_range_days
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._page_size = page_size
        self._max_scanned = max_scanned_records
        self._metrics = metrics

    def select(self, query: AuditQueryFilter) -> StoreQuery:
        """Validate the filter and build the keyed range scan for it (without limit/cursor)."""
        validate_query_filter(query, now=self._clock(), max_range_days=self._max_range_days)
        lower = format_timestamp(query.start_time) if query.start_time else None
        upper = (
            format_timestamp(query.end_time) + _UPPER_BOUND_SUFFIX if query.end_time else None
        )
        if query.has_resource_scope:
            return StoreQuery(
                partition_key=change_partition(query.resource_type, query.resource_id),
                lower_bound=lower,
                upper_bound=upper,
            )
        if query.actor_id:
            return StoreQuery(
                secondary_key=user_index(query.actor_id),
                lower_bound=lower,
                upper_bound=upper,
            )
        return StoreQuery(
            partition_key=family_partition(query.event_type),
            lower_bound=lower,
            upper_bound=upper,
        )

    async def query(
        self,
        query: AuditQueryFilter,
        limit: Optional[int] = None,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> QueryResult:
        limit = validate_limit(limit, default=self._default_limit, maximum=self._max_limit)
        base = self.select(query)
        started = time.perf_counter()
        records, scanned, truncated = await run_with_deadline(
            "audit query",
            self._collect(base, _post_filter(query, base), limit),
            timeout_seconds,
        )
        duration_ms = (time.perf_counter() - started) * 1000
        if self._metrics:
            self._metrics.observe_latency(m.QUERY_LATENCY, duration_ms)
        if truncated:
            self._logger.warning(
                "audit_query_truncated",
                extra={"scanned": scanned, "returned": len(records), "limit": limit},
            )
        self._logger.info(
            "audit_query_completed",
            extra={
                "partition": base.partition_key,
                "index": base.secondary_key,
                "returned": len(records),
                "scanned": scanned,
                "duration_ms": round(duration_ms, 3),
            },
        )
        return QueryResult(
            records=records, scanned=scanned, truncated=truncated, duration_ms=duration_ms
        )

    async def _collect(
        self,
        base: StoreQuery,
        keep: Optional[Callable[[AuditRecord], bool]],
        limit: int,
    ):
        results: List[AuditRecord] = []
        scanned = 0
        cursor = None
        while len(results) < limit:
            page_limit = limit - len(results) if keep is None else self._page_size
            page = await self._store.query(replace(base, limit=page_limit, cursor=cursor))
            scanned += len(page.records)
            for record in page.records:
                if keep is None or keep(record):
                    results.append(record)
                    if len(results) == limit:
                        break
            if page.next_cursor is None or len(results) == limit:
                return results, scanned, False
            if scanned >= self._max_scanned:
                return results, scanned, True
            cursor = page.next_cursor
        return results, scanned, False
