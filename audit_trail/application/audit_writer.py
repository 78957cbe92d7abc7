"""Audit writer: builds immutable records for each event family and appends them to the store."""

import json
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Union

from audit_trail.application.event_store import EventStore, StoreQuery
from audit_trail.application.exceptions import (
    RecordConflictError,
    StoreUnavailableError,
    VersionConflictError,
)
from audit_trail.core.clock import Clock, format_timestamp, utc_now
from audit_trail.domain.models.audit_record import (
    ACCESS_PARTITION,
    AUTH_PARTITION,
    SECURITY_PARTITION,
    VERSION_ATTRIBUTE,
    AuditEventType,
    AuditRecord,
    ChangeRecord,
    DataClassification,
    build_sort_key,
    change_partition,
    user_index,
)
from audit_trail.domain.models.finding import SuspiciousActivityFinding
from audit_trail.domain.validators.audit_validator import (
    validate_attributes,
    validate_changes,
    validate_classification,
    validate_required_text,
    validate_version,
)
from audit_trail.observability import metrics as m
from audit_trail.observability.metrics import MetricsCollector

SECURITY_ALERT_ACTION = "SECURITY_ALERT_GENERATED"
UNKNOWN_SOURCE = "unknown"
MAX_KEY_RESTAMPS = 16

_ONE_MICROSECOND = timedelta(microseconds=1)


class AuditWriter:
    """
    Writes immutable audit records. Each call returns only after the store acknowledged
    the append; store failures propagate so no audit record is silently dropped.
    Detection is not run here; callers compose write and detect explicitly.
    """

    def __init__(
        self,
        store: EventStore,
        logger: logging.Logger,
        *,
        clock: Clock = utc_now,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._store = store
        self._logger = logger
        self._clock = clock
        self._metrics = metrics

    async def record_authentication(
        self,
        *,
        actor_id: str,
        source_address: str,
        action: str,
        success: bool,
        user_agent: Optional[str] = None,
        error_detail: Optional[str] = None,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> AuditRecord:
        """Login, logout, token refresh and similar events. Partition AUTH."""
        actor_id = validate_required_text("actor_id", actor_id)
        timestamp = self._clock()
        ts = format_timestamp(timestamp)
        record = AuditRecord(
            partition_key=AUTH_PARTITION,
            sort_key=build_sort_key(ts, actor_id),
            secondary_key=user_index(actor_id),
            secondary_sort=ts,
            event_type=AuditEventType.AUTHENTICATION,
            timestamp=timestamp,
            actor_id=actor_id,
            source_address=validate_required_text("source_address", source_address),
            success=bool(success),
            action=validate_required_text("action", action),
            user_agent=user_agent or None,
            error_detail=error_detail or None,
            attributes=validate_attributes(attributes),
        )
        return await self._persist(record)

    async def record_access(
        self,
        *,
        actor_id: str,
        resource_type: str,
        resource_id: str,
        classification: Union[DataClassification, str],
        source_address: str,
        action: str,
        user_agent: Optional[str] = None,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> AuditRecord:
        """Read/query/export of classified data. Partition ACCESS; classification is mandatory."""
        actor_id = validate_required_text("actor_id", actor_id)
        resource_id = validate_required_text("resource_id", resource_id)
        timestamp = self._clock()
        ts = format_timestamp(timestamp)
        record = AuditRecord(
            partition_key=ACCESS_PARTITION,
            sort_key=build_sort_key(ts, actor_id, resource_id),
            secondary_key=user_index(actor_id),
            secondary_sort=ts,
            event_type=AuditEventType.DATA_ACCESS,
            timestamp=timestamp,
            actor_id=actor_id,
            source_address=validate_required_text("source_address", source_address),
            success=True,
            action=validate_required_text("action", action),
            user_agent=user_agent or None,
            resource_type=validate_required_text("resource_type", resource_type),
            resource_id=resource_id,
            data_classification=validate_classification(classification),
            attributes=validate_attributes(attributes),
        )
        return await self._persist(record)

    async def record_modification(
        self,
        *,
        actor_id: str,
        resource_type: str,
        resource_id: str,
        changes: Iterable[Union[ChangeRecord, Mapping[str, Any]]],
        source_address: str,
        action: str,
        version: int,
        user_agent: Optional[str] = None,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> AuditRecord:
        """
        Field-level change to a versioned resource. Partition CHANGE:{type}:{id}.
        The caller reserves the version; a version not above the latest recorded one
        raises VersionConflictError instead of being stored out of order.
        """
        actor_id = validate_required_text("actor_id", actor_id)
        resource_type = validate_required_text("resource_type", resource_type)
        resource_id = validate_required_text("resource_id", resource_id)
        version = validate_version(version)
        change_set = validate_changes(changes)
        partition = change_partition(resource_type, resource_id)

        latest = await self._latest_version(partition)
        if latest is not None and version <= latest:
            self._logger.warning(
                "audit_version_conflict",
                extra={"partition": partition, "version": version, "latest_version": latest},
            )
            raise VersionConflictError(
                f"Version {version} for {resource_type}/{resource_id} is not greater "
                f"than recorded version {latest}"
            )

        timestamp = self._clock()
        ts = format_timestamp(timestamp)
        record_attributes = validate_attributes(attributes)
        record_attributes[VERSION_ATTRIBUTE] = version
        record = AuditRecord(
            partition_key=partition,
            sort_key=build_sort_key(ts, actor_id, resource_id, version),
            secondary_key=user_index(actor_id),
            secondary_sort=ts,
            event_type=AuditEventType.DATA_MODIFICATION,
            timestamp=timestamp,
            actor_id=actor_id,
            source_address=validate_required_text("source_address", source_address),
            success=True,
            action=validate_required_text("action", action),
            user_agent=user_agent or None,
            resource_type=resource_type,
            resource_id=resource_id,
            changes=change_set,
            attributes=record_attributes,
        )
        return await self._persist(record)

    async def record_security_event(self, finding: SuspiciousActivityFinding) -> AuditRecord:
        """Persist a finding in partition SECURITY. Never triggers detection."""
        timestamp = self._clock()
        ts = format_timestamp(timestamp)
        record = AuditRecord(
            partition_key=SECURITY_PARTITION,
            sort_key=build_sort_key(ts, finding.actor_id, finding.pattern_kind.value),
            secondary_key=user_index(finding.actor_id),
            secondary_sort=ts,
            event_type=AuditEventType.SECURITY_EVENT,
            timestamp=timestamp,
            actor_id=finding.actor_id,
            source_address=finding.source_address or UNKNOWN_SOURCE,
            success=False,
            action=SECURITY_ALERT_ACTION,
            attributes={
                "pattern_kind": finding.pattern_kind.value,
                "severity": finding.severity.value,
                "description": finding.description,
                "triggering_record_count": finding.triggering_record_count,
                "triggering_records": json.dumps(
                    [ref.to_dict() for ref in finding.triggering_records]
                ),
                "detected_at": format_timestamp(finding.detected_at),
            },
        )
        return await self._persist(record)

    async def _latest_version(self, partition: str) -> Optional[int]:
        page = await self._store.query(StoreQuery(partition_key=partition, limit=1))
        return page.records[0].version if page.records else None

    async def _persist(self, record: AuditRecord) -> AuditRecord:
        """
        Append the record and return what was stored. A non-versioned record whose
        key is already taken (same actor, same clock tick) is moved forward one
        microsecond and retried, so concurrent events are never rejected.
        """
        restamps = 0
        while True:
            context = {
                "event_type": record.event_type.value,
                "partition": record.partition_key,
                "sort_key": record.sort_key,
            }
            try:
                await self._store.append(record)
                break
            except RecordConflictError as e:
                if record.version is not None or restamps >= MAX_KEY_RESTAMPS:
                    self._write_failed(record, context, e)
                    raise
                restamps += 1
                self._logger.warning(
                    "audit_sort_key_collision", extra={**context, "attempt": restamps}
                )
                record = _restamp(record, record.timestamp + _ONE_MICROSECOND)
            except StoreUnavailableError as e:
                self._write_failed(record, context, e)
                raise
        self._logger.info("audit_record_written", extra=context)
        if self._metrics:
            self._metrics.increment(m.RECORDS_WRITTEN, label=record.event_type.value)
        return record

    def _write_failed(self, record: AuditRecord, context: dict, error: Exception) -> None:
        self._logger.error("audit_write_failed", extra={**context, "error": str(error)})
        if self._metrics:
            self._metrics.increment(m.WRITE_FAILURES, label=record.event_type.value)


def _restamp(record: AuditRecord, timestamp: datetime) -> AuditRecord:
    old_ts = record.secondary_sort
    ts = format_timestamp(timestamp)
    return replace(
        record,
        timestamp=timestamp,
        sort_key=ts + record.sort_key[len(old_ts):],
        secondary_sort=ts,
    )
