"""
Threshold-based suspicious activity detection over an actor's trailing window.

Rules are pure functions of (actor, window records, now, thresholds) and are
evaluated independently: one pass may yield several findings.

Authentication rules (trailing auth window, failed AUTHENTICATION records):
  REPEATED_FAILED_LOGIN       >= failed_login_threshold failures        HIGH
  DISTRIBUTED_FAILED_LOGIN    failures from >= N distinct sources        CRITICAL

Access rules (trailing access window, DATA_ACCESS records):
  EXCESSIVE_SENSITIVE_ACCESS  >= threshold CONFIDENTIAL/RESTRICTED reads MEDIUM
  OFF_HOURS_RESTRICTED_ACCESS RESTRICTED read outside business hours     HIGH
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from audit_trail.application.query_engine import QueryEngine
from audit_trail.core.clock import Clock, ensure_utc, utc_now
from audit_trail.domain.models.audit_record import AuditEventType, AuditRecord, DataClassification
from audit_trail.domain.models.finding import PatternKind, Severity, SuspiciousActivityFinding
from audit_trail.domain.models.query import AuditQueryFilter


@dataclass(frozen=True)
class DetectionThresholds:
    failed_login_threshold: int = 5
    distributed_source_threshold: int = 3
    auth_window: timedelta = timedelta(minutes=5)
    sensitive_access_threshold: int = 20
    access_window: timedelta = timedelta(hours=1)
    business_hours_start: int = 9
    business_hours_end: int = 18
    window_scan_limit: int = 500

    @classmethod
    def from_settings(cls, settings) -> "DetectionThresholds":
        return cls(
            failed_login_threshold=settings.failed_login_threshold,
            distributed_source_threshold=settings.distributed_login_source_threshold,
            auth_window=timedelta(minutes=settings.auth_window_minutes),
            sensitive_access_threshold=settings.sensitive_access_threshold,
            access_window=timedelta(minutes=settings.access_window_minutes),
            business_hours_start=settings.business_hours_start,
            business_hours_end=settings.business_hours_end,
            window_scan_limit=min(500, settings.query_max_limit),
        )

    def is_business_hour(self, moment: datetime) -> bool:
        return self.business_hours_start <= ensure_utc(moment).hour < self.business_hours_end


Rule = Callable[
    [str, Sequence[AuditRecord], datetime, DetectionThresholds],
    Optional[SuspiciousActivityFinding],
]


def _finding(
    actor_id: str,
    kind: PatternKind,
    severity: Severity,
    description: str,
    records: Sequence[AuditRecord],
    now: datetime,
) -> SuspiciousActivityFinding:
    return SuspiciousActivityFinding(
        actor_id=actor_id,
        pattern_kind=kind,
        severity=severity,
        description=description,
        triggering_records=tuple(r.ref for r in records),
        detected_at=now,
        source_address=records[0].source_address if records else None,
    )


def _failed_logins(records: Sequence[AuditRecord]) -> List[AuditRecord]:
    return [
        r for r in records
        if r.event_type == AuditEventType.AUTHENTICATION and not r.success
    ]


def _sensitive_accesses(records: Sequence[AuditRecord]) -> List[AuditRecord]:
    return [
        r for r in records
        if r.event_type == AuditEventType.DATA_ACCESS
        and r.data_classification is not None
        and r.data_classification.is_sensitive
    ]


def repeated_failed_login(actor_id, records, now, thresholds):
    failures = _failed_logins(records)
    if len(failures) < thresholds.failed_login_threshold:
        return None
    minutes = int(thresholds.auth_window.total_seconds() // 60)
    return _finding(
        actor_id,
        PatternKind.REPEATED_FAILED_LOGIN,
        Severity.HIGH,
        f"{len(failures)} failed login attempts in {minutes} minutes",
        failures,
        now,
    )


def distributed_failed_login(actor_id, records, now, thresholds):
    failures = _failed_logins(records)
    sources = {r.source_address for r in failures}
    if len(sources) < thresholds.distributed_source_threshold:
        return None
    return _finding(
        actor_id,
        PatternKind.DISTRIBUTED_FAILED_LOGIN,
        Severity.CRITICAL,
        f"Failed login attempts from {len(sources)} different source addresses",
        failures,
        now,
    )


def excessive_sensitive_access(actor_id, records, now, thresholds):
    sensitive = _sensitive_accesses(records)
    if len(sensitive) < thresholds.sensitive_access_threshold:
        return None
    minutes = int(thresholds.access_window.total_seconds() // 60)
    return _finding(
        actor_id,
        PatternKind.EXCESSIVE_SENSITIVE_ACCESS,
        Severity.MEDIUM,
        f"{len(sensitive)} sensitive data access events in {minutes} minutes",
        sensitive,
        now,
    )


def off_hours_restricted_access(actor_id, records, now, thresholds):
    off_hours = [
        r for r in _sensitive_accesses(records)
        if r.data_classification == DataClassification.RESTRICTED
        and not thresholds.is_business_hour(r.timestamp)
    ]
    if not off_hours:
        return None
    return _finding(
        actor_id,
        PatternKind.OFF_HOURS_RESTRICTED_ACCESS,
        Severity.HIGH,
        "Access to restricted data outside business hours "
        f"({thresholds.business_hours_start:02d}:00-{thresholds.business_hours_end:02d}:00 UTC)",
        off_hours,
        now,
    )


AUTHENTICATION_RULES: Sequence[Rule] = (repeated_failed_login, distributed_failed_login)
ACCESS_RULES: Sequence[Rule] = (excessive_sensitive_access, off_hours_restricted_access)


class PatternDetector:
    """
    Fetches the actor's trailing window through the query engine and evaluates
    the rule set for that event family. Holds no state between calls.
    """

    def __init__(
        self,
        query_engine: QueryEngine,
        logger: logging.Logger,
        *,
        thresholds: Optional[DetectionThresholds] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._query_engine = query_engine
        self._logger = logger
        self._thresholds = thresholds or DetectionThresholds()
        self._clock = clock

    @property
    def thresholds(self) -> DetectionThresholds:
        return self._thresholds

    async def detect_authentication(self, actor_id: str) -> List[SuspiciousActivityFinding]:
        return await self._evaluate(
            actor_id,
            AuditEventType.AUTHENTICATION,
            self._thresholds.auth_window,
            AUTHENTICATION_RULES,
        )

    async def detect_access(self, actor_id: str) -> List[SuspiciousActivityFinding]:
        return await self._evaluate(
            actor_id,
            AuditEventType.DATA_ACCESS,
            self._thresholds.access_window,
            ACCESS_RULES,
        )

    async def _evaluate(
        self,
        actor_id: str,
        event_type: AuditEventType,
        window: timedelta,
        rules: Sequence[Rule],
    ) -> List[SuspiciousActivityFinding]:
        now = self._clock()
        result = await self._query_engine.query(
            AuditQueryFilter(actor_id=actor_id, event_type=event_type, start_time=now - window),
            self._thresholds.window_scan_limit,
        )
        findings = []
        for rule in rules:
            finding = rule(actor_id, result.records, now, self._thresholds)
            if finding is None:
                continue
            findings.append(finding)
            self._logger.warning(
                "pattern_detected",
                extra={
                    "actor": actor_id,
                    "pattern_kind": finding.pattern_kind.value,
                    "severity": finding.severity.value,
                    "triggering_record_count": finding.triggering_record_count,
                },
            )
        return findings
