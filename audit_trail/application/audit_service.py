"""Audit application service. Composes write, detect and dispatch explicitly at one call site."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, Tuple, Union

from audit_trail.application.alert_dispatcher import AlertDispatcher
from audit_trail.application.audit_writer import AuditWriter
from audit_trail.application.deadline import run_with_deadline
from audit_trail.application.pattern_detector import PatternDetector
from audit_trail.domain.models.audit_record import AuditRecord, ChangeRecord, DataClassification
from audit_trail.domain.models.finding import SuspiciousActivityFinding
from audit_trail.observability import metrics as m
from audit_trail.observability.metrics import MetricsCollector


@dataclass(frozen=True)
class AuditOutcome:
    """The durable record plus any findings raised because of it."""

    record: AuditRecord
    findings: Tuple[SuspiciousActivityFinding, ...] = ()


class AuditService:
    """
    Entry point for the handlers that perform audited actions.
    Transaction strategy: the audit write is primary and its failure propagates
    (no audit, no commit). Detection and alerting run after a successful write;
    their failure is logged and never fails the call. One deadline covers the whole
    call: detection, finding writes and alerting only get the time the write left over.
    """

    def __init__(
        self,
        writer: AuditWriter,
        detector: PatternDetector,
        dispatcher: AlertDispatcher,
        logger: logging.Logger,
        *,
        timeout_seconds: Optional[float] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._writer = writer
        self._detector = detector
        self._dispatcher = dispatcher
        self._logger = logger
        self._timeout = timeout_seconds
        self._metrics = metrics

    def _expires_at(self, timeout_seconds: Optional[float]) -> Optional[float]:
        """Absolute loop time by which the whole call, detection and alerting included, must end."""
        timeout = timeout_seconds if timeout_seconds is not None else self._timeout
        if timeout is None:
            return None
        return asyncio.get_running_loop().time() + timeout

    @staticmethod
    def _remaining(expires_at: Optional[float]) -> Optional[float]:
        if expires_at is None:
            return None
        return max(expires_at - asyncio.get_running_loop().time(), 0.0)

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
        timeout_seconds: Optional[float] = None,
    ) -> AuditOutcome:
        expires_at = self._expires_at(timeout_seconds)
        record = await run_with_deadline(
            "authentication audit write",
            self._writer.record_authentication(
                actor_id=actor_id,
                source_address=source_address,
                action=action,
                success=success,
                user_agent=user_agent,
                error_detail=error_detail,
                attributes=attributes,
            ),
            self._remaining(expires_at),
        )
        if record.success:
            return AuditOutcome(record=record)
        findings = await self._detect_and_dispatch(
            record, self._detector.detect_authentication, expires_at
        )
        return AuditOutcome(record=record, findings=findings)

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
        timeout_seconds: Optional[float] = None,
    ) -> AuditOutcome:
        expires_at = self._expires_at(timeout_seconds)
        record = await run_with_deadline(
            "access audit write",
            self._writer.record_access(
                actor_id=actor_id,
                resource_type=resource_type,
                resource_id=resource_id,
                classification=classification,
                source_address=source_address,
                action=action,
                user_agent=user_agent,
                attributes=attributes,
            ),
            self._remaining(expires_at),
        )
        if not record.data_classification.is_sensitive:
            return AuditOutcome(record=record)
        findings = await self._detect_and_dispatch(
            record, self._detector.detect_access, expires_at
        )
        return AuditOutcome(record=record, findings=findings)

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
        timeout_seconds: Optional[float] = None,
    ) -> AuditOutcome:
        """Change records are not inspected by the detector."""
        record = await run_with_deadline(
            "modification audit write",
            self._writer.record_modification(
                actor_id=actor_id,
                resource_type=resource_type,
                resource_id=resource_id,
                changes=changes,
                source_address=source_address,
                action=action,
                version=version,
                user_agent=user_agent,
                attributes=attributes,
            ),
            timeout_seconds if timeout_seconds is not None else self._timeout,
        )
        return AuditOutcome(record=record)

    async def _detect_and_dispatch(
        self,
        record: AuditRecord,
        detect: Callable[[str], Awaitable[List[SuspiciousActivityFinding]]],
        expires_at: Optional[float],
    ) -> Tuple[SuspiciousActivityFinding, ...]:
        context = {"actor": record.actor_id, "sort_key": record.sort_key}
        try:
            findings = await run_with_deadline(
                "pattern detection", detect(record.actor_id), self._remaining(expires_at)
            )
        except Exception as e:
            self._detection_failed("detection", context, e)
            return ()

        # All findings are made durable before any alert goes out.
        persisted = []
        for finding in findings:
            try:
                security_record = await run_with_deadline(
                    "finding write",
                    self._dispatcher.persist(finding),
                    self._remaining(expires_at),
                )
            except Exception as e:
                self._detection_failed(
                    "finding_persistence",
                    {**context, "pattern_kind": finding.pattern_kind.value},
                    e,
                )
                continue
            persisted.append((finding, security_record))

        for finding, security_record in persisted:
            await self._dispatcher.dispatch(
                finding, security_record, timeout_seconds=self._remaining(expires_at)
            )
        return tuple(finding for finding, _ in persisted)

    def _detection_failed(self, stage: str, context: dict, error: Exception) -> None:
        self._logger.error(
            "pattern_detection_failed",
            extra={**context, "stage": stage, "error": str(error)},
        )
        if self._metrics:
            self._metrics.increment(m.DETECTION_FAILURES, label=stage)
        # Do not re-raise: the audit record itself is already durable.
