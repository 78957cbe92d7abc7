"""Alert dispatcher: persist findings, notify the security channel, request restriction on CRITICAL."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from audit_trail.application.audit_writer import AuditWriter
from audit_trail.application.deadline import run_with_deadline
from audit_trail.core.clock import format_timestamp
from audit_trail.domain.models.audit_record import AuditRecord
from audit_trail.domain.models.finding import Severity, SuspiciousActivityFinding
from audit_trail.observability import metrics as m
from audit_trail.observability.metrics import MetricsCollector

ACTION_RESTRICTED = "Account temporarily restricted"
ACTION_REVIEW = "Review required"


class NotificationChannel(Protocol):
    """Outbound alert channel (message broker topic, pager, ...)."""

    async def publish(self, subject: str, message: Dict[str, Any]) -> None:
        ...


class IdentityProvider(Protocol):
    """External identity provider that owns account enforcement."""

    async def restrict_actor(self, actor_id: str, *, reason: str, pattern_kind: str) -> None:
        ...


@dataclass(frozen=True)
class DispatchOutcome:
    record: AuditRecord
    notified: bool
    restriction_requested: bool


def alert_subject(finding: SuspiciousActivityFinding) -> str:
    return f"Security Alert: {finding.pattern_kind.value} - {finding.severity.value}"


def alert_message(finding: SuspiciousActivityFinding, record: AuditRecord) -> Dict[str, Any]:
    return {
        "actor_id": finding.actor_id,
        "pattern_kind": finding.pattern_kind.value,
        "severity": finding.severity.value,
        "description": finding.description,
        "timestamp": format_timestamp(record.timestamp),
        "triggering_record_count": finding.triggering_record_count,
        "security_record": record.ref.to_dict(),
        "action": ACTION_RESTRICTED if finding.severity == Severity.CRITICAL else ACTION_REVIEW,
    }


class AlertDispatcher:
    """
    The finding is written first and that write must succeed (errors propagate).
    Notification and restriction are best-effort afterwards: they run concurrently
    under the caller's remaining deadline, failures and timeouts are logged and
    counted, never retried here, and never undo the persisted finding.
    """

    def __init__(
        self,
        writer: AuditWriter,
        logger: logging.Logger,
        *,
        channel: Optional[NotificationChannel] = None,
        identity_provider: Optional[IdentityProvider] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._writer = writer
        self._logger = logger
        self._channel = channel
        self._identity_provider = identity_provider
        self._metrics = metrics

    async def raise_finding(
        self, finding: SuspiciousActivityFinding, *, timeout_seconds: Optional[float] = None
    ) -> DispatchOutcome:
        record = await self.persist(finding)
        return await self.dispatch(finding, record, timeout_seconds=timeout_seconds)

    async def persist(self, finding: SuspiciousActivityFinding) -> AuditRecord:
        """Write the finding to the SECURITY partition."""
        record = await self._writer.record_security_event(finding)
        if self._metrics:
            self._metrics.increment(m.FINDINGS, label=finding.pattern_kind.value)
        return record

    async def dispatch(
        self,
        finding: SuspiciousActivityFinding,
        record: AuditRecord,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> DispatchOutcome:
        """Notify the channel and, for CRITICAL findings, request restriction. Never raises."""
        if finding.severity == Severity.CRITICAL:
            notified, restriction_requested = await asyncio.gather(
                self._notify(finding, record, timeout_seconds),
                self._restrict(finding, timeout_seconds),
            )
        else:
            notified = await self._notify(finding, record, timeout_seconds)
            restriction_requested = False

        self._logger.info(
            "security_alert_generated",
            extra={
                "actor": finding.actor_id,
                "pattern_kind": finding.pattern_kind.value,
                "severity": finding.severity.value,
                "notified": notified,
                "restriction_requested": restriction_requested,
            },
        )
        return DispatchOutcome(
            record=record, notified=notified, restriction_requested=restriction_requested
        )

    async def _notify(
        self,
        finding: SuspiciousActivityFinding,
        record: AuditRecord,
        timeout_seconds: Optional[float],
    ) -> bool:
        if self._channel is None:
            return False
        try:
            await run_with_deadline(
                "alert notification",
                self._channel.publish(alert_subject(finding), alert_message(finding, record)),
                timeout_seconds,
            )
        except Exception as e:
            self._dispatch_failed("notification", finding, e)
            return False
        return True

    async def _restrict(
        self, finding: SuspiciousActivityFinding, timeout_seconds: Optional[float]
    ) -> bool:
        if self._identity_provider is None:
            return False
        try:
            await run_with_deadline(
                "actor restriction",
                self._identity_provider.restrict_actor(
                    finding.actor_id,
                    reason=finding.description,
                    pattern_kind=finding.pattern_kind.value,
                ),
                timeout_seconds,
            )
        except Exception as e:
            self._dispatch_failed("restriction", finding, e)
            return False
        return True

    def _dispatch_failed(self, target: str, finding: SuspiciousActivityFinding, error: Exception) -> None:
        self._logger.error(
            "alert_dispatch_failed",
            extra={
                "target": target,
                "actor": finding.actor_id,
                "pattern_kind": finding.pattern_kind.value,
                "error": str(error),
            },
        )
        if self._metrics:
            self._metrics.increment(m.DISPATCH_FAILURES, label=target)
        # Do not re-raise: the finding is already durable.
