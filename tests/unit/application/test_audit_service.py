"""AuditService tests: write then detect, detection gating, failure isolation, deadlines."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from audit_trail.application.alert_dispatcher import AlertDispatcher
from audit_trail.application.audit_service import AuditService
from audit_trail.application.exceptions import OperationTimeoutError, StoreUnavailableError
from audit_trail.domain.models.audit_record import AuditEventType, DataClassification
from audit_trail.domain.models.finding import PatternKind, Severity
from audit_trail.domain.models.query import AuditQueryFilter
from audit_trail.observability import metrics as m


async def _fail_login(service, actor="u1", source="10.0.0.1"):
    return await service.record_authentication(
        actor_id=actor, source_address=source, action="LOGIN", success=False,
        error_detail="invalid credentials",
    )


@pytest.mark.asyncio
async def test_repeated_failed_logins_produce_high_finding(audit_service, query_engine):
    outcomes = [await _fail_login(audit_service) for _ in range(5)]

    assert all(o.findings == () for o in outcomes[:4])
    assert [f.pattern_kind for f in outcomes[4].findings] == [PatternKind.REPEATED_FAILED_LOGIN]
    assert outcomes[4].findings[0].severity is Severity.HIGH

    security = await query_engine.query(
        AuditQueryFilter(actor_id="u1", event_type=AuditEventType.SECURITY_EVENT)
    )
    assert security.count >= 1
    assert security.records[0].attributes["pattern_kind"] == "REPEATED_FAILED_LOGIN"
    assert security.records[0].attributes["severity"] == "HIGH"


@pytest.mark.asyncio
async def test_off_hours_restricted_access_is_recorded(audit_service, query_engine, clock):
    clock.now = datetime(2024, 5, 1, 2, 0, tzinfo=timezone.utc)
    outcome = await audit_service.record_access(
        actor_id="u2", resource_type="document", resource_id="r7",
        classification=DataClassification.RESTRICTED, source_address="10.0.0.9", action="READ",
    )

    assert [f.pattern_kind for f in outcome.findings] == [PatternKind.OFF_HOURS_RESTRICTED_ACCESS]
    assert outcome.findings[0].severity is Severity.HIGH
    security = await query_engine.query(AuditQueryFilter(event_type=AuditEventType.SECURITY_EVENT))
    assert security.records[0].actor_id == "u2"
    assert security.records[0].attributes["pattern_kind"] == "OFF_HOURS_RESTRICTED_ACCESS"


@pytest.mark.asyncio
async def test_sensitive_access_is_retrievable_with_its_classification(audit_service, query_engine):
    for classification in (DataClassification.CONFIDENTIAL, DataClassification.RESTRICTED):
        outcome = await audit_service.record_access(
            actor_id="u3", resource_type="customer", resource_id="C-1",
            classification=classification, source_address="10.0.0.1", action="READ",
        )
        result = await query_engine.query(AuditQueryFilter(actor_id="u3"), 1)
        assert result.records[0].sort_key == outcome.record.sort_key
        assert result.records[0].data_classification is classification


@pytest.mark.asyncio
async def test_distributed_failures_restrict_actor(audit_service, identity_provider, channel):
    for source in ("10.0.0.1", "10.0.0.2"):
        await _fail_login(audit_service, source=source)
    outcome = await _fail_login(audit_service, source="10.0.0.3")

    assert [f.pattern_kind for f in outcome.findings] == [PatternKind.DISTRIBUTED_FAILED_LOGIN]
    assert outcome.findings[0].severity is Severity.CRITICAL
    identity_provider.restrict_actor.assert_awaited_once()
    assert channel.publish.call_args[0][0] == "Security Alert: DISTRIBUTED_FAILED_LOGIN - CRITICAL"


@pytest.mark.asyncio
async def test_successful_login_and_public_access_skip_detection(writer, dispatcher, logger):
    detector = AsyncMock()
    service = AuditService(writer, detector, dispatcher, logger)

    await service.record_authentication(
        actor_id="u1", source_address="10.0.0.1", action="LOGIN", success=True,
    )
    await service.record_access(
        actor_id="u1", resource_type="page", resource_id="home",
        classification="PUBLIC", source_address="10.0.0.1", action="READ",
    )
    await service.record_modification(
        actor_id="u1", resource_type="loan", resource_id="L-1",
        changes=[{"field": "a", "old_value": 1, "new_value": 2}],
        source_address="10.0.0.1", action="UPDATE", version=1,
    )
    detector.detect_authentication.assert_not_called()
    detector.detect_access.assert_not_called()


@pytest.mark.asyncio
async def test_detection_failure_does_not_fail_the_write(writer, dispatcher, store, metrics):
    detector = AsyncMock()
    detector.detect_authentication = AsyncMock(side_effect=StoreUnavailableError("read failed"))
    logger = MagicMock()
    service = AuditService(writer, detector, dispatcher, logger, metrics=metrics)

    outcome = await _fail_login(service)

    assert outcome.findings == ()
    assert len(store) == 1
    assert logger.error.call_args[0][0] == "pattern_detection_failed"
    assert metrics.counter(m.DETECTION_FAILURES, label="detection") == 1


@pytest.mark.asyncio
async def test_finding_persistence_failure_is_isolated(writer, detector, store, metrics):
    dispatcher = AsyncMock()
    dispatcher.persist = AsyncMock(side_effect=StoreUnavailableError("write failed"))
    service = AuditService(writer, detector, dispatcher, MagicMock(), metrics=metrics)

    outcomes = [await _fail_login(service) for _ in range(5)]

    assert outcomes[4].findings == ()
    assert len(store) == 5
    assert metrics.counter(m.DETECTION_FAILURES, label="finding_persistence") == 1


@pytest.mark.asyncio
async def test_write_failure_propagates(detector, dispatcher):
    writer = AsyncMock()
    writer.record_authentication = AsyncMock(side_effect=StoreUnavailableError("redis down"))
    service = AuditService(writer, detector, dispatcher, MagicMock())
    with pytest.raises(StoreUnavailableError):
        await _fail_login(service)


@pytest.mark.asyncio
async def test_write_deadline_surfaces_timeout(detector, dispatcher):
    async def slow_write(**kwargs):
        await asyncio.sleep(1)

    writer = MagicMock()
    writer.record_modification = slow_write
    service = AuditService(writer, detector, dispatcher, MagicMock(), timeout_seconds=0.01)
    with pytest.raises(OperationTimeoutError):
        await service.record_modification(
            actor_id="u1", resource_type="loan", resource_id="L-1",
            changes=[{"field": "a", "old_value": 1, "new_value": 2}],
            source_address="10.0.0.1", action="UPDATE", version=1,
        )


@pytest.mark.asyncio
async def test_slow_channel_does_not_outlive_caller_deadline(
    writer, detector, identity_provider, store, metrics
):
    async def slow_publish(subject, message):
        await asyncio.sleep(2)

    channel = AsyncMock()
    channel.publish = slow_publish
    dispatcher = AlertDispatcher(
        writer, MagicMock(), channel=channel, identity_provider=identity_provider, metrics=metrics
    )
    service = AuditService(writer, detector, dispatcher, MagicMock(), metrics=metrics)
    loop = asyncio.get_running_loop()

    for _ in range(4):
        await service.record_authentication(
            actor_id="u1", source_address="10.0.0.1", action="LOGIN", success=False,
            timeout_seconds=0.2,
        )
    started = loop.time()
    outcome = await service.record_authentication(
        actor_id="u1", source_address="10.0.0.1", action="LOGIN", success=False,
        timeout_seconds=0.2,
    )
    elapsed = loop.time() - started

    assert elapsed < 0.5
    assert [f.pattern_kind for f in outcome.findings] == [PatternKind.REPEATED_FAILED_LOGIN]
    assert len(store) == 6
    assert metrics.counter(m.DISPATCH_FAILURES, label="notification") == 1
