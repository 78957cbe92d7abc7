"""Shared fixtures: controllable clock, in-memory store, audit components wired together."""

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from audit_trail.application.alert_dispatcher import AlertDispatcher
from audit_trail.application.audit_service import AuditService
from audit_trail.application.audit_writer import AuditWriter
from audit_trail.application.pattern_detector import DetectionThresholds, PatternDetector
from audit_trail.application.query_engine import QueryEngine
from audit_trail.infrastructure.store.memory_event_store import InMemoryEventStore
from audit_trail.observability.metrics import MetricsCollector


class FakeClock:
    """Starts at a fixed instant and moves forward by `step` on every read."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock():
    # Wednesday, inside business hours.
    return FakeClock(datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def logger():
    return logging.getLogger("audit_trail.tests")


@pytest.fixture
def writer(store, logger, clock, metrics):
    return AuditWriter(store, logger, clock=clock, metrics=metrics)


@pytest.fixture
def query_engine(store, logger, clock, metrics):
    return QueryEngine(store, logger, clock=clock, page_size=50, metrics=metrics)


@pytest.fixture
def detector(query_engine, logger, clock):
    return PatternDetector(query_engine, logger, thresholds=DetectionThresholds(), clock=clock)


@pytest.fixture
def channel():
    c = AsyncMock()
    c.publish = AsyncMock(return_value=None)
    return c


@pytest.fixture
def identity_provider():
    p = AsyncMock()
    p.restrict_actor = AsyncMock(return_value=None)
    return p


@pytest.fixture
def dispatcher(writer, logger, channel, identity_provider, metrics):
    return AlertDispatcher(
        writer,
        logger,
        channel=channel,
        identity_provider=identity_provider,
        metrics=metrics,
    )


@pytest.fixture
def audit_service(writer, detector, dispatcher, logger, metrics):
    return AuditService(writer, detector, dispatcher, logger, timeout_seconds=5.0, metrics=metrics)
