"""FastAPI dependency injection: event store, alert channels, audit components, caller."""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Request

from audit_trail.application.alert_dispatcher import AlertDispatcher
from audit_trail.application.audit_service import AuditService
from audit_trail.application.audit_writer import AuditWriter
from audit_trail.application.event_store import EventStore
from audit_trail.application.pattern_detector import DetectionThresholds, PatternDetector
from audit_trail.application.query_engine import QueryEngine
from audit_trail.application.version_history import VersionHistoryTracker
from audit_trail.config.settings import get_settings
from audit_trail.infrastructure.cache.redis_client import RedisClient
from audit_trail.infrastructure.identity.identity_provider import HttpIdentityProvider
from audit_trail.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher
from audit_trail.infrastructure.store.memory_event_store import InMemoryEventStore
from audit_trail.infrastructure.store.redis_event_store import RedisEventStore
from audit_trail.observability.metrics import MetricsCollector
from audit_trail.security.rbac import AUDIT_READ, AUDIT_WRITE, RBACService, Role, parse_role

_event_store: EventStore | None = None
_publisher: RabbitMQPublisher | None = None
_identity_provider: HttpIdentityProvider | None = None
_metrics: MetricsCollector | None = None
_rbac = RBACService()


@dataclass(frozen=True)
class Caller:
    actor_id: Optional[str]
    role: Optional[Role]


def get_metrics() -> MetricsCollector:
    """Return singleton metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_event_store() -> EventStore:
    """Return singleton event store for the configured backend."""
    global _event_store
    if _event_store is None:
        settings = get_settings()
        if settings.event_store_backend == "memory":
            _event_store = InMemoryEventStore()
        else:
            _event_store = RedisEventStore(
                RedisClient(settings.redis_url),
                namespace=settings.event_store_namespace,
            )
    return _event_store


def get_publisher() -> Optional[RabbitMQPublisher]:
    """Return singleton security alert publisher, or None when alerting is disabled."""
    global _publisher
    if not get_settings().alerts_enabled:
        return None
    if _publisher is None:
        _publisher = RabbitMQPublisher()
    return _publisher


def get_identity_provider() -> HttpIdentityProvider:
    """Return singleton identity provider client."""
    global _identity_provider
    if _identity_provider is None:
        settings = get_settings()
        _identity_provider = HttpIdentityProvider(
            settings.identity_provider_url,
            timeout_seconds=settings.identity_provider_timeout_seconds,
            restriction_minutes=settings.account_restriction_minutes,
        )
    return _identity_provider


def get_query_engine(
    store: Annotated[EventStore, Depends(get_event_store)],
    metrics: Annotated[MetricsCollector, Depends(get_metrics)],
) -> QueryEngine:
    settings = get_settings()
    return QueryEngine(
        store,
        logging.getLogger("audit_trail.query"),
        max_range_days=settings.query_max_range_days,
        default_limit=settings.query_default_limit,
        max_limit=settings.query_max_limit,
        page_size=settings.query_page_size,
        max_scanned_records=settings.query_max_scanned_records,
        metrics=metrics,
    )


def get_version_tracker(
    query_engine: Annotated[QueryEngine, Depends(get_query_engine)],
) -> VersionHistoryTracker:
    return VersionHistoryTracker(
        query_engine,
        logging.getLogger("audit_trail.versions"),
        default_limit=get_settings().version_history_default_limit,
    )


def get_audit_service(
    store: Annotated[EventStore, Depends(get_event_store)],
    query_engine: Annotated[QueryEngine, Depends(get_query_engine)],
    publisher: Annotated[Optional[RabbitMQPublisher], Depends(get_publisher)],
    identity_provider: Annotated[HttpIdentityProvider, Depends(get_identity_provider)],
    metrics: Annotated[MetricsCollector, Depends(get_metrics)],
) -> AuditService:
    """Build AuditService for handlers that perform audited actions."""
    settings = get_settings()
    logger = logging.getLogger("audit_trail.audit")
    writer = AuditWriter(store, logger, metrics=metrics)
    detector = PatternDetector(
        query_engine,
        logging.getLogger("audit_trail.detection"),
        thresholds=DetectionThresholds.from_settings(settings),
    )
    dispatcher = AlertDispatcher(
        writer,
        logging.getLogger("audit_trail.alerts"),
        channel=publisher,
        identity_provider=identity_provider,
        metrics=metrics,
    )
    return AuditService(
        writer,
        detector,
        dispatcher,
        logger,
        timeout_seconds=settings.operation_timeout_seconds,
        metrics=metrics,
    )


def get_caller(request: Request) -> Caller:
    """Caller identity from request.state (set by middleware)."""
    return Caller(
        actor_id=getattr(request.state, "actor_id", None),
        role=parse_role(getattr(request.state, "actor_role", None)),
    )


def require_audit_read(caller: Annotated[Caller, Depends(get_caller)]) -> Caller:
    """Raises AuthorizationError unless the caller holds audit:read."""
    _rbac.check_permission(caller.role, AUDIT_READ)
    return caller


def require_audit_write(caller: Annotated[Caller, Depends(get_caller)]) -> Caller:
    """Raises AuthorizationError unless the caller holds audit:write."""
    _rbac.check_permission(caller.role, AUDIT_WRITE)
    return caller
