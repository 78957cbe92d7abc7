# Application layer: audit components and the service that composes them.

from audit_trail.application.alert_dispatcher import AlertDispatcher, DispatchOutcome
from audit_trail.application.audit_service import AuditOutcome, AuditService
from audit_trail.application.audit_writer import AuditWriter
from audit_trail.application.event_store import EventStore, StorePage, StoreQuery
from audit_trail.application.exceptions import (
    ApplicationError,
    DispatchFailureError,
    OperationTimeoutError,
    RecordConflictError,
    StoreUnavailableError,
    VersionConflictError,
)
from audit_trail.application.pattern_detector import DetectionThresholds, PatternDetector
from audit_trail.application.query_engine import QueryEngine, QueryResult
from audit_trail.application.version_history import VersionHistoryTracker

__all__ = [
    "AlertDispatcher",
    "ApplicationError",
    "AuditOutcome",
    "AuditService",
    "AuditWriter",
    "DetectionThresholds",
    "DispatchFailureError",
    "DispatchOutcome",
    "EventStore",
    "OperationTimeoutError",
    "PatternDetector",
    "QueryEngine",
    "QueryResult",
    "RecordConflictError",
    "StorePage",
    "StoreQuery",
    "StoreUnavailableError",
    "VersionConflictError",
    "VersionHistoryTracker",
]
