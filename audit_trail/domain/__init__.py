"""Domain layer: models, schemas, validators, exceptions. Pure business logic only."""

from audit_trail.domain.exceptions import (
    DomainError,
    DomainValidationError,
    InvalidAttributeError,
    InvalidChangeSetError,
    QueryRangeError,
    UnscopedQueryError,
)
from audit_trail.domain.models import (
    AuditEventType,
    AuditQueryFilter,
    AuditRecord,
    ChangeRecord,
    DataClassification,
    PatternKind,
    RecordRef,
    Severity,
    SuspiciousActivityFinding,
)

__all__ = [
    "AuditEventType",
    "AuditQueryFilter",
    "AuditRecord",
    "ChangeRecord",
    "DataClassification",
    "DomainError",
    "DomainValidationError",
    "InvalidAttributeError",
    "InvalidChangeSetError",
    "PatternKind",
    "QueryRangeError",
    "RecordRef",
    "Severity",
    "SuspiciousActivityFinding",
    "UnscopedQueryError",
]
