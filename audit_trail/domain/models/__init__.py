"""Domain models. Pure business entities."""

from audit_trail.domain.models.audit_record import (
    AttributeValue,
    AuditEventType,
    AuditRecord,
    ChangeRecord,
    ChangeValue,
    DataClassification,
    RecordRef,
)
from audit_trail.domain.models.finding import PatternKind, Severity, SuspiciousActivityFinding
from audit_trail.domain.models.query import AuditQueryFilter

__all__ = [
    "AttributeValue",
    "AuditQueryFilter",
    "AuditEventType",
    "AuditRecord",
    "ChangeRecord",
    "ChangeValue",
    "DataClassification",
    "PatternKind",
    "RecordRef",
    "Severity",
    "SuspiciousActivityFinding",
]
