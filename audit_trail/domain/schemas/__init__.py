"""Domain schemas. Request/response and validation."""

from audit_trail.domain.schemas.audit import (
    AuditQueryResponse,
    AuditRecordResponse,
    AuditWriteResponse,
    AuthenticationEventRequest,
    ChangeRecordSchema,
    DataAccessEventRequest,
    DataModificationEventRequest,
    FindingResponse,
    VersionHistoryResponse,
)

__all__ = [
    "AuditQueryResponse",
    "AuditRecordResponse",
    "AuditWriteResponse",
    "AuthenticationEventRequest",
    "ChangeRecordSchema",
    "DataAccessEventRequest",
    "DataModificationEventRequest",
    "FindingResponse",
    "VersionHistoryResponse",
]
