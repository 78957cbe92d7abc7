"""Pydantic schemas for the audit API. Strict typing, no store or infrastructure."""

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from audit_trail.domain.models.audit_record import (
    AuditEventType,
    AuditRecord,
    DataClassification,
)
from audit_trail.domain.models.finding import PatternKind, Severity, SuspiciousActivityFinding

Primitive = Union[bool, int, float, str]


# ---------------------------------------------------------------------------
# Record schemas
# ---------------------------------------------------------------------------

class ChangeRecordSchema(BaseModel):
    field: str
    old_value: Optional[Primitive] = None
    new_value: Optional[Primitive] = None


class AuditRecordResponse(BaseModel):
    """Wire form of an AuditRecord. Field order is fixed so repeated reads serialize identically."""

    partition_key: str
    sort_key: str
    secondary_key: str
    secondary_sort: str
    event_type: AuditEventType
    timestamp: datetime
    actor_id: str
    source_address: str
    user_agent: Optional[str] = None
    success: bool
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    data_classification: Optional[DataClassification] = None
    changes: List[ChangeRecordSchema] = Field(default_factory=list)
    error_detail: Optional[str] = None
    attributes: Dict[str, Primitive] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditRecordResponse":
        return cls.model_validate(record.to_dict())


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------

class AuditQueryResponse(BaseModel):
    results: List[AuditRecordResponse]
    count: int
    query_duration_ms: float
    truncated: bool = False


class VersionHistoryResponse(BaseModel):
    resource_type: str
    resource_id: str
    versions: List[AuditRecordResponse]
    count: int


# ---------------------------------------------------------------------------
# Write request schemas
# ---------------------------------------------------------------------------

class _AuditWriteRequest(BaseModel):
    actor_id: str = Field(..., min_length=1)
    source_address: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1, description="Free-form verb, e.g. LOGIN, READ, UPDATE")
    user_agent: Optional[str] = None
    attributes: Dict[str, Primitive] = Field(default_factory=dict)


class AuthenticationEventRequest(_AuditWriteRequest):
    success: bool
    error_detail: Optional[str] = None


class DataAccessEventRequest(_AuditWriteRequest):
    resource_type: str = Field(..., min_length=1)
    resource_id: str = Field(..., min_length=1)
    classification: DataClassification


class DataModificationEventRequest(_AuditWriteRequest):
    resource_type: str = Field(..., min_length=1)
    resource_id: str = Field(..., min_length=1)
    changes: List[ChangeRecordSchema] = Field(..., min_length=1)
    version: int = Field(..., ge=1, description="Version reserved by the resource's write path")


class FindingResponse(BaseModel):
    pattern_kind: PatternKind
    severity: Severity
    description: str
    triggering_record_count: int
    detected_at: datetime

    @classmethod
    def from_finding(cls, finding: SuspiciousActivityFinding) -> "FindingResponse":
        return cls(
            pattern_kind=finding.pattern_kind,
            severity=finding.severity,
            description=finding.description,
            triggering_record_count=finding.triggering_record_count,
            detected_at=finding.detected_at,
        )


class AuditWriteResponse(BaseModel):
    record: AuditRecordResponse
    findings: List[FindingResponse] = Field(default_factory=list)
