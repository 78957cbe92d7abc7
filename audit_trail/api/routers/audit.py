"""Audit API router: GET /audit/logs, GET /audit/versions, POST audit writes."""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from audit_trail.api.dependencies import (
    Caller,
    get_audit_service,
    get_query_engine,
    get_version_tracker,
    require_audit_read,
    require_audit_write,
)
from audit_trail.application.audit_service import AuditOutcome, AuditService
from audit_trail.application.query_engine import QueryEngine
from audit_trail.application.version_history import VersionHistoryTracker
from audit_trail.config.settings import get_settings
from audit_trail.domain.models.audit_record import AuditEventType
from audit_trail.domain.models.query import AuditQueryFilter
from audit_trail.domain.schemas.audit import (
    AuditQueryResponse,
    AuditRecordResponse,
    AuditWriteResponse,
    AuthenticationEventRequest,
    DataAccessEventRequest,
    DataModificationEventRequest,
    FindingResponse,
    VersionHistoryResponse,
)

router = APIRouter()


def _write_response(outcome: AuditOutcome) -> AuditWriteResponse:
    return AuditWriteResponse(
        record=AuditRecordResponse.from_record(outcome.record),
        findings=[FindingResponse.from_finding(f) for f in outcome.findings],
    )


@router.get("/logs", response_model=AuditQueryResponse)
async def query_audit_logs(
    caller: Annotated[Caller, Depends(require_audit_read)],
    query_engine: Annotated[QueryEngine, Depends(get_query_engine)],
    actor_id: Optional[str] = None,
    event_type: Optional[AuditEventType] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    limit: Annotated[Optional[int], Query(ge=1)] = None,
):
    """Search audit records. At least one of actor, resource or event type is required."""
    query = AuditQueryFilter(
        actor_id=actor_id,
        event_type=event_type,
        resource_type=resource_type,
        resource_id=resource_id,
        start_time=start_time,
        end_time=end_time,
    )
    result = await query_engine.query(
        query, limit, timeout_seconds=get_settings().operation_timeout_seconds
    )
    return AuditQueryResponse(
        results=[AuditRecordResponse.from_record(r) for r in result.records],
        count=result.count,
        query_duration_ms=round(result.duration_ms, 3),
        truncated=result.truncated,
    )


@router.get("/versions/{resource_type}/{resource_id}", response_model=VersionHistoryResponse)
async def get_version_history(
    resource_type: str,
    resource_id: str,
    caller: Annotated[Caller, Depends(require_audit_read)],
    tracker: Annotated[VersionHistoryTracker, Depends(get_version_tracker)],
    limit: Annotated[Optional[int], Query(ge=1)] = None,
):
    """Change records for one resource, newest version first."""
    records = await tracker.get_history(
        resource_type,
        resource_id,
        limit,
        timeout_seconds=get_settings().operation_timeout_seconds,
    )
    return VersionHistoryResponse(
        resource_type=resource_type,
        resource_id=resource_id,
        versions=[AuditRecordResponse.from_record(r) for r in records],
        count=len(records),
    )


@router.post("/authentication", response_model=AuditWriteResponse, status_code=201)
async def record_authentication(
    body: AuthenticationEventRequest,
    caller: Annotated[Caller, Depends(require_audit_write)],
    service: Annotated[AuditService, Depends(get_audit_service)],
):
    """Record a login attempt. Failed attempts are checked for brute-force patterns."""
    outcome = await service.record_authentication(
        actor_id=body.actor_id,
        source_address=body.source_address,
        action=body.action,
        success=body.success,
        user_agent=body.user_agent,
        error_detail=body.error_detail,
        attributes=body.attributes,
    )
    return _write_response(outcome)


@router.post("/access", response_model=AuditWriteResponse, status_code=201)
async def record_access(
    body: DataAccessEventRequest,
    caller: Annotated[Caller, Depends(require_audit_write)],
    service: Annotated[AuditService, Depends(get_audit_service)],
):
    outcome = await service.record_access(
        actor_id=body.actor_id,
        resource_type=body.resource_type,
        resource_id=body.resource_id,
        classification=body.classification,
        source_address=body.source_address,
        action=body.action,
        user_agent=body.user_agent,
        attributes=body.attributes,
    )
    return _write_response(outcome)


@router.post("/modifications", response_model=AuditWriteResponse, status_code=201)
async def record_modification(
    body: DataModificationEventRequest,
    caller: Annotated[Caller, Depends(require_audit_write)],
    service: Annotated[AuditService, Depends(get_audit_service)],
):
    outcome = await service.record_modification(
        actor_id=body.actor_id,
        resource_type=body.resource_type,
        resource_id=body.resource_id,
        changes=[c.model_dump() for c in body.changes],
        source_address=body.source_address,
        action=body.action,
        version=body.version,
        user_agent=body.user_agent,
        attributes=body.attributes,
    )
    return _write_response(outcome)
