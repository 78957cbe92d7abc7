"""Version history: ordered change records for one resource."""

import logging
from typing import List, Optional

from audit_trail.application.query_engine import QueryEngine
from audit_trail.domain.models.audit_record import AuditRecord
from audit_trail.domain.models.query import AuditQueryFilter
from audit_trail.domain.validators.audit_validator import validate_required_text


class VersionHistoryTracker:
    """
    Thin specialization of the query engine's by-resource path.
    Versions are strictly increasing and embedded in the sort key, so the
    partition order is already newest version first.
    """

    def __init__(
        self,
        query_engine: QueryEngine,
        logger: logging.Logger,
        *,
        default_limit: int = 50,
    ) -> None:
        self._query_engine = query_engine
        self._logger = logger
        self._default_limit = default_limit

    async def get_history(
        self,
        resource_type: str,
        resource_id: str,
        limit: Optional[int] = None,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> List[AuditRecord]:
        query = AuditQueryFilter(
            resource_type=validate_required_text("resource_type", resource_type),
            resource_id=validate_required_text("resource_id", resource_id),
        )
        result = await self._query_engine.query(
            query,
            limit if limit is not None else self._default_limit,
            timeout_seconds=timeout_seconds,
        )
        self._logger.info(
            "version_history_read",
            extra={
                "resource_type": query.resource_type,
                "resource_id": query.resource_id,
                "count": result.count,
            },
        )
        return result.records
