"""Query filter for historical audit lookups."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from audit_trail.domain.models.audit_record import AuditEventType


@dataclass(frozen=True)
class AuditQueryFilter:
    """
    At least one scope must be present: resource (type + id), actor, or event type.
    Selection precedence is resource, then actor, then event type.
    """

    actor_id: Optional[str] = None
    event_type: Optional[AuditEventType] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def has_resource_scope(self) -> bool:
        return bool(self.resource_type and self.resource_id)
