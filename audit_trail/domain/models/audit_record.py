"""Audit domain model. Immutable records, closed value types, partition/sort keying."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from audit_trail.core.clock import format_timestamp, parse_timestamp

AttributeValue = Union[str, int, float, bool]
ChangeValue = Optional[AttributeValue]

AUTH_PARTITION = "AUTH"
ACCESS_PARTITION = "ACCESS"
SECURITY_PARTITION = "SECURITY"
CHANGE_PARTITION_PREFIX = "CHANGE"
USER_INDEX_PREFIX = "USER"
VERSION_ATTRIBUTE = "version"


class AuditEventType(str, Enum):
    AUTHENTICATION = "AUTHENTICATION"
    DATA_ACCESS = "DATA_ACCESS"
    DATA_MODIFICATION = "DATA_MODIFICATION"
    SECURITY_EVENT = "SECURITY_EVENT"


class DataClassification(str, Enum):
    PUBLIC = "PUBLIC"
    INTERNAL = "INTERNAL"
    CONFIDENTIAL = "CONFIDENTIAL"
    RESTRICTED = "RESTRICTED"

    @property
    def is_sensitive(self) -> bool:
        return self in (DataClassification.CONFIDENTIAL, DataClassification.RESTRICTED)


def change_partition(resource_type: str, resource_id: str) -> str:
    return f"{CHANGE_PARTITION_PREFIX}:{resource_type}:{resource_id}"


def user_index(actor_id: str) -> str:
    return f"{USER_INDEX_PREFIX}:{actor_id}"


# Event families stored in a single shared partition.
_FAMILY_PARTITIONS: Dict[AuditEventType, str] = {
    AuditEventType.AUTHENTICATION: AUTH_PARTITION,
    AuditEventType.DATA_ACCESS: ACCESS_PARTITION,
    AuditEventType.SECURITY_EVENT: SECURITY_PARTITION,
}


def family_partition(event_type: AuditEventType) -> Optional[str]:
    """Shared partition for an event type; None for per-resource CHANGE records."""
    return _FAMILY_PARTITIONS.get(event_type)


def build_sort_key(
    timestamp: str,
    actor_id: str,
    resource_id: Optional[str] = None,
    version: Optional[int] = None,
) -> str:
    """{timestamp}#{actorId}[#{resourceId}][#v{version}]"""
    parts = [timestamp, actor_id]
    if resource_id:
        parts.append(resource_id)
    if version is not None:
        parts.append(f"v{version}")
    return "#".join(parts)


@dataclass(frozen=True)
class ChangeRecord:
    """Field-level delta of a single modification."""

    field: str
    old_value: ChangeValue
    new_value: ChangeValue

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "old_value": self.old_value, "new_value": self.new_value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChangeRecord":
        return cls(
            field=data["field"],
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
        )


@dataclass(frozen=True)
class RecordRef:
    """Primary-key reference to a stored record."""

    partition_key: str
    sort_key: str

    def to_dict(self) -> Dict[str, str]:
        return {"partition_key": self.partition_key, "sort_key": self.sort_key}


@dataclass(frozen=True)
class AuditRecord:
    """
    Immutable audit record. Written once, never updated or deleted.
    changes is a tuple and attributes a read-only copy so the instance cannot be mutated.
    """

    partition_key: str
    sort_key: str
    secondary_key: str
    secondary_sort: str
    event_type: AuditEventType
    timestamp: datetime
    actor_id: str
    source_address: str
    success: bool
    action: str
    user_agent: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    data_classification: Optional[DataClassification] = None
    changes: Tuple[ChangeRecord, ...] = ()
    error_detail: Optional[str] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "changes", tuple(self.changes))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @property
    def ref(self) -> RecordRef:
        return RecordRef(self.partition_key, self.sort_key)

    @property
    def version(self) -> Optional[int]:
        value = self.attributes.get(VERSION_ATTRIBUTE)
        return value if isinstance(value, int) and not isinstance(value, bool) else None

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for storage and JSON output."""
        return {
            "partition_key": self.partition_key,
            "sort_key": self.sort_key,
            "secondary_key": self.secondary_key,
            "secondary_sort": self.secondary_sort,
            "event_type": self.event_type.value,
            "timestamp": format_timestamp(self.timestamp),
            "actor_id": self.actor_id,
            "source_address": self.source_address,
            "user_agent": self.user_agent,
            "success": self.success,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "data_classification": (
                self.data_classification.value if self.data_classification else None
            ),
            "changes": [c.to_dict() for c in self.changes],
            "error_detail": self.error_detail,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuditRecord":
        classification = data.get("data_classification")
        return cls(
            partition_key=data["partition_key"],
            sort_key=data["sort_key"],
            secondary_key=data["secondary_key"],
            secondary_sort=data["secondary_sort"],
            event_type=AuditEventType(data["event_type"]),
            timestamp=parse_timestamp(data["timestamp"]),
            actor_id=data["actor_id"],
            source_address=data["source_address"],
            user_agent=data.get("user_agent"),
            success=bool(data["success"]),
            action=data["action"],
            resource_type=data.get("resource_type"),
            resource_id=data.get("resource_id"),
            data_classification=DataClassification(classification) if classification else None,
            changes=tuple(ChangeRecord.from_dict(c) for c in data.get("changes") or ()),
            error_detail=data.get("error_detail"),
            attributes=dict(data.get("attributes") or {}),
        )
