"""Validators for audit records and queries. Pure functions, no infrastructure access."""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from audit_trail.core.clock import ensure_utc
from audit_trail.domain.exceptions import (
    DomainValidationError,
    InvalidAttributeError,
    InvalidChangeSetError,
    QueryRangeError,
    UnscopedQueryError,
)
from audit_trail.domain.models.audit_record import (
    AuditEventType,
    ChangeRecord,
    DataClassification,
    family_partition,
)
from audit_trail.domain.models.query import AuditQueryFilter

_ATTRIBUTE_TYPES = (str, int, float, bool)


def validate_required_text(name: str, value: Optional[str]) -> str:
    """Non-empty string after stripping. Raises DomainValidationError otherwise."""
    if not isinstance(value, str) or not value.strip():
        raise DomainValidationError(f"{name} must not be empty")
    return value.strip()


def _validate_primitive(name: str, value: Any) -> None:
    if not isinstance(value, _ATTRIBUTE_TYPES):
        raise InvalidAttributeError(
            f"{name} must be a string, number or boolean, got {type(value).__name__}"
        )
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidAttributeError(f"{name} must be a finite number")


def validate_attributes(attributes: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Attributes are a flat mapping of string keys to str/int/float/bool."""
    if attributes is None:
        return {}
    result: Dict[str, Any] = {}
    for key, value in attributes.items():
        if not isinstance(key, str) or not key:
            raise InvalidAttributeError("attribute keys must be non-empty strings")
        _validate_primitive(f"attribute '{key}'", value)
        result[key] = value
    return result


def validate_changes(
    changes: Iterable[Union[ChangeRecord, Mapping[str, Any]]],
) -> Tuple[ChangeRecord, ...]:
    """At least one change; each names a field, values are primitives or None. Order is kept."""
    result = []
    for raw in changes or ():
        change = raw if isinstance(raw, ChangeRecord) else _change_from_mapping(raw)
        if not isinstance(change.field, str) or not change.field.strip():
            raise InvalidChangeSetError("change field must not be empty")
        for label, value in (("old_value", change.old_value), ("new_value", change.new_value)):
            if value is not None:
                _validate_primitive(f"{change.field}.{label}", value)
        result.append(change)
    if not result:
        raise InvalidChangeSetError("modification records require at least one change")
    return tuple(result)


def _change_from_mapping(raw: Mapping[str, Any]) -> ChangeRecord:
    if not isinstance(raw, Mapping) or "field" not in raw:
        raise InvalidChangeSetError("each change must provide a field name")
    return ChangeRecord.from_dict(raw)


def validate_version(version: Any) -> int:
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise DomainValidationError(f"version must be a positive integer, got {version!r}")
    return version


def validate_classification(classification: Any) -> DataClassification:
    """Access records always carry a classification."""
    if classification is None or classification == "":
        raise DomainValidationError("data_classification is required for access records")
    try:
        return DataClassification(classification)
    except ValueError as e:
        raise DomainValidationError(f"unknown data_classification: {classification!r}") from e


def validate_limit(limit: Optional[int], *, default: int, maximum: int) -> int:
    if limit is None:
        return default
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise DomainValidationError(f"limit must be a positive integer, got {limit!r}")
    if limit > maximum:
        raise DomainValidationError(f"limit must not exceed {maximum}")
    return limit


def validate_query_filter(
    query: AuditQueryFilter,
    *,
    now: datetime,
    max_range_days: int,
) -> None:
    """
    Enforce scoping and range rules. Raises UnscopedQueryError when no partition can be
    selected and QueryRangeError when the time window is inverted or too wide.
    """
    if bool(query.resource_type) != bool(query.resource_id):
        raise DomainValidationError("resource_type and resource_id must be supplied together")
    if not (query.has_resource_scope or query.actor_id or query.event_type):
        raise UnscopedQueryError(
            "at least one of actor_id, event_type or resource_type/resource_id is required"
        )
    if (
        not query.has_resource_scope
        and not query.actor_id
        and family_partition(query.event_type) is None
    ):
        raise UnscopedQueryError(
            f"{AuditEventType.DATA_MODIFICATION.value} queries require resource_type/resource_id "
            "or actor_id"
        )

    start = ensure_utc(query.start_time) if query.start_time else None
    end = ensure_utc(query.end_time) if query.end_time else None
    if start and end and end < start:
        raise QueryRangeError("end_time must not be before start_time")
    if start:
        span = (end or ensure_utc(now)) - start
        if span > timedelta(days=max_range_days):
            raise QueryRangeError(f"date range cannot exceed {max_range_days} days")
