"""AuditRecord model tests: keying helpers, immutability, dict conversion."""

import dataclasses
from datetime import datetime, timezone

import pytest

from audit_trail.core.clock import format_timestamp
from audit_trail.domain.models.audit_record import (
    AuditEventType,
    AuditRecord,
    ChangeRecord,
    DataClassification,
    build_sort_key,
    change_partition,
    family_partition,
    user_index,
)

TS = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def _modification() -> AuditRecord:
    ts = format_timestamp(TS)
    return AuditRecord(
        partition_key=change_partition("loan", "L-1"),
        sort_key=build_sort_key(ts, "alice", "L-1", 2),
        secondary_key=user_index("alice"),
        secondary_sort=ts,
        event_type=AuditEventType.DATA_MODIFICATION,
        timestamp=TS,
        actor_id="alice",
        source_address="10.0.0.1",
        success=True,
        action="UPDATE",
        resource_type="loan",
        resource_id="L-1",
        changes=[ChangeRecord("status", "PENDING", "APPROVED")],
        attributes={"version": 2},
    )


def test_key_helpers():
    assert change_partition("loan", "L-1") == "CHANGE:loan:L-1"
    assert user_index("alice") == "USER:alice"
    assert build_sort_key("2024-05-01T09:30:00.000000Z", "alice") == "2024-05-01T09:30:00.000000Z#alice"
    assert (
        build_sort_key("2024-05-01T09:30:00.000000Z", "alice", "L-1", 3)
        == "2024-05-01T09:30:00.000000Z#alice#L-1#v3"
    )


def test_family_partitions():
    assert family_partition(AuditEventType.AUTHENTICATION) == "AUTH"
    assert family_partition(AuditEventType.DATA_ACCESS) == "ACCESS"
    assert family_partition(AuditEventType.SECURITY_EVENT) == "SECURITY"
    assert family_partition(AuditEventType.DATA_MODIFICATION) is None


def test_timestamp_format_is_fixed_width():
    early = format_timestamp(datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc))
    late = format_timestamp(datetime(2024, 5, 1, 9, 0, 0, 5, tzinfo=timezone.utc))
    assert len(early) == len(late)
    assert early < late


def test_record_is_immutable():
    record = _modification()
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.actor_id = "mallory"
    with pytest.raises(TypeError):
        record.attributes["version"] = 3
    assert isinstance(record.changes, tuple)


def test_version_and_ref():
    record = _modification()
    assert record.version == 2
    assert record.ref.partition_key == "CHANGE:loan:L-1"
    assert record.ref.sort_key.endswith("#v2")


def test_dict_conversion_preserves_fields():
    record = _modification()
    restored = AuditRecord.from_dict(record.to_dict())
    assert restored.to_dict() == record.to_dict()
    assert restored.timestamp == TS
    assert restored.changes[0].new_value == "APPROVED"


def test_sensitive_classifications():
    assert DataClassification.CONFIDENTIAL.is_sensitive
    assert DataClassification.RESTRICTED.is_sensitive
    assert not DataClassification.INTERNAL.is_sensitive
    assert not DataClassification.PUBLIC.is_sensitive
