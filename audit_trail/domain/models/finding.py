"""Suspicious activity finding. Produced by the pattern detector, persisted as a SECURITY record."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from audit_trail.domain.models.audit_record import RecordRef


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class PatternKind(str, Enum):
    REPEATED_FAILED_LOGIN = "REPEATED_FAILED_LOGIN"
    DISTRIBUTED_FAILED_LOGIN = "DISTRIBUTED_FAILED_LOGIN"
    EXCESSIVE_SENSITIVE_ACCESS = "EXCESSIVE_SENSITIVE_ACCESS"
    OFF_HOURS_RESTRICTED_ACCESS = "OFF_HOURS_RESTRICTED_ACCESS"


@dataclass(frozen=True)
class SuspiciousActivityFinding:
    actor_id: str
    pattern_kind: PatternKind
    severity: Severity
    description: str
    triggering_records: Tuple[RecordRef, ...]
    detected_at: datetime
    source_address: Optional[str] = None

    @property
    def triggering_record_count(self) -> int:
        return len(self.triggering_records)
