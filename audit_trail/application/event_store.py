"""Event store protocol. Application layer depends on this; infrastructure implements it."""

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from audit_trail.domain.models.audit_record import AuditRecord


@dataclass(frozen=True)
class StoreQuery:
    """
    Ordered range scan over exactly one key: a partition key or a secondary (actor) key.
    Bounds are inclusive and compared lexicographically against the sort key
    (or secondary sort for index scans). cursor is exclusive and comes from StorePage.next_cursor.
    """

    partition_key: Optional[str] = None
    secondary_key: Optional[str] = None
    lower_bound: Optional[str] = None
    upper_bound: Optional[str] = None
    limit: int = 100
    descending: bool = True
    cursor: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.partition_key is None) == (self.secondary_key is None):
            raise ValueError("StoreQuery needs exactly one of partition_key or secondary_key")
        if self.limit < 1:
            raise ValueError("StoreQuery limit must be positive")


@dataclass(frozen=True)
class StorePage:
    records: Sequence[AuditRecord]
    next_cursor: Optional[str] = None


class EventStore(Protocol):
    """Append-only, partitioned record store with ordered range scans per key."""

    async def append(self, record: AuditRecord) -> None:
        """
        Durably write a new record. Returns only once the write is acknowledged.
        Raises RecordConflictError if the key (or the record's resource version) exists,
        StoreUnavailableError if the store cannot be reached.
        """
        ...

    async def query(self, query: StoreQuery) -> StorePage:
        """Return one page of records in sort-key order."""
        ...
