"""Domain-specific exceptions. Pure domain layer, no infrastructure."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when a record or query violates domain validation rules."""


class InvalidChangeSetError(DomainValidationError):
    """Raised when a modification record's change list is empty or malformed."""


class InvalidAttributeError(DomainValidationError):
    """Raised when an attribute value is outside the allowed primitive types."""


class UnscopedQueryError(DomainValidationError):
    """Raised when a query names no actor, resource, or event type."""


class QueryRangeError(DomainValidationError):
    """Raised when a query time range is inverted or wider than allowed."""
