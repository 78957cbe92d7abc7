"""Domain validators. Pure validation functions."""

from audit_trail.domain.validators.audit_validator import (
    validate_attributes,
    validate_changes,
    validate_classification,
    validate_limit,
    validate_query_filter,
    validate_required_text,
    validate_version,
)

__all__ = [
    "validate_attributes",
    "validate_changes",
    "validate_classification",
    "validate_limit",
    "validate_query_filter",
    "validate_required_text",
    "validate_version",
]
