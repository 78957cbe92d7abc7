"""Security: RBAC for the audit read and write surface. No FastAPI."""

from audit_trail.security.rbac import AUDIT_READ, AUDIT_WRITE, RBACService, Role, parse_role

__all__ = [
    "AUDIT_READ",
    "AUDIT_WRITE",
    "RBACService",
    "Role",
    "parse_role",
]
