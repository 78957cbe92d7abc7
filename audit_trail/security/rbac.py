"""Role-based access control for audit operations. No FastAPI."""

from enum import Enum
from typing import Optional

from audit_trail.security.exceptions import AuthorizationError

AUDIT_READ = "audit:read"
AUDIT_WRITE = "audit:write"


class Role(Enum):
    ADMIN = "ADMIN"
    SECURITY_OFFICER = "SECURITY_OFFICER"
    SERVICE = "SERVICE"
    ANALYST = "ANALYST"
    VIEWER = "VIEWER"


# Permission matrix:
# Role              audit:read  audit:write
# ADMIN             ✓           ✓
# SECURITY_OFFICER  ✓           ✗
# SERVICE           ✗           ✓
# ANALYST           ✗           ✗
# VIEWER            ✗           ✗

_ACTION_PERMISSIONS: dict[tuple[Role, str], bool] = {
    (Role.ADMIN, AUDIT_READ): True,
    (Role.ADMIN, AUDIT_WRITE): True,
    (Role.SECURITY_OFFICER, AUDIT_READ): True,
    (Role.SECURITY_OFFICER, AUDIT_WRITE): False,
    (Role.SERVICE, AUDIT_READ): False,
    (Role.SERVICE, AUDIT_WRITE): True,
    (Role.ANALYST, AUDIT_READ): False,
    (Role.ANALYST, AUDIT_WRITE): False,
    (Role.VIEWER, AUDIT_READ): False,
    (Role.VIEWER, AUDIT_WRITE): False,
}


def parse_role(value: Optional[str]) -> Optional[Role]:
    """Role from a header value, case-insensitive. Unknown or empty -> None."""
    if not value or not value.strip():
        return None
    try:
        return Role(value.strip().upper())
    except ValueError:
        return None


class RBACService:
    """Check permission for role and action. Raise AuthorizationError if invalid."""

    def check_permission(self, role: Optional[Role], action: str) -> None:
        """Raises AuthorizationError if role does not have permission for action."""
        if role is None:
            raise AuthorizationError(f"Caller has no role granting '{action}'")
        key = (role, action)
        if key not in _ACTION_PERMISSIONS or not _ACTION_PERMISSIONS[key]:
            raise AuthorizationError(
                f"Role {role.value} does not have permission for action '{action}'"
            )
