# Overview: Permission resolution and security event logging.

"""
Permission Checks and Security Events

Permissions are static: a user's grants follow from role and the platform
flag (see tubex.permissions). Nothing is stored per user.

SECURITY:
- Fail closed: inactive users and unknown roles hold no permissions
- Only denials are logged; grants are not
- Every SecurityEvent carries company_id so tenants can be audited apart
"""

from flask import has_request_context, request

from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import get_role_permissions, get_platform_admin_permissions
from ..time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    event_type: str,
    *,
    success: bool,
    user_id: int | None = None,
    company_id: int | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Append one row to security_events and commit.

    event_type: PERMISSION_DENIED, CROSS_TENANT_ACCESS_DENIED,
    TENANT_CONTEXT_MISSING, PASSWORD_RESET, LOGIN_FAILED, LOGIN_SUCCESS.
    """
    event = SecurityEvent(
        user_id=user_id,
        company_id=company_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()
    return event


def log_request_event(
    event_type: str,
    *,
    success: bool,
    user: User | None = None,
    company_id: int | None = None,
    action: str | None = None,
    reason: str | None = None,
) -> SecurityEvent:
    """
    log_security_event with path, method, client IP and User-Agent taken
    from the current request (all None outside a request).
    """
    in_request = has_request_context()
    return log_security_event(
        event_type,
        success=success,
        user_id=user.id if user is not None else None,
        company_id=company_id,
        resource=request.path if in_request else None,
        action=action or (request.method if in_request else None),
        reason=reason,
        ip_address=request.remote_addr if in_request else None,
        user_agent=request.headers.get("User-Agent") if in_request else None,
    )


def get_user_permissions(user: User) -> set[str]:
    """
    Platform admins hold the platform set and nothing company-scoped;
    everyone else holds their role's set.
    """
    if user is None or not user.is_active:
        return set()
    if user.is_platform_admin:
        return get_platform_admin_permissions()
    return get_role_permissions(user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(user: User, permission_code: str, *, company_id: int | None = None) -> None:
    """Raise PermissionDeniedError (after logging the denial) unless granted."""
    if not user_has_permission(user, permission_code):
        log_request_event(
            "PERMISSION_DENIED",
            success=False,
            user=user,
            company_id=company_id,
            action=permission_code,
            reason=f"Missing permission: {permission_code}",
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")


def require_any_permission(user: User, permission_codes, *, company_id: int | None = None) -> None:
    granted = get_user_permissions(user)
    if not any(code in granted for code in permission_codes):
        log_request_event(
            "PERMISSION_DENIED",
            success=False,
            user=user,
            company_id=company_id,
            action=f"ANY_OF:{','.join(permission_codes)}",
            reason=f"Missing any of: {', '.join(permission_codes)}",
        )
        raise PermissionDeniedError(f"Requires any of: {', '.join(permission_codes)}")
