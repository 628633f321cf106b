# Overview: Request and permission decorators for API routes.

"""
Route decorators, applied in this order:

    @require_auth                 -> 401 without a live session
    @require_company              -> 403 for platform admins (no tenant)
    @require_permission("CODE")   -> 403 and a PERMISSION_DENIED event

MULTI-TENANT: require_auth is the only place g.company_id is set. Services
take the company id from the caller and never from request payloads.
"""

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'company_id')


def get_bearer_token() -> str | None:
    """Token from `Authorization: Bearer <token>`, or None."""
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    if scheme != "Bearer":
        return None
    return token.strip() or None


def require_auth(f):
    """
    Validate the bearer session and populate g:
    current_user, company_id (None only for platform admins),
    session_context and auth_token.

    SECURITY: 401 for a missing, expired or revoked token, an inactive
    user, a suspended or rejected company, or a company user whose session
    lost its company_id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        if context.company_id is None and not context.user.is_platform_admin:
            permission_service.log_request_event(
                "TENANT_CONTEXT_MISSING",
                success=False,
                user=context.user,
                reason="Session missing company_id",
            )
            return jsonify({"error": "Invalid session: missing tenant context"}), 401

        g.current_user = context.user
        g.company_id = context.company_id
        g.session_context = context
        g.auth_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_company(f):
    """Require a company context (platform admins have none)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if g.company_id is None:
            return jsonify({"error": "Company context required"}), 403
        return f(*args, **kwargs)
    return decorated_function


def _permission_guard(check, denied_body: dict):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401
            try:
                check(g.current_user, company_id=g.company_id)
            except PermissionDeniedError as e:
                return jsonify({**denied_body, "error": "Permission denied", "message": str(e)}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_permission(permission_code: str):
    """Require one permission code."""
    return _permission_guard(
        lambda user, company_id: permission_service.require_permission(user, permission_code, company_id=company_id),
        {"required_permission": permission_code},
    )


def require_any_permission(*permission_codes):
    """Require at least one of the permission codes."""
    return _permission_guard(
        lambda user, company_id: permission_service.require_any_permission(
            user, permission_codes, company_id=company_id,
        ),
        {"required_permissions": list(permission_codes)},
    )
