# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/tubex/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Self-service company registration with email verification
- Password strength validation
- Login throttling and temporary lockout
- Session management with opaque bearer tokens
- Employee onboarding via invitation codes
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import login_throttle_service
from ..services import invitation_service
from ..services import permission_service
from ..services.auth_service import PasswordValidationError, AuthenticationError
from ..services.invitation_service import InvitationError
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission, get_bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _token_field(response: dict, key: str, token: str | None) -> dict:
    """One-time tokens only leave the server when RETURN_ACTION_TOKENS is on."""
    if token and current_app.config.get("RETURN_ACTION_TOKENS"):
        response[key] = token
    return response


@auth_bp.post("/register")
def register_route():
    """
    Register a company and its first user.

    Body: {email, password, role?, first_name?, last_name?, company: {...}}
    """
    payload = request.get_json(silent=True)

    try:
        company, user, token = auth_service.register_company(payload)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register company")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Email verification issued for user %s", user.id)
    response = {
        "company": company.to_dict(),
        "user": user.to_dict(),
        "message": "Registration successful. Verify your email to activate the account.",
    }
    return jsonify(_token_field(response, "verification_token", token)), 201


@auth_bp.post("/verify-email")
def verify_email_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = auth_service.verify_email(data.get("token"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthenticationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"message": "Email verified", "user": user.to_dict()}), 200


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    SECURITY:
    - Checks for account lockout before attempting authentication
    - Records failed attempts for throttling
    - Records successful logins for audit trail
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        email = data.get("email")
        password = data.get("password")

        if not email or not password:
            return jsonify({"error": "email and password required"}), 400

        email = str(email).strip().lower()
        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        is_locked, seconds_remaining = login_throttle_service.is_account_locked(email)
        if is_locked:
            minutes_remaining = (seconds_remaining // 60) + 1 if seconds_remaining else 15
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
                "retry_after_minutes": minutes_remaining,
            }), 429

        try:
            user = auth_service.authenticate(email, password)
        except AuthenticationError as e:
            failed_count = login_throttle_service.record_failed_attempt(
                identifier=email,
                ip_address=ip_address,
                user_agent=user_agent,
                reason=str(e),
            )
            if login_throttle_service.remaining_attempts(failed_count) == 0:
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                    "retry_after_minutes": int(login_throttle_service.LOCKOUT_DURATION.total_seconds() // 60),
                }), 429

            body = {"error": str(e)}
            warning = login_throttle_service.lockout_warning(failed_count)
            if warning:
                body["warning"] = warning
            return jsonify(body), 401

        login_throttle_service.record_successful_login(user, ip_address=ip_address, user_agent=user_agent)

        session, token = session_service.create_session(user, user_agent=user_agent, ip_address=ip_address)

        return jsonify({
            **auth_service.build_auth_payload(user),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/lockout-status/<email>")
def lockout_status_route(email: str):
    """Public: lets a user see whether and until when they are locked out."""
    return jsonify(login_throttle_service.get_lockout_status(email))


@auth_bp.post("/logout")
def logout_route():
    token = get_bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.post("/validate")
def validate_route():
    """Validate a token and return user, company and permissions."""
    token = get_bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    context = session_service.validate_session(token)
    if not context:
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({
        **auth_service.build_auth_payload(context.user),
        "message": "Token valid"
    }), 200


@auth_bp.post("/refresh-token")
@require_auth
def refresh_token_route():
    """Rotate the session: the presented token is revoked, a new one issued."""
    try:
        session_service.revoke_session(g.auth_token, reason="Token refreshed")
        session, token = session_service.create_session(
            g.current_user,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 401

    return jsonify({"token": token, "session": session.to_dict()}), 200


@auth_bp.post("/forgot-password")
def forgot_password_route():
    """Always 200 so the endpoint cannot be used to probe for accounts."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    token = auth_service.request_password_reset(data.get("email"))
    if token:
        current_app.logger.info("Password reset token issued")

    response = {"message": "If your email is registered, you will receive password reset instructions"}
    return jsonify(_token_field(response, "reset_token", token)), 200


@auth_bp.post("/reset-password")
def reset_password_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = auth_service.reset_password(data.get("token"), data.get("new_password"))
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except AuthenticationError as e:
        return jsonify({"error": str(e)}), 400

    permission_service.log_request_event("PASSWORD_RESET", success=True, user=user, company_id=user.company_id)
    return jsonify({"message": "Password has been reset"}), 200


# =============================================================================
# INVITATIONS
# =============================================================================

@auth_bp.post("/invitations")
@require_auth
@require_company
@require_permission("INVITE_USERS")
def create_invitation_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        invitation = invitation_service.create_invitation(g.current_user, payload)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"invitation": invitation.to_dict()}), 201


@auth_bp.get("/invitations")
@require_auth
@require_company
@require_permission("INVITE_USERS")
def list_invitations_route():
    invitations = invitation_service.list_invitations(g.company_id, status=request.args.get("status"))
    return jsonify({"items": [i.to_dict() for i in invitations], "count": len(invitations)}), 200


@auth_bp.delete("/invitations/<int:invitation_id>")
@require_auth
@require_company
@require_permission("INVITE_USERS")
def revoke_invitation_route(invitation_id: int):
    try:
        invitation = invitation_service.revoke_invitation(g.company_id, invitation_id)
    except TenantAccessError:
        return jsonify({"error": "Invitation not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"invitation": invitation.to_dict()}), 200


@auth_bp.get("/invitations/verify/<code>")
def verify_invitation_route(code: str):
    """Public lookup used by the employee sign-up form."""
    try:
        details = invitation_service.verify_invitation_code(code)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError:
        return jsonify({"error": "Invitation not found"}), 404
    except InvitationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"valid": True, **details}), 200


@auth_bp.post("/register-employee")
def register_employee_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = invitation_service.register_employee(payload)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except (ValidationError, PasswordValidationError, InvitationError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError:
        return jsonify({"error": "Invitation not found"}), 404

    return jsonify({
        "user": user.to_dict(),
        "message": "Registration received. An administrator must approve your account.",
    }), 201
