# Overview: Flask API routes for company user management; parses input and returns JSON responses.

"""
User management routes.

MULTI-TENANT: Every route works inside g.company_id; users of other
companies read as not found.
"""

from flask import Blueprint, request, jsonify, g

from ..services import user_management_service
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission

users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@users_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_USERS")
def list_users_route():
    users = user_management_service.list_users(
        g.company_id,
        role=request.args.get("role"),
        status=request.args.get("status"),
    )
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.get("/profile")
@require_auth
def get_profile_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "company": user.company.to_dict() if user.company else None,
    }), 200


@users_bp.put("/profile")
@require_auth
def update_profile_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = user_management_service.update_profile(g.current_user, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"user": user.to_dict()}), 200


@users_bp.put("/<int:user_id>")
@require_auth
@require_company
@require_permission("MANAGE_USERS")
def update_user_route(user_id: int):
    """Body: {role?, status?, reason?}"""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = user_management_service.update_user(g.current_user, user_id, payload)
    except TenantAccessError:
        return jsonify({"error": "User not found"}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"user": user.to_dict()}), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_company
@require_permission("MANAGE_USERS")
def remove_user_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = user_management_service.remove_user(g.current_user, user_id, reason=payload.get("reason"))
    except TenantAccessError:
        return jsonify({"error": "User not found"}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"user": user.to_dict(), "message": "User removed"}), 200


@users_bp.post("/<int:user_id>/verify")
@require_auth
@require_company
@require_permission("MANAGE_USERS")
def verify_user_route(user_id: int):
    """Approve or reject a pending employee. Body: {approve, reason?}"""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    approve = payload.get("approve")
    if not isinstance(approve, bool):
        return jsonify({"error": "approve must be a boolean"}), 400

    try:
        user = user_management_service.verify_employee(g.current_user, user_id, approve, payload.get("reason"))
    except TenantAccessError:
        return jsonify({"error": "User not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"user": user.to_dict()}), 200


@users_bp.get("/audit-logs")
@require_auth
@require_company
@require_permission("VIEW_AUDIT_LOG")
def audit_logs_route():
    target_user_id = request.args.get("target_user_id", type=int)
    logs = user_management_service.list_audit_logs(g.company_id, target_user_id=target_user_id)
    return jsonify({"items": [log.to_dict() for log in logs], "count": len(logs)}), 200
