# Overview: Flask API routes for platform-admin company verification; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import verification_service
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError
from ..decorators import require_auth, require_permission

verification_bp = Blueprint("company_verification", __name__, url_prefix="/api/v1/company-verification")


@verification_bp.get("/pending")
@require_auth
@require_permission("VERIFY_COMPANIES")
def pending_companies_route():
    companies = verification_service.list_pending_companies()
    return jsonify({"items": [c.to_dict() for c in companies], "count": len(companies)}), 200


@verification_bp.post("/<int:company_id>/verify")
@require_auth
@require_permission("VERIFY_COMPANIES")
def verify_company_route(company_id: int):
    """Body: {approve: bool, reason?} (reason required when rejecting)."""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        company = verification_service.verify_company(
            g.current_user, company_id, payload.get("approve"), payload.get("reason"),
        )
    except TenantAccessError:
        return jsonify({"error": "Company not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"company": company.to_dict()}), 200


@verification_bp.post("/<int:company_id>/status")
@require_auth
@require_permission("VERIFY_COMPANIES")
def company_status_route(company_id: int):
    """Body: {status: active|suspended, reason?}"""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        company = verification_service.set_company_status(
            g.current_user, company_id, payload.get("status"), payload.get("reason"),
        )
    except TenantAccessError:
        return jsonify({"error": "Company not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"company": company.to_dict()}), 200
