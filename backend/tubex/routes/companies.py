# Overview: Flask API routes for the company directory and own profile; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import company_service
from ..services.pagination import parse_pagination, paginate
from ..services.tenant_service import TenantAccessError, get_current_company
from ..validation import ValidationError
from ..decorators import require_auth, require_company, require_permission

companies_bp = Blueprint("companies", __name__, url_prefix="/api/v1/companies")


def _serialize_for_viewer(company) -> dict:
    if company.id == g.company_id:
        return company.to_dict()
    return company.to_public_dict()


@companies_bp.get("")
@require_auth
def list_companies_route():
    """Query: search, type, status (default active), page, limit."""
    try:
        page, limit = parse_pagination(request.args)
        query = company_service.search_companies(
            search=request.args.get("search"),
            company_type=request.args.get("type"),
            status=request.args.get("status", "active"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(paginate(query, page, limit, serialize=_serialize_for_viewer)), 200


@companies_bp.get("/suppliers")
@require_auth
def list_suppliers_route():
    companies = company_service.list_active_by_type("supplier")
    return jsonify({"items": [c.to_public_dict() for c in companies], "count": len(companies)}), 200


@companies_bp.get("/dealers")
@require_auth
def list_dealers_route():
    companies = company_service.list_active_by_type("dealer")
    return jsonify({"items": [c.to_public_dict() for c in companies], "count": len(companies)}), 200


@companies_bp.get("/me")
@require_auth
@require_company
def my_company_route():
    try:
        company = get_current_company()
    except TenantAccessError:
        return jsonify({"error": "Company not found"}), 404
    return jsonify({"company": company.to_dict()}), 200


@companies_bp.put("/me")
@require_auth
@require_company
@require_permission("MANAGE_COMPANY")
def update_my_company_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        company = company_service.update_company_profile(get_current_company(), payload)
    except TenantAccessError:
        return jsonify({"error": "Company not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"company": company.to_dict()}), 200


@companies_bp.get("/<int:company_id>")
@require_auth
def get_company_route(company_id: int):
    try:
        company = company_service.get_visible_company(company_id, g.company_id)
    except TenantAccessError:
        return jsonify({"error": "Company not found"}), 404
    return jsonify({"company": _serialize_for_viewer(company)}), 200


@companies_bp.post("/batch")
@require_auth
def companies_batch_route():
    """Body: {ids: [..]}. Unknown or inactive ids are skipped."""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        companies = company_service.get_companies_batch(payload.get("ids"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [_serialize_for_viewer(c) for c in companies], "count": len(companies)}), 200
