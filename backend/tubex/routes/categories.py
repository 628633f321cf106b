# Overview: Flask API routes for product categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import category_service
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission

categories_bp = Blueprint("categories", __name__, url_prefix="/api/v1/categories")


@categories_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_PRODUCTS")
def list_categories_route():
    categories = category_service.list_categories(g.company_id, parent_id=request.args.get("parent_id", type=int))
    return jsonify({"items": [c.to_dict() for c in categories], "count": len(categories)}), 200


@categories_bp.get("/tree")
@require_auth
@require_company
@require_permission("VIEW_PRODUCTS")
def category_tree_route():
    return jsonify({"items": category_service.category_tree(g.company_id)}), 200


@categories_bp.get("/<int:category_id>")
@require_auth
@require_company
@require_permission("VIEW_PRODUCTS")
def get_category_route(category_id: int):
    try:
        category = category_service.get_category(g.company_id, category_id)
    except TenantAccessError:
        return jsonify({"error": "Category not found"}), 404
    return jsonify({"category": category.to_dict()}), 200


@categories_bp.post("")
@require_auth
@require_company
@require_permission("MANAGE_CATEGORIES")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        category = category_service.create_category(g.company_id, payload)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"category": category.to_dict()}), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_company
@require_permission("MANAGE_CATEGORIES")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        category = category_service.update_category(g.company_id, category_id, payload)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"category": category.to_dict()}), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_company
@require_permission("MANAGE_CATEGORIES")
def delete_category_route(category_id: int):
    try:
        category_service.delete_category(g.company_id, category_id)
    except TenantAccessError:
        return jsonify({"error": "Category not found"}), 404
    return jsonify({"ok": True}), 200
