# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/tubex/routes/products.py
"""
Product catalog routes with multi-tenant support.

MULTI-TENANT: Every tenant browses the shared catalog of active suppliers.
Writes are limited to the supplier that owns the product.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Write operations require MANAGE_PRODUCTS permission and a supplier company
"""
from flask import Blueprint, request, jsonify, g

from ..services import products_service
from ..services.pagination import parse_pagination, paginate
from ..services.permission_service import PermissionDeniedError
from ..services.tenant_service import TenantAccessError, get_current_company
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission

products_bp = Blueprint("products", __name__, url_prefix="/api/v1/products")


@products_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_PRODUCTS")
def list_products_route():
    """
    Query params:
    - search: matches name or description
    - status: active (default) | inactive (own products only)
    - supplier_id, category_id
    - page (default 1), limit (default 10, max 100)
    """
    try:
        page, limit = parse_pagination(request.args)
        query = products_service.catalog_query(
            g.company_id,
            search=request.args.get("search"),
            status=request.args.get("status") or "active",
            supplier_id=request.args.get("supplier_id", type=int),
            category_id=request.args.get("category_id", type=int),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(paginate(query, page, limit)), 200


@products_bp.get("/<int:product_id>")
@require_auth
@require_company
@require_permission("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    try:
        product = products_service.get_visible_product(g.company_id, product_id)
    except TenantAccessError:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product.to_dict()}), 200


@products_bp.post("")
@require_auth
@require_company
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        product = products_service.create_product(get_current_company(), payload)
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"product": product.to_dict()}), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_company
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        product = products_service.update_product(get_current_company(), product_id, payload)
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_company
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """Soft delete (status -> inactive)."""
    try:
        product = products_service.deactivate_product(get_current_company(), product_id)
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except TenantAccessError:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product.to_dict()}), 200


@products_bp.post("/bulk-status")
@require_auth
@require_company
@require_permission("MANAGE_PRODUCTS")
def bulk_status_route():
    """Body: {product_ids: [...], status: active|inactive}"""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        updated = products_service.bulk_update_status(
            get_current_company(), payload.get("product_ids"), payload.get("status"),
        )
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"updated": updated}), 200
