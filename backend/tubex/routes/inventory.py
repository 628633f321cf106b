# Overview: Flask API routes for inventory; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..services import inventory_service
from ..services.pagination import parse_pagination, paginate
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/v1/inventory")


def _list_response(company_id: int):
    try:
        page, limit = parse_pagination(request.args)
        query = inventory_service.list_inventory_query(
            company_id,
            warehouse_id=request.args.get("warehouse_id", type=int),
            product_id=request.args.get("product_id", type=int),
            status=request.args.get("status"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(paginate(query, page, limit)), 200


@inventory_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def list_inventory_route():
    return _list_response(g.company_id)


@inventory_bp.get("/company/<int:company_id>")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def list_company_inventory_route(company_id: int):
    """Stock levels are private; another company's id reads as not found."""
    if company_id != g.company_id:
        return jsonify({"error": "Company not found"}), 404
    return _list_response(company_id)


@inventory_bp.get("/low-stock")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def low_stock_route():
    items = inventory_service.low_stock_items(g.company_id)
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)}), 200


@inventory_bp.get("/expiring-batches")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def expiring_batches_route():
    days = request.args.get("days", default=inventory_service.DEFAULT_EXPIRY_WINDOW_DAYS, type=int)
    try:
        batches = inventory_service.expiring_batches(g.company_id, days)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [b.to_dict() for b in batches], "count": len(batches), "days": days}), 200


@inventory_bp.get("/<int:inventory_id>")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def get_inventory_route(inventory_id: int):
    try:
        item = inventory_service.get_inventory(g.company_id, inventory_id)
    except TenantAccessError:
        return jsonify({"error": "Inventory item not found"}), 404
    return jsonify({"inventory": item.to_dict()}), 200


@inventory_bp.post("")
@require_auth
@require_company
@require_permission("MANAGE_INVENTORY")
def create_inventory_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        item = inventory_service.create_inventory(g.company_id, g.current_user, payload)
    except TenantAccessError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    return jsonify({"inventory": item.to_dict()}), 201


@inventory_bp.put("/<int:inventory_id>")
@require_auth
@require_company
@require_permission("MANAGE_INVENTORY")
def update_inventory_route(inventory_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        item = inventory_service.update_inventory(g.company_id, inventory_id, payload)
    except TenantAccessError:
        return jsonify({"error": "Inventory item not found"}), 404
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    return jsonify({"inventory": item.to_dict()}), 200


@inventory_bp.delete("/<int:inventory_id>")
@require_auth
@require_company
@require_permission("MANAGE_INVENTORY")
def delete_inventory_route(inventory_id: int):
    try:
        inventory_service.delete_inventory(g.company_id, inventory_id)
    except TenantAccessError:
        return jsonify({"error": "Inventory item not found"}), 404
    return jsonify({"ok": True}), 200


@inventory_bp.post("/<int:inventory_id>/adjust")
@require_auth
@require_company
@require_permission("ADJUST_INVENTORY")
def adjust_inventory_route(inventory_id: int):
    """
    Apply a signed quantity change.

    Request body:
    {
        "adjustment": -5,
        "reason": "damaged",
        "batch_number": "B-001"      // optional, positive adjustments only
    }
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        result = inventory_service.adjust_inventory(g.company_id, g.current_user, inventory_id, payload)
    except TenantAccessError:
        return jsonify({"error": "Inventory item not found"}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except (OperationalError, StaleDataError):
        db.session.rollback()
        current_app.logger.exception("Failed to adjust inventory %s", inventory_id)
        return jsonify({"error": "Inventory is busy, try again"}), 409
    return jsonify({"inventory": result}), 200


@inventory_bp.post("/transfer")
@require_auth
@require_company
@require_permission("TRANSFER_INVENTORY")
def transfer_inventory_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        result = inventory_service.transfer_inventory(g.company_id, g.current_user, payload)
    except TenantAccessError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except (OperationalError, StaleDataError):
        db.session.rollback()
        current_app.logger.exception("Failed to transfer inventory")
        return jsonify({"error": "Inventory is busy, try again"}), 409
    return jsonify(result), 200
