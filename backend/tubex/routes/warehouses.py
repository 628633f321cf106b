# Overview: Flask API routes for warehouses; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import warehouse_service
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission

warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/v1/warehouses")


@warehouses_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def list_warehouses_route():
    warehouses = warehouse_service.list_warehouses(
        g.company_id,
        warehouse_type=request.args.get("type"),
        status=request.args.get("status"),
    )
    return jsonify({"items": [w.to_dict() for w in warehouses], "count": len(warehouses)}), 200


@warehouses_bp.get("/<int:warehouse_id>")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def get_warehouse_route(warehouse_id: int):
    try:
        warehouse = warehouse_service.get_warehouse(g.company_id, warehouse_id)
    except TenantAccessError:
        return jsonify({"error": "Warehouse not found"}), 404
    return jsonify({"warehouse": warehouse.to_dict()}), 200


@warehouses_bp.get("/<int:warehouse_id>/capacity")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def warehouse_capacity_route(warehouse_id: int):
    try:
        report = warehouse_service.warehouse_capacity(g.company_id, warehouse_id)
    except TenantAccessError:
        return jsonify({"error": "Warehouse not found"}), 404
    return jsonify(report), 200


@warehouses_bp.post("")
@require_auth
@require_company
@require_permission("MANAGE_WAREHOUSES")
def create_warehouse_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        warehouse = warehouse_service.create_warehouse(g.company_id, payload)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"warehouse": warehouse.to_dict()}), 201


@warehouses_bp.put("/<int:warehouse_id>")
@require_auth
@require_company
@require_permission("MANAGE_WAREHOUSES")
def update_warehouse_route(warehouse_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        warehouse = warehouse_service.update_warehouse(g.company_id, warehouse_id, payload)
    except TenantAccessError:
        return jsonify({"error": "Warehouse not found"}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"warehouse": warehouse.to_dict()}), 200


@warehouses_bp.delete("/<int:warehouse_id>")
@require_auth
@require_company
@require_permission("MANAGE_WAREHOUSES")
def delete_warehouse_route(warehouse_id: int):
    try:
        warehouse_service.delete_warehouse(g.company_id, warehouse_id)
    except TenantAccessError:
        return jsonify({"error": "Warehouse not found"}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"ok": True}), 200
