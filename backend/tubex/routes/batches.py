# Overview: Flask API routes for batches; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import batch_service
from ..services.pagination import parse_pagination, paginate
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission

batches_bp = Blueprint("batches", __name__, url_prefix="/api/v1/batches")


@batches_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def list_batches_route():
    """Query: warehouse_id, product_id, status, expiring_days, page, limit (default 50)."""
    try:
        page, limit = parse_pagination(request.args, default_limit=50)
        query = batch_service.list_batches_query(
            g.company_id,
            warehouse_id=request.args.get("warehouse_id", type=int),
            product_id=request.args.get("product_id", type=int),
            status=request.args.get("status"),
            expiring_days=request.args.get("expiring_days", type=int),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(paginate(query, page, limit)), 200


@batches_bp.get("/stats")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def batch_stats_route():
    return jsonify(batch_service.batch_stats(g.company_id)), 200


@batches_bp.get("/<int:batch_id>")
@require_auth
@require_company
@require_permission("VIEW_INVENTORY")
def get_batch_route(batch_id: int):
    try:
        batch = batch_service.get_batch(g.company_id, batch_id)
    except TenantAccessError:
        return jsonify({"error": "Batch not found"}), 404
    return jsonify({"batch": batch.to_dict()}), 200


@batches_bp.post("")
@require_auth
@require_company
@require_permission("MANAGE_BATCHES")
def create_batch_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        batch = batch_service.create_batch(g.company_id, payload)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"batch": batch.to_dict()}), 201


@batches_bp.put("/<int:batch_id>")
@require_auth
@require_company
@require_permission("MANAGE_BATCHES")
def update_batch_route(batch_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        batch = batch_service.update_batch(g.company_id, batch_id, payload)
    except TenantAccessError:
        return jsonify({"error": "Batch not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"batch": batch.to_dict()}), 200


@batches_bp.delete("/<int:batch_id>")
@require_auth
@require_company
@require_permission("MANAGE_BATCHES")
def delete_batch_route(batch_id: int):
    """Soft delete (status -> inactive)."""
    try:
        batch = batch_service.deactivate_batch(g.company_id, batch_id)
    except TenantAccessError:
        return jsonify({"error": "Batch not found"}), 404
    return jsonify({"batch": batch.to_dict()}), 200
