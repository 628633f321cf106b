# Overview: Flask API routes for orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..services import order_service
from ..services.pagination import parse_pagination, paginate
from ..services.permission_service import PermissionDeniedError
from ..services.tenant_service import TenantAccessError, get_current_company
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission, require_any_permission

orders_bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")


@orders_bp.post("")
@require_auth
@require_company
@require_permission("CREATE_ORDERS")
def create_order_route():
    """
    Place an order with a single supplier.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 10, "discount": 0}],
        "delivery_address": {"street": "...", "city": "..."},
        "payment_method": "bank_transfer",
        "notes": "Deliver before noon"
    }

    Stock is allocated from the supplier's inventory when the order is placed.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        order = order_service.create_order(get_current_company(), g.current_user, payload)
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
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Inventory is busy, try again"}), 409
    return jsonify({"order": order.to_dict()}), 201


@orders_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_ORDERS")
def list_orders_route():
    """Query: direction (incoming|outgoing), status, payment_status, page, limit."""
    try:
        page, limit = parse_pagination(request.args)
        query = order_service.list_orders_query(
            g.company_id,
            direction=request.args.get("direction"),
            status=request.args.get("status"),
            payment_status=request.args.get("payment_status"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(paginate(query, page, limit, serialize=lambda o: o.to_dict(include_items=False))), 200


@orders_bp.get("/<int:order_id>")
@require_auth
@require_company
@require_permission("VIEW_ORDERS")
def get_order_route(order_id: int):
    try:
        order = order_service.get_visible_order(g.company_id, order_id)
    except TenantAccessError:
        return jsonify({"error": "Order not found"}), 404
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.get("/<int:order_id>/history")
@require_auth
@require_company
@require_permission("VIEW_ORDERS")
def order_history_route(order_id: int):
    try:
        entries = order_service.order_history(g.company_id, order_id)
    except TenantAccessError:
        return jsonify({"error": "Order not found"}), 404
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)}), 200


@orders_bp.put("/<int:order_id>")
@require_auth
@require_company
@require_permission("MANAGE_ORDERS")
def update_order_route(order_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        order = order_service.update_order(g.company_id, g.current_user, order_id, payload)
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Order not found"}), 404
    except PermissionDeniedError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except StaleDataError:
        db.session.rollback()
        return jsonify({"error": "Order was modified concurrently, reload and retry"}), 409
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/cancel")
@require_auth
@require_company
@require_any_permission("CREATE_ORDERS", "MANAGE_ORDERS")
def cancel_order_route(order_id: int):
    """Either party may cancel while the order is still pending; stock is restored."""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        order = order_service.cancel_order(g.company_id, g.current_user, order_id, payload.get("reason"))
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Order not found"}), 404
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except StaleDataError:
        db.session.rollback()
        return jsonify({"error": "Order was modified concurrently, reload and retry"}), 409
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/bulk-process")
@require_auth
@require_company
@require_permission("MANAGE_ORDERS")
def bulk_process_route():
    """
    Request body: {"order_ids": [1, 2], "status": "confirmed", "notes": "..."}

    Orders are processed independently; the response lists what succeeded
    and why the rest failed.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        result = order_service.bulk_process(
            g.company_id,
            g.current_user,
            payload.get("order_ids"),
            payload.get("status"),
            payload.get("notes"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    if not result["processed"]:
        return jsonify({"error": "No orders were processed", **result}), 400
    return jsonify(result), 200
