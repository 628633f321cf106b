# Overview: Flask API routes for payments; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..services import payment_service
from ..services.pagination import parse_pagination, paginate
from ..services.permission_service import PermissionDeniedError
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission

payments_bp = Blueprint("payments", __name__, url_prefix="/api/v1/payments")


@payments_bp.post("")
@require_auth
@require_company
@require_permission("MANAGE_PAYMENTS")
def record_payment_route():
    """
    Record money received for (or refunded on) an incoming order.

    Request body:
    {
        "order_id": 12,
        "amount": 500000,
        "method": "bank_transfer",
        "payment_type": "payment",
        "transaction_id": "VCB-20261019-001",
        "external_reference": "FT2629...",
        "payment_date": "2026-10-19T08:00:00Z"
    }

    The order's payment_status follows from the recorded payments.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        payment, balance = payment_service.record_payment(g.company_id, g.current_user, payload)
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Order not found"}), 404
    except PermissionDeniedError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except (OperationalError, StaleDataError):
        db.session.rollback()
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Order was modified concurrently, reload and retry"}), 409
    return jsonify({"payment": payment.to_dict(), "balance": balance}), 201


@payments_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_BILLING")
def list_payments_route():
    """Query: order_id, invoice_id, method, payment_type, status, reconciliation_status, since, until, page, limit."""
    try:
        page, limit = parse_pagination(request.args)
        query = payment_service.list_payments_query(
            g.company_id,
            order_id=request.args.get("order_id"),
            invoice_id=request.args.get("invoice_id"),
            method=request.args.get("method"),
            payment_type=request.args.get("payment_type"),
            status=request.args.get("status"),
            reconciliation_status=request.args.get("reconciliation_status"),
            since=request.args.get("since"),
            until=request.args.get("until"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(paginate(query, page, limit, serialize=lambda p: p.to_dict())), 200


@payments_bp.get("/<int:payment_id>")
@require_auth
@require_company
@require_permission("VIEW_BILLING")
def get_payment_route(payment_id: int):
    try:
        payment = payment_service.get_visible_payment(g.company_id, payment_id)
    except TenantAccessError:
        return jsonify({"error": "Payment not found"}), 404
    return jsonify({"payment": payment.to_dict()}), 200


@payments_bp.post("/<int:payment_id>/void")
@require_auth
@require_company
@require_permission("MANAGE_PAYMENTS")
def void_payment_route(payment_id: int):
    """Request body: {"reason": "Entered twice"}"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        payment, balance = payment_service.void_payment(
            g.company_id, g.current_user, payment_id, payload.get("reason")
        )
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Payment not found"}), 404
    except PermissionDeniedError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except StaleDataError:
        db.session.rollback()
        return jsonify({"error": "Order was modified concurrently, reload and retry"}), 409
    return jsonify({"payment": payment.to_dict(), "balance": balance}), 200


@payments_bp.post("/<int:payment_id>/reconcile")
@require_auth
@require_company
@require_permission("MANAGE_PAYMENTS")
def reconcile_payment_route(payment_id: int):
    """Request body: {"reconciliation_status": "reconciled", "notes": "Matched bank statement"}"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        payment = payment_service.reconcile_payment(g.company_id, g.current_user, payment_id, payload)
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Payment not found"}), 404
    except PermissionDeniedError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    return jsonify({"payment": payment.to_dict()}), 200


@payments_bp.get("/orders/<int:order_id>/balance")
@require_auth
@require_company
@require_permission("VIEW_BILLING")
def order_balance_route(order_id: int):
    try:
        balance = payment_service.get_order_balance(g.company_id, order_id)
    except TenantAccessError:
        return jsonify({"error": "Order not found"}), 404
    return jsonify({"balance": balance}), 200
