# Overview: Flask API routes for invoices; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..services import invoice_service
from ..services.pagination import parse_pagination, paginate
from ..services.permission_service import PermissionDeniedError
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_company, require_permission

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/v1/invoices")


def _json_object():
    payload = request.get_json(silent=True)
    if payload is None and not request.get_data():
        return {}
    return payload


@invoices_bp.post("/from-order/<int:order_id>")
@require_auth
@require_company
@require_permission("MANAGE_INVOICES")
def create_invoice_route(order_id: int):
    """
    Draft an invoice for an incoming order.

    Request body (all optional):
    {
        "payment_term": "net30",
        "issue_date": "2026-10-19",
        "due_date": "2026-11-18",
        "billing_address": {"street": "...", "city": "..."},
        "notes": "..."
    }
    """
    payload = _json_object()
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        invoice = invoice_service.create_from_order(g.company_id, g.current_user, order_id, payload)
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
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "An invoice already exists for this order"}), 409
    return jsonify({"invoice": invoice.to_dict()}), 201


@invoices_bp.get("")
@require_auth
@require_company
@require_permission("VIEW_BILLING")
def list_invoices_route():
    """Query: direction (issued|received), status, order_id, page, limit."""
    try:
        page, limit = parse_pagination(request.args)
        query = invoice_service.list_invoices_query(
            g.company_id,
            direction=request.args.get("direction"),
            status=request.args.get("status"),
            order_id=request.args.get("order_id"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(paginate(query, page, limit, serialize=lambda i: i.to_dict(include_items=False))), 200


@invoices_bp.get("/<int:invoice_id>")
@require_auth
@require_company
@require_permission("VIEW_BILLING")
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_visible_invoice(g.company_id, invoice_id)
    except TenantAccessError:
        return jsonify({"error": "Invoice not found"}), 404
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.put("/<int:invoice_id>")
@require_auth
@require_company
@require_permission("MANAGE_INVOICES")
def update_invoice_route(invoice_id: int):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        invoice = invoice_service.update_invoice(g.company_id, g.current_user, invoice_id, payload)
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Invoice not found"}), 404
    except PermissionDeniedError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.post("/<int:invoice_id>/send")
@require_auth
@require_company
@require_permission("MANAGE_INVOICES")
def send_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.send_invoice(g.company_id, g.current_user, invoice_id)
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Invoice not found"}), 404
    except PermissionDeniedError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.post("/<int:invoice_id>/void")
@require_auth
@require_company
@require_permission("MANAGE_INVOICES")
def void_invoice_route(invoice_id: int):
    """Request body: {"reason": "Order renegotiated"}"""
    payload = _json_object()
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        invoice = invoice_service.void_invoice(g.company_id, g.current_user, invoice_id, payload.get("reason"))
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Invoice not found"}), 404
    except PermissionDeniedError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.post("/<int:invoice_id>/payments")
@require_auth
@require_company
@require_permission("MANAGE_PAYMENTS")
def record_invoice_payment_route(invoice_id: int):
    """Same body as POST /api/v1/payments, without order_id."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        payment, balance = invoice_service.record_invoice_payment(
            g.company_id, g.current_user, invoice_id, payload
        )
    except TenantAccessError:
        db.session.rollback()
        return jsonify({"error": "Invoice not found"}), 404
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
        current_app.logger.exception("Failed to record invoice payment")
        return jsonify({"error": "Order was modified concurrently, reload and retry"}), 409
    invoice = invoice_service.get_visible_invoice(g.company_id, invoice_id)
    return jsonify({"payment": payment.to_dict(), "balance": balance, "invoice": invoice.to_dict()}), 201
