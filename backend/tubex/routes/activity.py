# Overview: Read-only routes over the document store (audit trail, analytics, customer activity, order snapshots).

from flask import Blueprint, request, jsonify, g

from ..extensions import db
from ..models import User, Order
from ..services import document_service, order_service
from ..services.tenant_service import TenantAccessError
from ..time_utils import parse_iso_datetime
from ..decorators import require_auth, require_company, require_permission

activity_bp = Blueprint("activity", __name__, url_prefix="/api/v1/activity")

MAX_ACTIVITY_LIMIT = 500


def _limit_arg(default: int = 100) -> int:
    limit = request.args.get("limit", default=default, type=int)
    return max(1, min(limit, MAX_ACTIVITY_LIMIT))


@activity_bp.get("/audit")
@require_auth
@require_company
@require_permission("VIEW_AUDIT_LOG")
def audit_trail_route():
    """Query: entity_type, entity_id, limit."""
    entries = document_service.list_audit_entries(
        g.company_id,
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id", type=int),
        limit=_limit_arg(),
    )
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)}), 200


@activity_bp.get("/analytics")
@require_auth
@require_company
@require_permission("VIEW_ANALYTICS")
def analytics_route():
    """Query: event_type, since, until (ISO-8601), limit."""
    try:
        since = parse_iso_datetime(request.args.get("since"))
        until = parse_iso_datetime(request.args.get("until"))
    except ValueError:
        return jsonify({"error": "since and until must be ISO-8601 datetimes"}), 400
    if since and until and since > until:
        return jsonify({"error": "since must be before until"}), 400

    result = document_service.list_analytics_events(
        g.company_id,
        event_type=request.args.get("event_type"),
        since=since,
        until=until,
        limit=_limit_arg(),
    )
    return jsonify(result), 200


@activity_bp.get("/customers/<int:user_id>")
@require_auth
@require_company
@require_permission("VIEW_ANALYTICS")
def customer_activity_route(user_id: int):
    """
    Activity of one ordering user.

    MULTI-TENANT: own employees show everything; a customer who ordered
    from this company shows only activity recorded against this company.
    Anyone else reads as not found.
    """
    user = db.session.get(User, user_id)
    if user is None:
        return jsonify({"error": "User not found"}), 404

    if user.company_id == g.company_id:
        scope = None
    else:
        ordered_here = db.session.query(Order.id).filter(
            Order.company_id == g.company_id,
            Order.customer_id == user_id,
        ).first()
        if ordered_here is None:
            return jsonify({"error": "User not found"}), 404
        scope = g.company_id

    activities = document_service.list_customer_activity(user_id, company_id=scope, limit=_limit_arg())
    return jsonify({"items": [a.to_dict() for a in activities], "count": len(activities)}), 200


@activity_bp.get("/orders/<int:order_id>/document")
@require_auth
@require_company
@require_permission("VIEW_ORDERS")
def order_document_route(order_id: int):
    try:
        order_service.get_visible_order(g.company_id, order_id)
    except TenantAccessError:
        return jsonify({"error": "Order not found"}), 404

    document = document_service.get_order_document(order_id)
    if document is None:
        return jsonify({"error": "Order document not found"}), 404
    return jsonify({"document": document.to_dict()}), 200
