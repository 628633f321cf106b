# Overview: Service-layer operations for the document store; encapsulates business logic and database work.

"""
Document Store Service

The "documents" bind holds denormalized JSON documents: an order copy,
analytics events, an entity audit trail and customer activity.

WHY: These records are append-heavy and schema-flexible. Writers add them
to the caller's session so they commit (or roll back) with the business
change they describe; readers are plain tenant-filtered queries.

MULTI-TENANT: Every document carries company_id. Readers always filter by it.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Order, OrderDocument, AnalyticsEvent, AuditLogEntry, CustomerActivity
from ..time_utils import utcnow


# -- Writers --

def record_analytics_event(
    event_type: str,
    *,
    company_id: int | None,
    user_id: int | None = None,
    data: dict | None = None,
    meta: dict | None = None,
) -> AnalyticsEvent:
    event = AnalyticsEvent(
        event_type=event_type,
        company_id=company_id,
        user_id=user_id,
        timestamp=utcnow(),
        data=data or {},
        meta=meta or {},
    )
    db.session.add(event)
    return event


def record_audit_entry(
    action: str,
    *,
    entity_type: str,
    entity_id: int | None,
    company_id: int | None,
    user_id: int | None = None,
    changes: dict | None = None,
) -> AuditLogEntry:
    entry = AuditLogEntry(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        company_id=company_id,
        user_id=user_id,
        changes=changes or {},
        timestamp=utcnow(),
    )
    db.session.add(entry)
    return entry


def record_customer_activity(
    activity_type: str,
    *,
    customer_id: int,
    company_id: int | None,
    description: str | None = None,
    meta: dict | None = None,
) -> CustomerActivity:
    activity = CustomerActivity(
        customer_id=customer_id,
        company_id=company_id,
        activity_type=activity_type,
        description=description,
        meta=meta or {},
        timestamp=utcnow(),
    )
    db.session.add(activity)
    return activity


def upsert_order_document(order: Order) -> OrderDocument:
    """
    Refresh the denormalized copy of an order (one document per order_id).

    Call after the order and its items are flushed so ids exist.
    """
    doc = db.session.query(OrderDocument).filter_by(order_id=order.id).first()
    now = utcnow()
    if doc is None:
        doc = OrderDocument(order_id=order.id, created_at=now)
        db.session.add(doc)

    doc.company_id = order.company_id
    doc.customer_company_id = order.customer_company_id
    doc.customer_id = order.customer_id
    doc.items = [
        {
            "product_id": item.product_id,
            "product_name": item.product.name if item.product else None,
            "quantity": str(item.quantity),
            "unit_price": str(item.unit_price),
            "discount": str(item.discount),
        }
        for item in order.items
    ]
    doc.status = order.status
    doc.payment_status = order.payment_status
    doc.payment_method = order.payment_method
    doc.delivery_address = order.delivery_address
    doc.meta = dict(order.meta or {})
    doc.updated_at = now
    return doc


# -- Readers --

def get_order_document(order_id: int) -> OrderDocument | None:
    return db.session.query(OrderDocument).filter_by(order_id=order_id).first()


def list_audit_entries(
    company_id: int,
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    limit: int = 100,
) -> list[AuditLogEntry]:
    query = db.session.query(AuditLogEntry).filter(AuditLogEntry.company_id == company_id)
    if entity_type:
        query = query.filter(AuditLogEntry.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLogEntry.entity_id == entity_id)
    return query.order_by(AuditLogEntry.timestamp.desc(), AuditLogEntry.id.desc()).limit(limit).all()


def list_analytics_events(
    company_id: int,
    *,
    event_type: str | None = None,
    since=None,
    until=None,
    limit: int = 100,
) -> dict:
    """
    Events for a company plus a per-type count summary over the same window.
    """
    query = db.session.query(AnalyticsEvent).filter(AnalyticsEvent.company_id == company_id)
    if since is not None:
        query = query.filter(AnalyticsEvent.timestamp >= since)
    if until is not None:
        query = query.filter(AnalyticsEvent.timestamp <= until)

    summary_rows = (
        query.with_entities(AnalyticsEvent.event_type, db.func.count(AnalyticsEvent.id))
        .group_by(AnalyticsEvent.event_type)
        .all()
    )

    if event_type:
        query = query.filter(AnalyticsEvent.event_type == event_type)

    events = query.order_by(AnalyticsEvent.timestamp.desc(), AnalyticsEvent.id.desc()).limit(limit).all()

    return {
        "events": [e.to_dict() for e in events],
        "summary": {row[0]: row[1] for row in summary_rows},
    }


def list_customer_activity(customer_id: int, *, company_id: int | None = None, limit: int = 100) -> list[CustomerActivity]:
    query = db.session.query(CustomerActivity).filter(CustomerActivity.customer_id == customer_id)
    if company_id is not None:
        query = query.filter(CustomerActivity.company_id == company_id)
    return query.order_by(CustomerActivity.timestamp.desc(), CustomerActivity.id.desc()).limit(limit).all()
