# Overview: Service-layer operations for invoices; encapsulates business logic and database work.

"""
Invoice Service

The supplier drafts an invoice from one of its orders, edits the draft,
sends it to the customer company and records payments against it. An
order has at most one invoice; voiding an invoice frees the order for a
fresh one only through the database (the unique order_id stays).

LIFECYCLE:
    draft -> sent -> partially_paid -> paid
    sent | partially_paid -> overdue (past due_date, see mark_overdue_invoices)
    draft | sent | overdue -> void (only while nothing is paid)

MULTI-TENANT: drafts are visible to the supplier only. Sent invoices are
visible to both parties; only the supplier changes them.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal

from ..extensions import db
from ..models import Invoice, InvoiceItem, Order, User
from ..models.enums import INVOICE_STATUSES, PAYMENT_TERMS
from ..numeric_utils import quantize_money
from ..time_utils import today, utcnow, to_utc_z, parse_iso_date
from ..validation import ValidationError, ConflictError, parse_positive_int
from .document_service import record_analytics_event, record_audit_entry, record_customer_activity
from .payment_service import record_payment, sync_order_payments, derive_invoice_status, ledger_totals
from .permission_service import PermissionDeniedError
from .tenant_service import TenantAccessError

logger = logging.getLogger(__name__)

TERM_DAYS = {
    "immediate": 0,
    "net7": 7,
    "net15": 15,
    "net30": 30,
    "net45": 45,
    "net60": 60,
    "net90": 90,
}


def due_date_for(issue_date, payment_term: str):
    return issue_date + timedelta(days=TERM_DAYS[payment_term])


def invoice_number_for(order: Order, issue_date) -> str:
    return f"INV-{issue_date:%Y%m}-{order.id:06d}"


# -- Reads --

def _visible_filter(company_id: int):
    return db.or_(
        Invoice.company_id == company_id,
        db.and_(Invoice.customer_company_id == company_id, Invoice.status != "draft"),
    )


def list_invoices_query(company_id: int, *, direction: str | None = None, status: str | None = None, order_id=None):
    """issued: caller is the supplier; received: caller is the customer (drafts hidden)."""
    query = db.session.query(Invoice)
    if direction == "issued":
        query = query.filter(Invoice.company_id == company_id)
    elif direction == "received":
        query = query.filter(Invoice.customer_company_id == company_id, Invoice.status != "draft")
    elif direction in (None, ""):
        query = query.filter(_visible_filter(company_id))
    else:
        raise ValidationError("direction must be one of: issued, received")

    if status:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(INVOICE_STATUSES)}")
        query = query.filter(Invoice.status == status)
    if order_id not in (None, ""):
        query = query.filter(Invoice.order_id == parse_positive_int(order_id, "order_id"))

    return query.order_by(Invoice.created_at.desc(), Invoice.id.desc())


def get_visible_invoice(company_id: int, invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise TenantAccessError("Invoice not found")
    if invoice.company_id == company_id:
        return invoice
    if invoice.customer_company_id == company_id and invoice.status != "draft":
        return invoice
    raise TenantAccessError("Invoice not found")


def _own_invoice(company_id: int, invoice_id: int) -> Invoice:
    invoice = get_visible_invoice(company_id, invoice_id)
    if invoice.company_id != company_id:
        raise PermissionDeniedError("Only the issuing supplier can change this invoice")
    return invoice


# -- Writes --

def _parse_terms(payload: dict, issue_date) -> dict:
    fields = {}
    if "payment_term" in payload:
        term = payload.get("payment_term")
        if term not in PAYMENT_TERMS:
            raise ValidationError(f"payment_term must be one of: {', '.join(PAYMENT_TERMS)}")
        fields["payment_term"] = term

    if payload.get("due_date") not in (None, ""):
        try:
            due = parse_iso_date(payload["due_date"])
        except (AttributeError, TypeError, ValueError):
            raise ValidationError("due_date must be an ISO-8601 date")
        if due < issue_date:
            raise ValidationError("due_date cannot be before issue_date")
        fields["due_date"] = due

    if "billing_address" in payload:
        address = payload.get("billing_address")
        if address is not None and not isinstance(address, dict):
            raise ValidationError("billing_address must be an object")
        fields["billing_address"] = address

    if "notes" in payload:
        fields["notes"] = payload.get("notes")
    return fields


def create_from_order(company_id: int, user: User, order_id: int, payload: dict) -> Invoice:
    """
    Draft an invoice from an incoming order.

    payload: {payment_term?, issue_date?, due_date?, billing_address?, notes?}
    Lines and total are copied from the order; billing_address defaults to
    the order's delivery address.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    order = db.session.get(Order, order_id)
    if order is None or company_id not in (order.company_id, order.customer_company_id):
        raise TenantAccessError("Order not found")
    if order.company_id != company_id:
        raise PermissionDeniedError("Only the supplier can invoice an order")
    if order.status == "cancelled":
        raise ValidationError("Cannot invoice a cancelled order")

    existing = db.session.query(Invoice).filter(Invoice.order_id == order.id).first()
    if existing is not None:
        raise ConflictError(f"Invoice {existing.invoice_number} already exists for this order")

    try:
        issue_date = parse_iso_date(payload.get("issue_date")) or today()
    except (AttributeError, TypeError, ValueError):
        raise ValidationError("issue_date must be an ISO-8601 date")

    terms = _parse_terms(payload, issue_date)
    payment_term = terms.get("payment_term", "net30")

    invoice = Invoice(
        company_id=order.company_id,
        customer_company_id=order.customer_company_id,
        order_id=order.id,
        invoice_number=invoice_number_for(order, issue_date),
        status="draft",
        payment_term=payment_term,
        issue_date=issue_date,
        due_date=terms.get("due_date") or due_date_for(issue_date, payment_term),
        total_amount=order.total_amount,
        paid_amount=Decimal("0"),
        billing_address=terms.get("billing_address") or order.delivery_address,
        notes=terms.get("notes"),
        meta={"created_from_order": order.id},
        created_by_id=user.id,
    )
    for item in order.items:
        invoice.items.append(InvoiceItem(
            product_id=item.product_id,
            description=item.product.name if item.product else f"Product #{item.product_id}",
            quantity=item.quantity,
            unit_price=item.unit_price,
            discount=item.discount,
            line_total=quantize_money(item.line_total),
        ))
    db.session.add(invoice)
    db.session.flush()

    # Payments taken before the invoice existed count toward it
    sync_order_payments(order)
    record_audit_entry(
        "invoice_created",
        entity_type="invoice",
        entity_id=invoice.id,
        company_id=company_id,
        user_id=user.id,
        changes={"order_id": order.id, "invoice_number": invoice.invoice_number,
                 "total_amount": str(invoice.total_amount)},
    )
    db.session.commit()

    logger.info("Invoice %s drafted for order %s by user %s", invoice.invoice_number, order.id, user.id)
    return invoice


def update_invoice(company_id: int, user: User, invoice_id: int, payload: dict) -> Invoice:
    """Drafts only: {payment_term?, due_date?, billing_address?, notes?}."""
    invoice = _own_invoice(company_id, invoice_id)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if invoice.status != "draft":
        raise ValidationError("Only draft invoices can be edited")

    fields = _parse_terms(payload, invoice.issue_date)
    if not fields:
        raise ValidationError("Provide payment_term, due_date, billing_address or notes")

    if "payment_term" in fields and "due_date" not in fields:
        fields["due_date"] = due_date_for(invoice.issue_date, fields["payment_term"])
    for key, value in fields.items():
        setattr(invoice, key, value)

    record_audit_entry(
        "invoice_updated",
        entity_type="invoice",
        entity_id=invoice.id,
        company_id=company_id,
        user_id=user.id,
        changes={k: str(v) if v is not None and not isinstance(v, dict) else v for k, v in fields.items()},
    )
    db.session.commit()
    return invoice


def send_invoice(company_id: int, user: User, invoice_id: int) -> Invoice:
    """Issue a draft to the customer (or re-send an open one)."""
    invoice = _own_invoice(company_id, invoice_id)
    if invoice.status not in ("draft", "sent", "overdue"):
        raise ValidationError(f"Invoice with status {invoice.status} cannot be sent")

    previous = invoice.status
    if invoice.status == "draft":
        invoice.status = "sent"
    paid, refunded = ledger_totals(invoice.order_id)
    invoice.status = derive_invoice_status(invoice, paid - refunded)

    meta = dict(invoice.meta or {})
    meta["sent_at"] = to_utc_z(utcnow())
    meta["sent_by"] = user.id
    meta["send_count"] = meta.get("send_count", 0) + 1
    invoice.meta = meta

    record_audit_entry(
        "invoice_sent",
        entity_type="invoice",
        entity_id=invoice.id,
        company_id=company_id,
        user_id=user.id,
        changes={"status": {"from": previous, "to": invoice.status}},
    )
    record_analytics_event(
        "invoice_sent",
        company_id=company_id,
        user_id=user.id,
        data={"invoice_id": invoice.id, "order_id": invoice.order_id, "total_amount": str(invoice.total_amount)},
    )
    if invoice.order is not None and invoice.order.customer_id is not None:
        record_customer_activity(
            "invoice_received",
            customer_id=invoice.order.customer_id,
            company_id=company_id,
            description=f"Invoice {invoice.invoice_number} issued",
            meta={"invoice_id": invoice.id, "order_id": invoice.order_id},
        )
    db.session.commit()
    return invoice


def void_invoice(company_id: int, user: User, invoice_id: int, reason: str | None) -> Invoice:
    invoice = _own_invoice(company_id, invoice_id)
    if invoice.status == "void":
        raise ValidationError("Invoice is already void")
    if invoice.paid_amount > 0:
        raise ValidationError("Refund the payments before voiding a paid invoice")

    previous = invoice.status
    invoice.status = "void"
    meta = dict(invoice.meta or {})
    meta["voided_at"] = to_utc_z(utcnow())
    meta["void_reason"] = reason
    invoice.meta = meta

    record_audit_entry(
        "invoice_voided",
        entity_type="invoice",
        entity_id=invoice.id,
        company_id=company_id,
        user_id=user.id,
        changes={"status": {"from": previous, "to": "void"}, "reason": reason},
    )
    db.session.commit()
    return invoice


def record_invoice_payment(company_id: int, user: User, invoice_id: int, payload: dict):
    """Record a payment against an open invoice; returns (payment, balance)."""
    invoice = _own_invoice(company_id, invoice_id)
    if invoice.status == "void":
        raise ValidationError("Cannot record a payment for a void invoice")
    if invoice.status == "draft":
        raise ValidationError("Send the invoice before recording payments against it")
    if invoice.status == "paid" and (not isinstance(payload, dict) or payload.get("payment_type", "payment") == "payment"):
        raise ValidationError("Invoice is already paid in full")
    return record_payment(company_id, user, payload, invoice=invoice)


def mark_overdue_invoices() -> int:
    """Move open invoices past their due date to overdue."""
    rows = db.session.query(Invoice).filter(
        Invoice.status.in_(("sent", "partially_paid")),
        Invoice.due_date < today(),
    ).all()
    for invoice in rows:
        invoice.status = "overdue"
    db.session.commit()
    if rows:
        logger.info("Marked %s invoices overdue", len(rows))
    return len(rows)
