# Overview: Service-layer operations for payments; encapsulates business logic and database work.

"""
Payment Service

WHY: Order.payment_status has to reflect money actually received. The
supplier records each payment (or refund) against an order, and the
order's payment status and its invoice's paid_amount are recomputed from
the completed rows every time the ledger changes.

RULES:
- Only the supplier of an order records, voids or reconciles its payments;
  the customer company can read them
- A payment cannot exceed the balance due; a refund cannot exceed the net
  amount paid
- Cancelled orders accept refunds only
- Voided rows stay in the ledger and stop counting; reconciled rows cannot
  be voided

DERIVED ORDER PAYMENT STATUS:
    net paid >= total                 -> paid
    refunds recorded and net <= 0     -> refunded
    nothing counted                   -> unchanged (pending or failed)
    otherwise                         -> pending (partially paid)
"""

from __future__ import annotations

import logging
import secrets
from decimal import Decimal

from ..extensions import db
from ..models import Order, Payment, Invoice, User
from ..models.enums import PAYMENT_METHODS, PAYMENT_TYPES, PAYMENT_RECORD_STATUSES, RECONCILIATION_STATUSES
from ..numeric_utils import to_number, quantize_money
from ..time_utils import utcnow, parse_iso_datetime
from ..validation import ValidationError, ConflictError, parse_decimal, parse_positive_int
from .concurrency import lock_for_update, run_with_retry
from .document_service import record_analytics_event, record_audit_entry, upsert_order_document
from .permission_service import PermissionDeniedError
from .tenant_service import TenantAccessError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# -- Balances --

def _balance(order: Order, paid: Decimal, refunded: Decimal) -> dict:
    net = paid - refunded
    return {
        "order_id": order.id,
        "total_amount": to_number(order.total_amount),
        "paid": to_number(paid),
        "refunded": to_number(refunded),
        "net_paid": to_number(net),
        "balance_due": to_number(max(order.total_amount - net, ZERO)),
        "payment_status": order.payment_status,
    }


def ledger_totals(order_id: int) -> tuple[Decimal, Decimal]:
    """(paid, refunded) over completed payments of the order."""
    rows = db.session.query(Payment.payment_type, db.func.sum(Payment.amount)).filter(
        Payment.order_id == order_id,
        Payment.status == "completed",
    ).group_by(Payment.payment_type).all()
    sums = {payment_type: quantize_money(total or 0) for payment_type, total in rows}
    return sums.get("payment", ZERO), sums.get("refund", ZERO)


def derive_payment_status(current: str, total: Decimal, paid: Decimal, refunded: Decimal) -> str:
    net = paid - refunded
    if paid > 0 and net >= total:
        return "paid"
    if refunded > 0 and net <= 0:
        return "refunded"
    if paid == 0:
        return current if current in ("pending", "failed") else "pending"
    return "pending"


def derive_invoice_status(invoice: Invoice, net: Decimal) -> str:
    if invoice.status in ("draft", "void"):
        return invoice.status
    if net >= invoice.total_amount:
        return "paid"
    if net > 0:
        return "partially_paid"
    return "overdue" if invoice.status == "overdue" else "sent"


def sync_order_payments(order: Order) -> dict:
    """
    Recompute order.payment_status and the invoice's paid_amount/status
    from the ledger. Call after any flush that changed the order's payments.
    """
    paid, refunded = ledger_totals(order.id)
    net = paid - refunded
    order.payment_status = derive_payment_status(order.payment_status, order.total_amount, paid, refunded)

    invoice = db.session.query(Invoice).filter(Invoice.order_id == order.id).first()
    if invoice is not None:
        invoice.paid_amount = max(net, ZERO)
        invoice.status = derive_invoice_status(invoice, net)

    return _balance(order, paid, refunded)


def get_order_balance(company_id: int, order_id: int) -> dict:
    """Balance summary, readable by both parties to the order."""
    order = db.session.get(Order, order_id)
    if order is None or company_id not in (order.company_id, order.customer_company_id):
        raise TenantAccessError("Order not found")

    paid, refunded = ledger_totals(order.id)
    return _balance(order, paid, refunded)


# -- Reads --

def list_payments_query(
    company_id: int,
    *,
    order_id=None,
    invoice_id=None,
    method: str | None = None,
    payment_type: str | None = None,
    status: str | None = None,
    reconciliation_status: str | None = None,
    since: str | None = None,
    until: str | None = None,
):
    """Payments received (company is the supplier) or made (company is the customer)."""
    query = db.session.query(Payment).filter(
        db.or_(Payment.company_id == company_id, Payment.customer_company_id == company_id)
    )

    if order_id not in (None, ""):
        query = query.filter(Payment.order_id == parse_positive_int(order_id, "order_id"))
    if invoice_id not in (None, ""):
        query = query.filter(Payment.invoice_id == parse_positive_int(invoice_id, "invoice_id"))

    for value, allowed, column, label in (
        (method, PAYMENT_METHODS, Payment.method, "method"),
        (payment_type, PAYMENT_TYPES, Payment.payment_type, "payment_type"),
        (status, PAYMENT_RECORD_STATUSES, Payment.status, "status"),
        (reconciliation_status, RECONCILIATION_STATUSES, Payment.reconciliation_status, "reconciliation_status"),
    ):
        if value:
            if value not in allowed:
                raise ValidationError(f"{label} must be one of: {', '.join(allowed)}")
            query = query.filter(column == value)

    try:
        start = parse_iso_datetime(since)
        end = parse_iso_datetime(until)
    except ValueError:
        raise ValidationError("since and until must be ISO-8601 datetimes")
    if start is not None:
        query = query.filter(Payment.payment_date >= start)
    if end is not None:
        query = query.filter(Payment.payment_date <= end)

    return query.order_by(Payment.payment_date.desc(), Payment.id.desc())


def get_visible_payment(company_id: int, payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if payment is None or company_id not in (payment.company_id, payment.customer_company_id):
        raise TenantAccessError("Payment not found")
    return payment


def _own_payment(company_id: int, payment_id: int) -> Payment:
    payment = get_visible_payment(company_id, payment_id)
    if payment.company_id != company_id:
        raise PermissionDeniedError("Only the supplier can change this payment")
    return payment


# -- Writes --

def _parse_payment(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if payload.get("amount") in (None, ""):
        raise ValidationError("amount is required")
    amount = parse_decimal(payload["amount"], "amount")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")

    method = payload.get("method") or "bank_transfer"
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"method must be one of: {', '.join(PAYMENT_METHODS)}")

    payment_type = payload.get("payment_type") or "payment"
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"payment_type must be one of: {', '.join(PAYMENT_TYPES)}")

    transaction_id = payload.get("transaction_id")
    if transaction_id is not None:
        if not isinstance(transaction_id, str) or not transaction_id.strip() or len(transaction_id) > 64:
            raise ValidationError("transaction_id must be a non-empty string of at most 64 characters")
        transaction_id = transaction_id.strip()

    reference = payload.get("external_reference")
    if reference is not None and (not isinstance(reference, str) or len(reference) > 128):
        raise ValidationError("external_reference must be a string of at most 128 characters")

    try:
        payment_date = parse_iso_datetime(payload.get("payment_date")) or utcnow()
    except (AttributeError, TypeError, ValueError):
        raise ValidationError("payment_date must be an ISO-8601 datetime")

    meta = payload.get("metadata") or {}
    if not isinstance(meta, dict):
        raise ValidationError("metadata must be a JSON object")

    return {
        "amount": amount,
        "method": method,
        "payment_type": payment_type,
        "transaction_id": transaction_id,
        "external_reference": reference,
        "payment_date": payment_date,
        "notes": payload.get("notes"),
        "meta": meta,
    }


def _check_amount(order: Order, fields: dict) -> None:
    paid, refunded = ledger_totals(order.id)
    net = paid - refunded
    if fields["payment_type"] == "refund":
        if fields["amount"] > net:
            raise ValidationError(f"Refund exceeds the net amount paid ({net})")
        return

    if order.status == "cancelled":
        raise ValidationError("Cannot record a payment for a cancelled order")
    balance = order.total_amount - net
    if fields["amount"] > balance:
        raise ValidationError(f"Payment exceeds the balance due ({max(balance, ZERO)})")


def record_payment(company_id: int, user: User, payload: dict, *, invoice: Invoice | None = None) -> tuple[Payment, dict]:
    """
    payload: {order_id, amount, method?, payment_type?, transaction_id?,
              payment_date?, external_reference?, notes?, metadata?}

    With invoice given, order_id comes from the invoice.
    Returns (payment, balance summary).
    """
    fields = _parse_payment(payload)
    if invoice is not None:
        order_id = invoice.order_id
    else:
        order_id = parse_positive_int(payload.get("order_id"), "order_id")

    def _op():
        order = lock_for_update(db.session.query(Order).filter(Order.id == order_id)).first()
        if order is None or company_id not in (order.company_id, order.customer_company_id):
            raise TenantAccessError("Order not found")
        if order.company_id != company_id:
            raise PermissionDeniedError("Only the supplier records payments for an order")

        _check_amount(order, fields)

        transaction_id = fields["transaction_id"] or f"PAY-{secrets.token_hex(6).upper()}"
        if db.session.query(Payment.id).filter_by(company_id=company_id, transaction_id=transaction_id).first():
            raise ConflictError(f"Transaction '{transaction_id}' is already recorded")

        linked_invoice = invoice or db.session.query(Invoice).filter(Invoice.order_id == order.id).first()
        payment = Payment(
            company_id=order.company_id,
            customer_company_id=order.customer_company_id,
            order_id=order.id,
            invoice_id=linked_invoice.id if linked_invoice is not None and linked_invoice.status != "void" else None,
            transaction_id=transaction_id,
            amount=fields["amount"],
            method=fields["method"],
            payment_type=fields["payment_type"],
            status="completed",
            payment_date=fields["payment_date"],
            external_reference=fields["external_reference"],
            notes=fields["notes"],
            recorded_by_id=user.id,
            meta=fields["meta"],
        )
        db.session.add(payment)
        db.session.flush()

        summary = sync_order_payments(order)
        db.session.flush()
        upsert_order_document(order)
        record_audit_entry(
            f"{fields['payment_type']}_recorded",
            entity_type="payment",
            entity_id=payment.id,
            company_id=order.company_id,
            user_id=user.id,
            changes={
                "order_id": order.id,
                "amount": str(payment.amount),
                "method": payment.method,
                "payment_status": order.payment_status,
            },
        )
        record_analytics_event(
            f"{fields['payment_type']}_recorded",
            company_id=order.company_id,
            user_id=user.id,
            data={"order_id": order.id, "payment_id": payment.id, "amount": str(payment.amount)},
        )
        db.session.commit()

        logger.info("Payment %s (%s %s) recorded on order %s by user %s",
                    payment.id, payment.payment_type, payment.amount, order.id, user.id)
        return payment, summary

    return run_with_retry(_op)


def void_payment(company_id: int, user: User, payment_id: int, reason: str | None) -> tuple[Payment, dict]:
    """Cancel a mistaken entry. Refund real money with a refund instead."""
    payment = _own_payment(company_id, payment_id)
    if not reason or not str(reason).strip():
        raise ValidationError("reason is required to void a payment")
    if payment.status == "voided":
        raise ValidationError("Payment is already voided")
    if payment.reconciliation_status == "reconciled":
        raise ValidationError("Reconciled payments cannot be voided")

    order = lock_for_update(db.session.query(Order).filter(Order.id == payment.order_id)).first()
    if payment.payment_type == "payment":
        paid, refunded = ledger_totals(order.id)
        if paid - payment.amount < refunded:
            raise ValidationError("Voiding this payment would leave more refunded than paid")

    payment.status = "voided"
    payment.voided_at = utcnow()
    payment.void_reason = str(reason).strip()
    db.session.flush()

    summary = sync_order_payments(order)
    db.session.flush()
    upsert_order_document(order)
    record_audit_entry(
        "payment_voided",
        entity_type="payment",
        entity_id=payment.id,
        company_id=company_id,
        user_id=user.id,
        changes={"status": {"from": "completed", "to": "voided"}, "reason": payment.void_reason},
    )
    db.session.commit()
    return payment, summary


def reconcile_payment(company_id: int, user: User, payment_id: int, payload: dict) -> Payment:
    """payload: {reconciliation_status, notes?}"""
    payment = _own_payment(company_id, payment_id)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    new_status = payload.get("reconciliation_status")
    if new_status not in RECONCILIATION_STATUSES:
        raise ValidationError(f"reconciliation_status must be one of: {', '.join(RECONCILIATION_STATUSES)}")
    if payment.status == "voided":
        raise ValidationError("Voided payments cannot be reconciled")

    previous = payment.reconciliation_status
    payment.reconciliation_status = new_status
    if new_status == "reconciled":
        payment.reconciled_at = utcnow()
        payment.reconciled_by_id = user.id
    else:
        payment.reconciled_at = None
        payment.reconciled_by_id = None

    notes = payload.get("notes")
    if notes is not None:
        meta = dict(payment.meta or {})
        meta["reconciliation_notes"] = notes
        payment.meta = meta

    record_audit_entry(
        "payment_reconciliation_changed",
        entity_type="payment",
        entity_id=payment.id,
        company_id=company_id,
        user_id=user.id,
        changes={"reconciliation_status": {"from": previous, "to": new_status}},
    )
    db.session.commit()
    return payment
