# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Service

An order is placed by a user of a customer company with ONE supplier
company. Both parties can read it; the supplier moves it through the
status lifecycle, and either party may cancel while it is pending.

LIFECYCLE:
    pending -> confirmed | cancelled
    confirmed -> processing | cancelled
    processing -> shipped | cancelled
    shipped -> delivered
    delivered, cancelled: terminal

STOCK: placing an order deducts stock immediately from the supplier's
active inventory rows (lowest warehouse id first, batches FIFO inside each
row). The exact allocation is kept in OrderItem.metadata["allocations"] so
a cancellation puts every unit back where it came from.

Every status change appends OrderHistory and refreshes the order document.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from ..extensions import db
from ..models import Order, OrderItem, OrderHistory, Product, Inventory, Batch, User, Company, Invoice
from ..numeric_utils import quantize_money
from ..time_utils import utcnow, to_utc_z
from ..validation import ValidationError, parse_decimal, parse_positive_int, parse_id_list
from .concurrency import lock_for_update
from .document_service import (
    record_analytics_event,
    record_audit_entry,
    record_customer_activity,
    upsert_order_document,
)
from .inventory_service import deduct_from_batches, check_low_stock
from .permission_service import PermissionDeniedError
from .tenant_service import TenantAccessError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
# paid and refunded follow from recorded payments
MANUAL_PAYMENT_STATUSES = ("pending", "failed")


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


# -- Reads --

def list_orders_query(
    company_id: int,
    *,
    direction: str | None = None,
    status: str | None = None,
    payment_status: str | None = None,
):
    """incoming: caller is the supplier; outgoing: caller is the customer."""
    query = db.session.query(Order)
    if direction == "incoming":
        query = query.filter(Order.company_id == company_id)
    elif direction == "outgoing":
        query = query.filter(Order.customer_company_id == company_id)
    elif direction in (None, ""):
        query = query.filter(db.or_(Order.company_id == company_id, Order.customer_company_id == company_id))
    else:
        raise ValidationError("direction must be one of: incoming, outgoing")

    if status:
        if status not in ALLOWED_TRANSITIONS:
            raise ValidationError(f"status must be one of: {', '.join(ALLOWED_TRANSITIONS)}")
        query = query.filter(Order.status == status)
    if payment_status:
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
        query = query.filter(Order.payment_status == payment_status)

    return query.order_by(Order.created_at.desc(), Order.id.desc())


def get_visible_order(company_id: int, order_id: int) -> Order:
    """Visible to the supplier and the customer company; not found otherwise."""
    order = db.session.get(Order, order_id)
    if order is None or company_id not in (order.company_id, order.customer_company_id):
        raise TenantAccessError("Order not found")
    return order


def order_history(company_id: int, order_id: int) -> list[OrderHistory]:
    order = get_visible_order(company_id, order_id)
    return db.session.query(OrderHistory).filter(
        OrderHistory.order_id == order.id,
    ).order_by(OrderHistory.created_at.desc(), OrderHistory.id.desc()).all()


# -- Stock allocation --

def _allocate_stock(supplier_id: int, product: Product, quantity: Decimal) -> list[dict]:
    rows = lock_for_update(
        db.session.query(Inventory).filter(
            Inventory.company_id == supplier_id,
            Inventory.product_id == product.id,
            Inventory.status == "active",
            Inventory.quantity > 0,
        ).order_by(Inventory.warehouse_id.asc(), Inventory.id.asc())
    ).all()

    available = sum((row.quantity for row in rows), Decimal("0"))
    if available < quantity:
        raise ValidationError(f"Insufficient stock for product {product.id} ({product.name})")

    remaining = quantity
    allocations = []
    for row in rows:
        if remaining <= 0:
            break
        take = min(row.quantity, remaining)
        batches = deduct_from_batches(row, take)
        row.quantity = row.quantity - take
        remaining -= take
        allocations.append({
            "inventory_id": row.id,
            "warehouse_id": row.warehouse_id,
            "quantity": str(take),
            "batches": batches,
        })
    return allocations


def _restore_stock(order: Order) -> None:
    """Put allocated stock back on the rows and batches it came from."""
    for item in order.items:
        for alloc in (item.meta or {}).get("allocations", []):
            row = lock_for_update(db.session.query(Inventory).filter(Inventory.id == alloc["inventory_id"])).first()
            if row is None:
                logger.warning("Order %s: inventory %s no longer exists; stock not restored", order.id, alloc["inventory_id"])
                continue
            row.quantity = row.quantity + Decimal(alloc["quantity"])

            for entry in alloc.get("batches", []):
                batch = db.session.query(Batch).filter_by(
                    company_id=order.company_id, batch_number=entry["batch_number"],
                ).first()
                if batch is None:
                    continue
                batch.quantity = batch.quantity + Decimal(entry["deducted"])
                if batch.status == "depleted":
                    batch.status = "active"


# -- Create --

def _parse_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    parsed = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = parse_positive_int(raw.get("product_id"), f"items[{index}].product_id")
        if raw.get("quantity") in (None, ""):
            raise ValidationError(f"items[{index}].quantity is required")
        quantity = parse_decimal(raw["quantity"], f"items[{index}].quantity")
        if quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be >= 1")
        discount = parse_decimal(raw.get("discount", 0), f"items[{index}].discount")
        if discount < 0:
            raise ValidationError(f"items[{index}].discount must be >= 0")
        parsed.append({"product_id": product_id, "quantity": quantity, "discount": discount})
    return parsed


def create_order(customer_company: Company, user: User, payload: dict) -> Order:
    """
    payload: {items: [{product_id, quantity, discount?}], delivery_address,
              payment_method?, notes?, metadata?}
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = _parse_items(payload.get("items"))

    delivery_address = payload.get("delivery_address")
    if not isinstance(delivery_address, dict) or not delivery_address:
        raise ValidationError("delivery_address must be a non-empty object")

    payment_method = payload.get("payment_method")
    if payment_method is not None and (not isinstance(payment_method, str) or len(payment_method) > 50):
        raise ValidationError("payment_method must be a string of at most 50 characters")

    extra_meta = payload.get("metadata") or {}
    if not isinstance(extra_meta, dict):
        raise ValidationError("metadata must be a JSON object")

    product_ids = {i["product_id"] for i in items}
    products = {p.id: p for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()}

    for pid in product_ids:
        product = products.get(pid)
        if product is None or product.status != "active":
            raise ValidationError(f"Product {pid} is not available")

    supplier_ids = {p.supplier_id for p in products.values()}
    if len(supplier_ids) != 1:
        raise ValidationError("All items in an order must come from a single supplier")
    supplier_id = supplier_ids.pop()

    supplier = db.session.get(Company, supplier_id)
    if supplier is None or supplier.status != "active":
        raise ValidationError("Supplier is not active")
    if supplier_id == customer_company.id:
        raise ValidationError("A company cannot order its own products")

    order = Order(
        company_id=supplier_id,
        customer_company_id=customer_company.id,
        customer_id=user.id,
        status="pending",
        payment_status="pending",
        payment_method=payment_method,
        delivery_address=delivery_address,
        meta={**extra_meta, "notes": payload.get("notes")},
        total_amount=Decimal("0"),
    )
    db.session.add(order)

    total = Decimal("0")
    touched_rows = set()
    for entry in items:
        product = products[entry["product_id"]]
        unit_price = product.base_price
        if entry["discount"] > unit_price:
            raise ValidationError(f"Discount for product {product.id} exceeds its unit price")

        allocations = _allocate_stock(supplier_id, product, entry["quantity"])
        touched_rows.update(a["inventory_id"] for a in allocations)

        order.items.append(OrderItem(
            product_id=product.id,
            quantity=entry["quantity"],
            unit_price=unit_price,
            discount=entry["discount"],
            meta={"allocations": allocations},
        ))
        total += (unit_price - entry["discount"]) * entry["quantity"]

    order.total_amount = quantize_money(total)
    db.session.flush()

    for row_id in touched_rows:
        check_low_stock(db.session.get(Inventory, row_id), user.id)

    db.session.add(OrderHistory(
        order_id=order.id,
        user_id=user.id,
        previous_status=None,
        new_status="pending",
        notes=payload.get("notes") or "Order created",
    ))
    upsert_order_document(order)
    record_analytics_event(
        "order_created",
        company_id=supplier_id,
        user_id=user.id,
        data={
            "order_id": order.id,
            "customer_company_id": customer_company.id,
            "total_amount": str(order.total_amount),
            "item_count": len(items),
        },
    )
    record_customer_activity(
        "order_placed",
        customer_id=user.id,
        company_id=supplier_id,
        description=f"Placed order #{order.id}",
        meta={"order_id": order.id, "total_amount": str(order.total_amount)},
    )
    db.session.commit()

    logger.info("Order %s created by company %s with supplier %s", order.id, customer_company.id, supplier_id)
    return order


# -- Status changes --

def _apply_status(order: Order, user: User, new_status: str, notes: str | None) -> None:
    if new_status not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"status must be one of: {', '.join(ALLOWED_TRANSITIONS)}")
    if not can_transition(order.status, new_status):
        raise ValidationError(f"Invalid status transition from {order.status} to {new_status}")

    previous = order.status
    if new_status == "cancelled":
        _restore_stock(order)
        _void_unpaid_invoice(order, user)

    order.status = new_status
    db.session.add(OrderHistory(
        order_id=order.id,
        user_id=user.id,
        previous_status=previous,
        new_status=new_status,
        notes=notes,
    ))
    record_audit_entry(
        "order_status_changed",
        entity_type="order",
        entity_id=order.id,
        company_id=order.company_id,
        user_id=user.id,
        changes={"status": {"from": previous, "to": new_status}, "notes": notes},
    )
    logger.info("Order %s: %s -> %s by user %s", order.id, previous, new_status, user.id)


def _void_unpaid_invoice(order: Order, user: User) -> None:
    invoice = db.session.query(Invoice).filter(Invoice.order_id == order.id).first()
    if invoice is None or invoice.status == "void" or invoice.paid_amount > 0:
        return
    meta = dict(invoice.meta or {})
    meta["voided_at"] = to_utc_z(utcnow())
    meta["void_reason"] = "Order cancelled"
    invoice.meta = meta
    invoice.status = "void"
    record_audit_entry(
        "invoice_voided",
        entity_type="invoice",
        entity_id=invoice.id,
        company_id=order.company_id,
        user_id=user.id,
        changes={"reason": "Order cancelled"},
    )


def _stamp(order: Order, user: User) -> None:
    meta = dict(order.meta or {})
    meta["last_updated"] = to_utc_z(utcnow())
    meta["updated_by"] = user.id
    order.meta = meta


def update_order(company_id: int, user: User, order_id: int, payload: dict) -> Order:
    """Supplier-side update: {status?, payment_status?, notes?}."""
    order = get_visible_order(company_id, order_id)
    if order.company_id != company_id:
        raise PermissionDeniedError("Only the supplier can update this order")

    if not isinstance(payload, dict) or not ({"status", "payment_status", "notes"} & set(payload)):
        raise ValidationError("Provide status, payment_status or notes")

    notes = payload.get("notes")
    new_status = payload.get("status")
    if new_status is not None and new_status != order.status:
        _apply_status(order, user, new_status, notes)

    payment_status = payload.get("payment_status")
    if payment_status is not None:
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
        if payment_status != order.payment_status:
            if payment_status not in MANUAL_PAYMENT_STATUSES:
                raise ValidationError(f"payment_status {payment_status} must be recorded through payments")
            if order.payment_status not in MANUAL_PAYMENT_STATUSES:
                raise ValidationError("payment_status follows the recorded payments of this order")
            order.payment_status = payment_status

    if notes is not None:
        meta = dict(order.meta or {})
        meta["notes"] = notes
        order.meta = meta

    _stamp(order, user)
    db.session.flush()
    upsert_order_document(order)
    db.session.commit()
    return order


def cancel_order(company_id: int, user: User, order_id: int, reason: str | None = None) -> Order:
    """Either party may cancel a pending order."""
    order = get_visible_order(company_id, order_id)
    if order.status != "pending":
        raise ValidationError("Only pending orders can be cancelled")

    _apply_status(order, user, "cancelled", reason or "Order cancelled")
    meta = dict(order.meta or {})
    meta["cancellation_reason"] = reason
    meta["cancelled_by_company_id"] = company_id
    order.meta = meta
    _stamp(order, user)

    db.session.flush()
    upsert_order_document(order)
    record_customer_activity(
        "order_cancelled",
        customer_id=order.customer_id or user.id,
        company_id=order.company_id,
        description=f"Order #{order.id} cancelled",
        meta={"order_id": order.id, "reason": reason},
    )
    db.session.commit()
    return order


def bulk_process(company_id: int, user: User, order_ids, status: str, notes: str | None = None) -> dict:
    """
    Apply one status to many incoming orders. Each order commits on its
    own; failures are reported per order and do not stop the rest.
    """
    ids = parse_id_list(order_ids, "order_ids")
    if status not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"status must be one of: {', '.join(ALLOWED_TRANSITIONS)}")

    processed, failed = [], []
    for order_id in ids:
        try:
            order = db.session.get(Order, order_id)
            if order is None or order.company_id != company_id:
                raise TenantAccessError("Order not found")
            _apply_status(order, user, status, notes)
            _stamp(order, user)
            db.session.flush()
            upsert_order_document(order)
            db.session.commit()
            processed.append(order_id)
        except (ValidationError, TenantAccessError) as exc:
            db.session.rollback()
            failed.append({"order_id": order_id, "error": str(exc)})

    return {"processed": processed, "failed": failed}
