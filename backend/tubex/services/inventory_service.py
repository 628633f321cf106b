# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Inventory Service

Stock levels live in Inventory rows (one per product, warehouse and
company). Batches track expiry-dated lots inside a row's stock.

INVARIANTS:
- Inventory.quantity never goes below zero
- Negative adjustments consume active batches FIFO (earliest expiry first,
  undated last, then oldest); a batch drained to zero becomes "depleted"
- Every stock movement is written to the document store audit trail

CONCURRENCY: adjust and transfer lock the affected inventory rows
(SELECT ... FOR UPDATE) and run as one retried unit of work.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal

from ..extensions import db
from ..models import Inventory, Batch, Warehouse, User
from ..numeric_utils import to_number
from ..time_utils import utcnow, today
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    validate_payload,
    enforce_rules_inventory,
    parse_decimal,
    parse_positive_int,
)
from .batch_service import require_stockable_product
from .concurrency import lock_for_update, run_with_retry
from .document_service import record_analytics_event, record_audit_entry
from .tenant_service import require_owned

logger = logging.getLogger(__name__)

INVENTORY_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id",
        "warehouse_id",
        "quantity",
        "unit",
        "min_threshold",
        "max_threshold",
        "reorder_point",
        "reorder_quantity",
        "auto_reorder",
        "status",
        "metadata",
    },
    required_on_create={"product_id", "warehouse_id", "unit"},
)

INVENTORY_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "unit",
        "min_threshold",
        "max_threshold",
        "reorder_point",
        "reorder_quantity",
        "auto_reorder",
        "status",
        "metadata",
    },
)

DEFAULT_EXPIRY_WINDOW_DAYS = 30


# -- Queries --

def list_inventory_query(
    company_id: int,
    *,
    warehouse_id: int | None = None,
    product_id: int | None = None,
    status: str | None = None,
):
    query = db.session.query(Inventory).filter(Inventory.company_id == company_id)
    if warehouse_id is not None:
        query = query.filter(Inventory.warehouse_id == warehouse_id)
    if product_id is not None:
        query = query.filter(Inventory.product_id == product_id)
    if status:
        query = query.filter(Inventory.status == status)
    return query.order_by(Inventory.created_at.desc(), Inventory.id.desc())


def get_inventory(company_id: int, inventory_id: int) -> Inventory:
    return require_owned(Inventory, inventory_id, company_id, label="Inventory item")


def low_stock_items(company_id: int) -> list[Inventory]:
    return db.session.query(Inventory).filter(
        Inventory.company_id == company_id,
        Inventory.status == "active",
        Inventory.min_threshold.isnot(None),
        Inventory.quantity <= Inventory.min_threshold,
    ).order_by(Inventory.quantity.asc(), Inventory.id.asc()).all()


def expiring_batches(company_id: int, days: int = DEFAULT_EXPIRY_WINDOW_DAYS) -> list[Batch]:
    if days < 0:
        raise ValidationError("days must be >= 0")
    return db.session.query(Batch).filter(
        Batch.company_id == company_id,
        Batch.status == "active",
        Batch.quantity > 0,
        Batch.expiry_date.isnot(None),
        Batch.expiry_date <= today() + timedelta(days=days),
    ).order_by(Batch.expiry_date.asc(), Batch.id.asc()).all()


# -- Create / update / delete --

def _initial_batch_number(company_id: int, product_id: int) -> str:
    stamp = int(utcnow().timestamp() * 1000)
    base = f"INIT-{product_id}-{stamp}"
    candidate = base
    suffix = 1
    while db.session.query(Batch.id).filter_by(company_id=company_id, batch_number=candidate).first():
        suffix += 1
        candidate = f"{base}-{suffix}"
    return candidate


def create_inventory(company_id: int, user: User, payload: dict) -> Inventory:
    """
    Create the stock row for (product, warehouse, company). A positive
    opening quantity also opens an INIT batch holding that stock.
    """
    patch = validate_payload(model=Inventory, payload=payload, policy=INVENTORY_CREATE_POLICY, partial=False)
    enforce_rules_inventory(patch)

    warehouse = require_owned(Warehouse, patch["warehouse_id"], company_id, label="Warehouse")
    product = require_stockable_product(company_id, patch["product_id"])

    exists = db.session.query(Inventory.id).filter_by(
        product_id=product.id, warehouse_id=warehouse.id, company_id=company_id,
    ).first()
    if exists:
        raise ConflictError("Inventory for this product already exists in this warehouse")

    quantity = patch.pop("quantity", None) or Decimal("0")
    item = Inventory(company_id=company_id, quantity=quantity, **patch)
    db.session.add(item)
    db.session.flush()

    if quantity > 0:
        db.session.add(Batch(
            batch_number=_initial_batch_number(company_id, product.id),
            product_id=product.id,
            warehouse_id=warehouse.id,
            company_id=company_id,
            quantity=quantity,
            unit=item.unit,
            manufacturing_date=today(),
            status="active",
            meta={"source": "initial_stock"},
        ))

    record_audit_entry(
        "inventory_created",
        entity_type="inventory",
        entity_id=item.id,
        company_id=company_id,
        user_id=user.id,
        changes={"quantity": str(quantity), "warehouse_id": warehouse.id, "product_id": product.id},
    )
    db.session.commit()
    return item


def update_inventory(company_id: int, inventory_id: int, payload: dict) -> Inventory:
    """Settings only; quantity moves through adjust/transfer."""
    item = get_inventory(company_id, inventory_id)
    patch = validate_payload(model=Inventory, payload=payload, policy=INVENTORY_UPDATE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    merged = {
        "min_threshold": patch.get("min_threshold", item.min_threshold),
        "max_threshold": patch.get("max_threshold", item.max_threshold),
        "reorder_point": patch.get("reorder_point"),
        "reorder_quantity": patch.get("reorder_quantity"),
    }
    enforce_rules_inventory(merged)

    for key, value in patch.items():
        setattr(item, key, value)
    db.session.commit()
    return item


def delete_inventory(company_id: int, inventory_id: int) -> None:
    item = get_inventory(company_id, inventory_id)
    db.session.delete(item)
    db.session.commit()


# -- Stock movement --

def _lock_inventory(inventory_id: int) -> Inventory:
    return lock_for_update(db.session.query(Inventory).filter(Inventory.id == inventory_id)).one()


def deduct_from_batches(item: Inventory, amount: Decimal) -> list[dict]:
    """
    Consume active batches of the row's product/warehouse FIFO.

    Stock not tracked by any batch absorbs whatever the batches cannot.
    Returns [{batch_number, deducted}] for the batches touched.
    """
    batches = lock_for_update(
        db.session.query(Batch).filter(
            Batch.company_id == item.company_id,
            Batch.product_id == item.product_id,
            Batch.warehouse_id == item.warehouse_id,
            Batch.status == "active",
            Batch.quantity > 0,
        ).order_by(
            Batch.expiry_date.is_(None),
            Batch.expiry_date.asc(),
            Batch.created_at.asc(),
            Batch.id.asc(),
        )
    ).all()

    remaining = amount
    touched = []
    for batch in batches:
        if remaining <= 0:
            break
        take = min(batch.quantity, remaining)
        batch.quantity = batch.quantity - take
        remaining -= take
        if batch.quantity == 0:
            batch.status = "depleted"
        touched.append({"batch_number": batch.batch_number, "deducted": str(take)})
    return touched


def _receive_into_batch(item: Inventory, amount: Decimal, payload: dict) -> dict:
    """Top up an existing batch of this row or open a new one."""
    batch_number = str(payload["batch_number"]).strip()
    batch = db.session.query(Batch).filter_by(company_id=item.company_id, batch_number=batch_number).first()

    if batch is not None:
        if batch.product_id != item.product_id or batch.warehouse_id != item.warehouse_id:
            raise ConflictError("Batch number already exists for a different product or warehouse")
        batch.quantity = batch.quantity + amount
        if batch.status == "depleted":
            batch.status = "active"
        return {"batch_number": batch.batch_number, "added": str(amount), "created": False}

    dates = validate_payload(
        model=Batch,
        payload={k: payload[k] for k in ("manufacturing_date", "expiry_date") if payload.get(k) is not None},
        policy=ModelValidationPolicy(writable_fields={"manufacturing_date", "expiry_date"}),
        partial=True,
    )
    made, expires = dates.get("manufacturing_date"), dates.get("expiry_date")
    if made is not None and expires is not None and expires <= made:
        raise ValidationError("expiry_date must be after manufacturing_date")

    db.session.add(Batch(
        batch_number=batch_number,
        product_id=item.product_id,
        warehouse_id=item.warehouse_id,
        company_id=item.company_id,
        quantity=amount,
        unit=item.unit,
        manufacturing_date=made,
        expiry_date=expires,
        status="active",
    ))
    return {"batch_number": batch_number, "added": str(amount), "created": True}


def check_low_stock(item: Inventory, user_id: int | None = None) -> bool:
    """
    Low-stock check after a stock change. With auto_reorder enabled this
    stamps last_reorder_date and records a reorder_triggered event.
    """
    if not item.is_low_stock:
        return False

    logger.warning(
        "Low stock: inventory %s (product %s, warehouse %s) at %s, threshold %s",
        item.id, item.product_id, item.warehouse_id, item.quantity, item.min_threshold,
    )

    if item.auto_reorder:
        item.last_reorder_date = utcnow()
        record_analytics_event(
            "reorder_triggered",
            company_id=item.company_id,
            user_id=user_id,
            data={
                "inventory_id": item.id,
                "product_id": item.product_id,
                "warehouse_id": item.warehouse_id,
                "quantity": str(item.quantity),
                "reorder_quantity": str(item.reorder_quantity) if item.reorder_quantity is not None else None,
            },
        )
        logger.info("Auto reorder triggered for inventory %s", item.id)
    return True


def adjust_inventory(company_id: int, user: User, inventory_id: int, payload: dict) -> dict:
    """
    Apply a signed quantity change.

    payload: {adjustment, reason?, batch_number?, manufacturing_date?, expiry_date?}
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if payload.get("adjustment") in (None, ""):
        raise ValidationError("Missing required fields: adjustment")

    amount = parse_decimal(payload["adjustment"], "adjustment")
    if amount == 0:
        raise ValidationError("adjustment must not be zero")

    get_inventory(company_id, inventory_id)

    def _op() -> dict:
        item = _lock_inventory(inventory_id)
        previous = item.quantity
        new_quantity = previous + amount
        if new_quantity < 0:
            raise ValidationError("Insufficient inventory")

        batch_changes = []
        if amount > 0 and payload.get("batch_number"):
            batch_changes.append(_receive_into_batch(item, amount, payload))
        elif amount < 0:
            batch_changes = deduct_from_batches(item, -amount)

        item.quantity = new_quantity
        low_stock = check_low_stock(item, user.id)

        record_audit_entry(
            "inventory_adjusted",
            entity_type="inventory",
            entity_id=item.id,
            company_id=company_id,
            user_id=user.id,
            changes={
                "previous_quantity": str(previous),
                "new_quantity": str(new_quantity),
                "adjustment": str(amount),
                "reason": payload.get("reason"),
                "batches": batch_changes,
            },
        )
        db.session.commit()

        data = item.to_dict()
        data["low_stock"] = low_stock
        data["batches"] = batch_changes
        return data

    return run_with_retry(_op)


def transfer_inventory(company_id: int, user: User, payload: dict) -> dict:
    """
    Move stock of one product between two warehouses of the company.

    payload: {product_id, from_warehouse_id, to_warehouse_id, quantity, batch_numbers?}
    Listed batches (in the source warehouse) move with the stock.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    product_id = parse_positive_int(payload.get("product_id"), "product_id")
    from_id = parse_positive_int(payload.get("from_warehouse_id"), "from_warehouse_id")
    to_id = parse_positive_int(payload.get("to_warehouse_id"), "to_warehouse_id")
    if payload.get("quantity") in (None, ""):
        raise ValidationError("Missing required fields: quantity")
    quantity = parse_decimal(payload["quantity"], "quantity")

    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    if from_id == to_id:
        raise ValidationError("Source and target warehouses must differ")

    batch_numbers = payload.get("batch_numbers") or []
    if not isinstance(batch_numbers, list) or not all(isinstance(b, str) for b in batch_numbers):
        raise ValidationError("batch_numbers must be a list of strings")

    require_owned(Warehouse, from_id, company_id, label="Warehouse")
    require_owned(Warehouse, to_id, company_id, label="Warehouse")

    def _op() -> dict:
        source = lock_for_update(db.session.query(Inventory).filter_by(
            company_id=company_id, product_id=product_id, warehouse_id=from_id,
        )).first()
        if source is None or source.quantity < quantity:
            raise ValidationError("Insufficient inventory in source warehouse")

        target = lock_for_update(db.session.query(Inventory).filter_by(
            company_id=company_id, product_id=product_id, warehouse_id=to_id,
        )).first()
        if target is None:
            target = Inventory(
                company_id=company_id,
                product_id=product_id,
                warehouse_id=to_id,
                quantity=Decimal("0"),
                unit=source.unit,
            )
            db.session.add(target)

        source.quantity = source.quantity - quantity
        target.quantity = target.quantity + quantity

        moved = []
        if batch_numbers:
            batches = db.session.query(Batch).filter(
                Batch.company_id == company_id,
                Batch.product_id == product_id,
                Batch.warehouse_id == from_id,
                Batch.batch_number.in_(batch_numbers),
            ).all()
            missing = sorted(set(batch_numbers) - {b.batch_number for b in batches})
            if missing:
                raise ValidationError(
                    f"Batches not found in source warehouse: {', '.join(missing)}"
                )
            for batch in batches:
                batch.warehouse_id = to_id
                moved.append(batch.batch_number)

        db.session.flush()
        low_stock = check_low_stock(source, user.id)

        record_audit_entry(
            "inventory_transferred",
            entity_type="inventory",
            entity_id=source.id,
            company_id=company_id,
            user_id=user.id,
            changes={
                "product_id": product_id,
                "from_warehouse_id": from_id,
                "to_warehouse_id": to_id,
                "quantity": str(quantity),
                "batches": sorted(moved),
            },
        )
        db.session.commit()

        return {
            "source": source.to_dict(),
            "target": target.to_dict(),
            "quantity": to_number(quantity),
            "moved_batches": sorted(moved),
            "low_stock": low_stock,
        }

    return run_with_retry(_op)
