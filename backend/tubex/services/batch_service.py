# Overview: Service-layer operations for batches; encapsulates business logic and database work.

"""
Batch Service

MULTI-TENANT: batch_number is unique within a company. The product and
warehouse of a batch must be visible to / owned by the company: the
warehouse must belong to it, and the product must be either its own or an
active catalog product (dealers stock supplier products).
"""

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import Batch, Warehouse, Product
from ..numeric_utils import to_number
from ..time_utils import today
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    validate_payload,
    enforce_rules_batch,
)
from .tenant_service import require_owned, TenantAccessError

EXPIRING_SOON_DAYS = 30

BATCH_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "batch_number",
        "product_id",
        "warehouse_id",
        "quantity",
        "unit",
        "manufacturing_date",
        "expiry_date",
        "status",
        "metadata",
    },
    required_on_create={"batch_number", "product_id", "warehouse_id", "quantity", "unit"},
)

BATCH_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"quantity", "unit", "manufacturing_date", "expiry_date", "status", "metadata"},
)


def require_stockable_product(company_id: int, product_id: int) -> Product:
    """A company may stock its own products and active catalog products."""
    product = db.session.get(Product, product_id) if product_id is not None else None
    if product is None:
        raise TenantAccessError("Product not found")
    if product.supplier_id != company_id and product.status != "active":
        raise TenantAccessError("Product not found")
    return product


def _ensure_unique_number(company_id: int, batch_number: str) -> None:
    exists = db.session.query(Batch.id).filter(
        Batch.company_id == company_id,
        Batch.batch_number == batch_number,
    ).first()
    if exists:
        raise ConflictError("Batch number already exists for this company")


def create_batch(company_id: int, payload: dict, *, commit: bool = True) -> Batch:
    patch = validate_payload(model=Batch, payload=payload, policy=BATCH_CREATE_POLICY, partial=False)
    enforce_rules_batch(patch)

    require_owned(Warehouse, patch["warehouse_id"], company_id, label="Warehouse")
    require_stockable_product(company_id, patch["product_id"])
    _ensure_unique_number(company_id, patch["batch_number"])

    batch = Batch(company_id=company_id, **patch)
    db.session.add(batch)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return batch


def list_batches_query(
    company_id: int,
    *,
    warehouse_id: int | None = None,
    product_id: int | None = None,
    status: str | None = None,
    expiring_days: int | None = None,
):
    """Expiry ascending with undated batches last. Caller paginates."""
    query = db.session.query(Batch).filter(Batch.company_id == company_id)
    if warehouse_id is not None:
        query = query.filter(Batch.warehouse_id == warehouse_id)
    if product_id is not None:
        query = query.filter(Batch.product_id == product_id)
    if status:
        query = query.filter(Batch.status == status)
    if expiring_days is not None:
        if expiring_days < 0:
            raise ValidationError("expiring_days must be >= 0")
        query = query.filter(
            Batch.expiry_date.isnot(None),
            Batch.expiry_date <= today() + timedelta(days=expiring_days),
        )
    return query.order_by(
        Batch.expiry_date.is_(None),
        Batch.expiry_date.asc(),
        Batch.created_at.asc(),
        Batch.id.asc(),
    )


def get_batch(company_id: int, batch_id: int) -> Batch:
    return require_owned(Batch, batch_id, company_id, label="Batch")


def update_batch(company_id: int, batch_id: int, payload: dict) -> Batch:
    batch = get_batch(company_id, batch_id)
    patch = validate_payload(model=Batch, payload=payload, policy=BATCH_UPDATE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    enforce_rules_batch({
        "quantity": patch.get("quantity"),
        "manufacturing_date": patch.get("manufacturing_date", batch.manufacturing_date),
        "expiry_date": patch.get("expiry_date", batch.expiry_date),
    })

    for key, value in patch.items():
        setattr(batch, key, value)
    db.session.commit()
    return batch


def deactivate_batch(company_id: int, batch_id: int) -> Batch:
    """Soft delete: status -> inactive."""
    batch = get_batch(company_id, batch_id)
    batch.status = "inactive"
    db.session.commit()
    return batch


def batch_stats(company_id: int) -> dict:
    base = db.session.query(Batch).filter(Batch.company_id == company_id)
    now = today()
    soon = now + timedelta(days=EXPIRING_SOON_DAYS)

    total = base.count()
    active = base.filter(Batch.status == "active").count()
    expiring_soon = base.filter(
        Batch.status == "active",
        Batch.expiry_date.isnot(None),
        Batch.expiry_date >= now,
        Batch.expiry_date <= soon,
    ).count()
    expired = base.filter(
        db.or_(
            Batch.status == "expired",
            db.and_(Batch.expiry_date.isnot(None), Batch.expiry_date < now),
        )
    ).count()
    total_quantity = (
        db.session.query(db.func.coalesce(db.func.sum(Batch.quantity), 0))
        .filter(Batch.company_id == company_id, Batch.status == "active")
        .scalar()
    )

    return {
        "total": total,
        "active": active,
        "expiring_soon": expiring_soon,
        "expired": expired,
        "total_quantity": to_number(total_quantity or 0),
    }
