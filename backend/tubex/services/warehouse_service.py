# Overview: Service-layer operations for warehouses; encapsulates business logic and database work.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Warehouse, Inventory
from ..numeric_utils import quantize_money, to_number
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    validate_payload,
    enforce_rules_warehouse,
)
from .tenant_service import require_owned


WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "capacity", "contact_info", "type", "status", "notes", "metadata"},
    required_on_create={"name", "address"},
)


def list_warehouses(company_id: int, *, warehouse_type: str | None = None, status: str | None = None) -> list[Warehouse]:
    query = db.session.query(Warehouse).filter(Warehouse.company_id == company_id)
    if warehouse_type:
        query = query.filter(Warehouse.type == warehouse_type)
    if status:
        query = query.filter(Warehouse.status == status)
    return query.order_by(Warehouse.name.asc(), Warehouse.id.asc()).all()


def get_warehouse(company_id: int, warehouse_id: int) -> Warehouse:
    return require_owned(Warehouse, warehouse_id, company_id, label="Warehouse")


def _ensure_unique_name(company_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Warehouse.id).filter(Warehouse.company_id == company_id, Warehouse.name == name)
    if exclude_id is not None:
        query = query.filter(Warehouse.id != exclude_id)
    if query.first():
        raise ConflictError("A warehouse with this name already exists")


def create_warehouse(company_id: int, payload: dict) -> Warehouse:
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
    enforce_rules_warehouse(patch)
    _ensure_unique_name(company_id, patch["name"])

    warehouse = Warehouse(company_id=company_id, **patch)
    db.session.add(warehouse)
    db.session.commit()
    return warehouse


def update_warehouse(company_id: int, warehouse_id: int, payload: dict) -> Warehouse:
    warehouse = get_warehouse(company_id, warehouse_id)
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    enforce_rules_warehouse(patch)
    if "name" in patch:
        _ensure_unique_name(company_id, patch["name"], exclude_id=warehouse.id)

    for key, value in patch.items():
        setattr(warehouse, key, value)
    db.session.commit()
    return warehouse


def delete_warehouse(company_id: int, warehouse_id: int) -> None:
    warehouse = get_warehouse(company_id, warehouse_id)
    has_stock_rows = db.session.query(Inventory.id).filter(Inventory.warehouse_id == warehouse.id).first()
    if has_stock_rows:
        raise ConflictError("Cannot delete a warehouse that still has inventory")
    db.session.delete(warehouse)
    db.session.commit()


def warehouse_capacity(company_id: int, warehouse_id: int) -> dict:
    """
    Capacity report. current_usage is the sum of inventory quantity;
    utilization is 0 when no capacity is configured.
    """
    warehouse = get_warehouse(company_id, warehouse_id)
    usage = db.session.query(db.func.coalesce(db.func.sum(Inventory.quantity), 0)).filter(
        Inventory.warehouse_id == warehouse.id,
        Inventory.company_id == company_id,
    ).scalar()
    usage = Decimal(str(usage or 0))

    total = warehouse.capacity
    if total:
        available = total - usage
        utilization = quantize_money(usage / total * 100)
    else:
        available = None
        utilization = Decimal("0")

    return {
        "warehouse_id": warehouse.id,
        "total_capacity": to_number(total),
        "current_usage": to_number(usage),
        "available_capacity": to_number(available),
        "utilization_percentage": to_number(utilization),
    }
