# backend/tubex/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: Products are owned by a supplier company (supplier_id).
- The catalog shows active products of active suppliers to every tenant
- A supplier additionally sees its own inactive products
- Only the owning supplier creates, updates or deactivates a product
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, Company, ProductCategory
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_product,
    parse_id_list,
)
from .tenant_service import require_owned, require_all_owned, TenantAccessError
from .permission_service import PermissionDeniedError


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "base_price", "unit", "status", "category_id", "metadata"},
    required_on_create={"name", "base_price", "unit"},
)


def catalog_query(
    viewer_company_id: int,
    *,
    search: str | None = None,
    status: str | None = "active",
    supplier_id: int | None = None,
    category_id: int | None = None,
):
    """
    Catalog listing query, newest first. Caller paginates.

    Inactive products are only listed for their own supplier. An empty
    status means active.
    """
    status = status or "active"
    query = (
        db.session.query(Product)
        .join(Company, Company.id == Product.supplier_id)
        .filter(db.or_(Company.status == "active", Product.supplier_id == viewer_company_id))
    )

    if status not in ("active", "inactive"):
        raise ValidationError("status must be one of: active, inactive")
    query = query.filter(Product.status == status)
    if status == "inactive":
        query = query.filter(Product.supplier_id == viewer_company_id)

    if supplier_id is not None:
        query = query.filter(Product.supplier_id == supplier_id)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(term), Product.description.ilike(term)))

    return query.order_by(Product.created_at.desc(), Product.id.desc())


def get_visible_product(viewer_company_id: int, product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise TenantAccessError("Product not found")
    if product.supplier_id == viewer_company_id:
        return product
    if product.status != "active" or not product.supplier or product.supplier.status != "active":
        raise TenantAccessError("Product not found")
    return product


def _require_supplier(company: Company) -> None:
    if company.type != "supplier":
        raise PermissionDeniedError("Only suppliers can manage products")


def _check_category(company_id: int, patch: dict) -> None:
    if patch.get("category_id") is not None:
        require_owned(ProductCategory, patch["category_id"], company_id, label="Category")


def create_product(company: Company, payload: dict) -> Product:
    _require_supplier(company)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    _check_category(company.id, patch)

    product = Product(supplier_id=company.id, **patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(company: Company, product_id: int, payload: dict) -> Product:
    _require_supplier(company)
    product = require_owned(Product, product_id, company.id, label="Product", owner_attr="supplier_id")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    enforce_rules_product(patch)
    _check_category(company.id, patch)

    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def deactivate_product(company: Company, product_id: int) -> Product:
    """Soft delete: status -> inactive."""
    _require_supplier(company)
    product = require_owned(Product, product_id, company.id, label="Product", owner_attr="supplier_id")
    product.status = "inactive"
    db.session.commit()
    return product


def bulk_update_status(company: Company, product_ids, status: str) -> int:
    """All ids must be the caller's products; otherwise nothing changes."""
    _require_supplier(company)
    ids = parse_id_list(product_ids, "product_ids")
    if status not in ("active", "inactive"):
        raise ValidationError("status must be one of: active, inactive")

    products = require_all_owned(Product, ids, company.id, label="Product", owner_attr="supplier_id")
    for product in products:
        product.status = status
    db.session.commit()
    return len(products)
