# Overview: Service-layer operations for product categories; encapsulates business logic and database work.

"""
Product Category Service

MULTI-TENANT: Categories belong to one company. A parent must be in the
same company, and the parent chain may never loop back on itself.
Sibling names are unique (company, parent, name).
"""

from __future__ import annotations

from ..extensions import db
from ..models import ProductCategory
from ..validation import ModelValidationPolicy, ValidationError, ConflictError, validate_payload
from .tenant_service import require_owned


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "parent_id", "metadata"},
    required_on_create={"name"},
)


def list_categories(company_id: int, parent_id: int | None = None) -> list[ProductCategory]:
    query = db.session.query(ProductCategory).filter(ProductCategory.company_id == company_id)
    if parent_id is not None:
        query = query.filter(ProductCategory.parent_id == parent_id)
    return query.order_by(ProductCategory.name.asc(), ProductCategory.id.asc()).all()


def get_category(company_id: int, category_id: int) -> ProductCategory:
    return require_owned(ProductCategory, category_id, company_id, label="Category")


def category_tree(company_id: int) -> list[dict]:
    """Nested {..., "children": [...]} dicts, roots first, names ascending."""
    rows = list_categories(company_id)
    nodes = {c.id: {**c.to_dict(), "children": []} for c in rows}
    roots = []
    for c in rows:
        node = nodes[c.id]
        if c.parent_id is not None and c.parent_id in nodes:
            nodes[c.parent_id]["children"].append(node)
        else:
            roots.append(node)
    return roots


def _ensure_unique_name(company_id: int, parent_id: int | None, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(ProductCategory.id).filter(
        ProductCategory.company_id == company_id,
        ProductCategory.name == name,
    )
    if parent_id is None:
        query = query.filter(ProductCategory.parent_id.is_(None))
    else:
        query = query.filter(ProductCategory.parent_id == parent_id)
    if exclude_id is not None:
        query = query.filter(ProductCategory.id != exclude_id)
    if query.first():
        raise ConflictError("A category with this name already exists here")


def _ensure_no_cycle(category_id: int, parent: ProductCategory) -> None:
    node = parent
    while node is not None:
        if node.id == category_id:
            raise ValidationError("A category cannot be its own ancestor")
        node = node.parent


def create_category(company_id: int, payload: dict) -> ProductCategory:
    patch = validate_payload(model=ProductCategory, payload=payload, policy=CATEGORY_POLICY, partial=False)

    parent_id = patch.get("parent_id")
    if parent_id is not None:
        require_owned(ProductCategory, parent_id, company_id, label="Parent category")

    _ensure_unique_name(company_id, parent_id, patch["name"])

    category = ProductCategory(company_id=company_id, **patch)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(company_id: int, category_id: int, payload: dict) -> ProductCategory:
    category = get_category(company_id, category_id)
    patch = validate_payload(model=ProductCategory, payload=payload, policy=CATEGORY_POLICY, partial=True)

    parent_id = patch.get("parent_id", category.parent_id)
    if "parent_id" in patch and parent_id is not None:
        parent = require_owned(ProductCategory, parent_id, company_id, label="Parent category")
        _ensure_no_cycle(category.id, parent)

    name = patch.get("name", category.name)
    if "name" in patch or "parent_id" in patch:
        _ensure_unique_name(company_id, parent_id, name, exclude_id=category.id)

    for key, value in patch.items():
        setattr(category, key, value)
    db.session.commit()
    return category


def delete_category(company_id: int, category_id: int) -> None:
    """Children and products are detached by ON DELETE SET NULL."""
    category = get_category(company_id, category_id)
    db.session.delete(category)
    db.session.commit()
