from __future__ import annotations

from ..extensions import db
from ..numeric_utils import to_number
from ..time_utils import to_utc_z
from .enums import PRODUCT_STATUSES


class ProductCategory(db.Model):
    """
    Company-owned product category tree.

    MULTI-TENANT: company_id FK CASCADE. A parent must belong to the same
    company (enforced in category_service); deleting a parent detaches its
    children (parent_id ON DELETE SET NULL).
    """
    __tablename__ = "product_categories"
    __table_args__ = (
        db.UniqueConstraint("company_id", "parent_id", "name", name="uq_product_categories_company_parent_name"),
        db.Index("ix_product_categories_company_id", "company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    parent_id = db.Column(
        db.Integer,
        db.ForeignKey("product_categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship("Company", backref=db.backref("product_categories", lazy=True, passive_deletes=True))
    parent = db.relationship(
        "ProductCategory",
        remote_side=[id],
        backref=db.backref("children", lazy=True, passive_deletes=True),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "description": self.description,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Supplier-owned catalog product.

    MULTI-TENANT: supplier_id is the owning company (must be of type
    supplier). Only the supplier may modify it; other tenants see active
    products of active suppliers.

    SOFT DELETE: status -> inactive so order items keep their product.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_supplier_status", "supplier_id", "status"),
        db.Index("ix_products_category_id", "category_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    category_id = db.Column(
        db.Integer,
        db.ForeignKey("product_categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    base_price = db.Column(db.Numeric(10, 2), nullable=False)
    unit = db.Column(db.String(50), nullable=False)
    status = db.Column(
        db.Enum(*PRODUCT_STATUSES, name="product_status"),
        nullable=False,
        default="active",
        server_default="active",
    )
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Company", backref=db.backref("products", lazy=True, passive_deletes=True))
    category = db.relationship("ProductCategory", backref=db.backref("products", lazy=True, passive_deletes=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} supplier_id={self.supplier_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "name": self.name,
            "description": self.description,
            "base_price": to_number(self.base_price),
            "unit": self.unit,
            "status": self.status,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
