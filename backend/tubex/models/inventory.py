from __future__ import annotations

from ..extensions import db
from ..numeric_utils import to_number
from ..time_utils import to_utc_z, to_iso_date
from .enums import WAREHOUSE_TYPES, WAREHOUSE_STATUSES, BATCH_STATUSES, INVENTORY_STATUSES


class Warehouse(db.Model):
    """
    Company-scoped stock location.

    MULTI-TENANT: Warehouse names are unique within a company, not globally.
    Deleting a warehouse that still holds inventory rows is refused by
    warehouse_service; the FK cascade only applies when the company goes.
    """
    __tablename__ = "warehouses"
    __table_args__ = (
        db.UniqueConstraint("company_id", "name", name="uq_warehouses_company_name"),
        db.Index("ix_warehouses_company_type", "company_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.Text, nullable=False)
    capacity = db.Column(db.Numeric(12, 2), nullable=True)
    # {"name", "phone", "email"}
    contact_info = db.Column(db.JSON, nullable=True)
    type = db.Column(
        db.Enum(*WAREHOUSE_TYPES, name="warehouse_type"),
        nullable=False,
        default="storage",
        server_default="storage",
    )
    status = db.Column(
        db.Enum(*WAREHOUSE_STATUSES, name="warehouse_status"),
        nullable=False,
        default="active",
        server_default="active",
    )
    notes = db.Column(db.Text, nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship("Company", backref=db.backref("warehouses", lazy=True, passive_deletes=True))

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r} company_id={self.company_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "address": self.address,
            "capacity": to_number(self.capacity),
            "contact_info": self.contact_info or {},
            "type": self.type,
            "status": self.status,
            "notes": self.notes,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Batch(db.Model):
    """
    Expiry-tracked lot of a product in a warehouse.

    MULTI-TENANT: batch_number is unique per company (the same number may
    exist in another company). All FKs cascade.

    FIFO: negative inventory adjustments consume active batches ordered by
    expiry_date then created_at.
    """
    __tablename__ = "batches"
    __table_args__ = (
        db.UniqueConstraint("batch_number", "company_id", name="uq_batches_number_company"),
        db.Index("ix_batches_company_id", "company_id"),
        db.Index("ix_batches_product_id", "product_id"),
        db.Index("ix_batches_warehouse_id", "warehouse_id"),
        db.Index("ix_batches_expiry_date", "expiry_date"),
        db.Index("ix_batches_company_expiry", "company_id", "expiry_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    batch_number = db.Column(db.String(100), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)

    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    unit = db.Column(db.String(50), nullable=False)
    manufacturing_date = db.Column(db.Date, nullable=True)
    expiry_date = db.Column(db.Date, nullable=True)
    status = db.Column(
        db.Enum(*BATCH_STATUSES, name="batch_status"),
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

    product = db.relationship("Product", backref=db.backref("batches", lazy=True, passive_deletes=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("batches", lazy=True, passive_deletes=True))
    company = db.relationship("Company", backref=db.backref("batches", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_number": self.batch_number,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "warehouse_id": self.warehouse_id,
            "warehouse_name": self.warehouse.name if self.warehouse else None,
            "company_id": self.company_id,
            "quantity": to_number(self.quantity),
            "unit": self.unit,
            "manufacturing_date": to_iso_date(self.manufacturing_date),
            "expiry_date": to_iso_date(self.expiry_date),
            "status": self.status,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Inventory(db.Model):
    """
    Stock level of one product in one warehouse of one company.

    MULTI-TENANT: UNIQUE(product_id, warehouse_id, company_id). All FKs
    cascade. quantity never goes negative (inventory_service refuses).

    REORDER: quantity <= min_threshold is "low stock"; with auto_reorder the
    adjustment path stamps last_reorder_date and records an analytics event.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", "company_id", name="uq_inventory_product_warehouse_company"),
        db.Index("ix_inventory_company_warehouse", "company_id", "warehouse_id"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False)

    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    unit = db.Column(db.String(50), nullable=False)
    min_threshold = db.Column(db.Numeric(12, 2), nullable=True)
    max_threshold = db.Column(db.Numeric(12, 2), nullable=True)
    reorder_point = db.Column(db.Numeric(12, 2), nullable=True)
    reorder_quantity = db.Column(db.Numeric(12, 2), nullable=True)
    auto_reorder = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    last_reorder_date = db.Column(db.DateTime(timezone=True), nullable=True)
    status = db.Column(
        db.Enum(*INVENTORY_STATUSES, name="inventory_status"),
        nullable=False,
        default="active",
        server_default="active",
    )
    meta = db.Column("metadata", db.JSON, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventory_items", lazy=True, passive_deletes=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("inventory_items", lazy=True, passive_deletes=True))
    company = db.relationship("Company", backref=db.backref("inventory_items", lazy=True, passive_deletes=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        if self.min_threshold is None:
            return False
        return self.quantity <= self.min_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "warehouse_id": self.warehouse_id,
            "warehouse_name": self.warehouse.name if self.warehouse else None,
            "company_id": self.company_id,
            "quantity": to_number(self.quantity),
            "unit": self.unit,
            "min_threshold": to_number(self.min_threshold),
            "max_threshold": to_number(self.max_threshold),
            "reorder_point": to_number(self.reorder_point),
            "reorder_quantity": to_number(self.reorder_quantity),
            "auto_reorder": self.auto_reorder,
            "last_reorder_date": to_utc_z(self.last_reorder_date) if self.last_reorder_date else None,
            "status": self.status,
            "low_stock": self.is_low_stock,
            "metadata": self.meta or {},
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
