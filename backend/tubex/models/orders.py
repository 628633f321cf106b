from __future__ import annotations

from ..extensions import db
from ..numeric_utils import to_number
from ..time_utils import to_utc_z
from .enums import ORDER_STATUSES, PAYMENT_STATUSES


class Order(db.Model):
    """
    Purchase order placed by a customer company with a supplier company.

    MULTI-TENANT:
    - company_id: the fulfilling supplier (owns the products and stock)
    - customer_company_id: the ordering company
    - customer_id: the ordering user
    Both companies can read the order; only the supplier moves its status
    (the customer may cancel while pending).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_company_id", "company_id"),
        db.Index("ix_orders_status", "status"),
        db.Index("ix_orders_company_status", "company_id", "status"),
        db.Index("ix_orders_customer_company_id", "customer_company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    customer_company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    status = db.Column(
        db.Enum(*ORDER_STATUSES, name="order_status"),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    payment_status = db.Column(
        db.Enum(*PAYMENT_STATUSES, name="payment_status"),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    payment_method = db.Column(db.String(50), nullable=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    delivery_address = db.Column(db.JSON, nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship(
        "Company",
        foreign_keys=[company_id],
        backref=db.backref("incoming_orders", lazy=True, passive_deletes=True),
    )
    customer_company = db.relationship(
        "Company",
        foreign_keys=[customer_company_id],
        backref=db.backref("outgoing_orders", lazy=True, passive_deletes=True),
    )
    customer = db.relationship("User", foreign_keys=[customer_id])
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "supplier_name": self.company.name if self.company else None,
            "customer_company_id": self.customer_company_id,
            "customer_company_name": self.customer_company.name if self.customer_company else None,
            "customer_id": self.customer_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "total_amount": to_number(self.total_amount),
            "delivery_address": self.delivery_address,
            "metadata": self.meta or {},
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """
    Order line. unit_price is snapshotted from Product.base_price at order
    time; metadata["allocations"] records which inventory rows were drawn
    down so cancellation can restore them exactly.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.Index("ix_order_items_order_id", "order_id"),
        db.Index("ix_order_items_product_id", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    meta = db.Column("metadata", db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    @property
    def line_total(self):
        return (self.unit_price - self.discount) * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": to_number(self.quantity),
            "unit_price": to_number(self.unit_price),
            "discount": to_number(self.discount),
            "line_total": to_number(self.line_total),
            "metadata": self.meta or {},
        }


class OrderHistory(db.Model):
    """
    Status-transition audit trail. IMMUTABLE: append-only.

    previous_status is NULL for the creation entry.
    """
    __tablename__ = "order_history"
    __table_args__ = (
        db.Index("ix_order_history_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    previous_status = db.Column(db.String(20), nullable=True)
    new_status = db.Column(db.String(20), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("history", lazy=True, passive_deletes=True))
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "user_email": self.user.email if self.user else None,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "notes": self.notes,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
        }
