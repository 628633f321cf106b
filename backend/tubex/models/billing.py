from __future__ import annotations

from ..extensions import db
from ..numeric_utils import to_number
from ..time_utils import to_utc_z, to_iso_date
from .enums import (
    PAYMENT_METHODS,
    PAYMENT_TYPES,
    PAYMENT_RECORD_STATUSES,
    RECONCILIATION_STATUSES,
    INVOICE_STATUSES,
    PAYMENT_TERMS,
)


class Payment(db.Model):
    """
    Money received from (or refunded to) the customer of an order.

    MULTI-TENANT:
    - company_id: the supplier that received the money and records it
    - customer_company_id: the paying company (copied from the order)

    Rows are never edited after creation except to void them or to change
    reconciliation fields. Order.payment_status and Invoice.paid_amount are
    derived from the completed rows.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("company_id", "transaction_id", name="uq_payments_company_transaction"),
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        db.Index("ix_payments_company_id", "company_id"),
        db.Index("ix_payments_customer_company_id", "customer_company_id"),
        db.Index("ix_payments_order_id", "order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    customer_company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True)

    transaction_id = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(
        db.Enum(*PAYMENT_METHODS, name="payment_method"),
        nullable=False,
        default="bank_transfer",
        server_default="bank_transfer",
    )
    payment_type = db.Column(
        db.Enum(*PAYMENT_TYPES, name="payment_type"),
        nullable=False,
        default="payment",
        server_default="payment",
    )
    status = db.Column(
        db.Enum(*PAYMENT_RECORD_STATUSES, name="payment_record_status"),
        nullable=False,
        default="completed",
        server_default="completed",
    )
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    # Bank reference, cheque number, wallet transaction id
    external_reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    reconciliation_status = db.Column(
        db.Enum(*RECONCILIATION_STATUSES, name="reconciliation_status"),
        nullable=False,
        default="unreconciled",
        server_default="unreconciled",
    )
    reconciled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reconciled_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    void_reason = db.Column(db.Text, nullable=True)

    recorded_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    order = db.relationship("Order", backref=db.backref("payments", lazy=True, passive_deletes=True))
    invoice = db.relationship("Invoice", backref=db.backref("payments", lazy=True, passive_deletes=True))
    recorded_by = db.relationship("User", foreign_keys=[recorded_by_id])
    reconciled_by = db.relationship("User", foreign_keys=[reconciled_by_id])

    @property
    def signed_amount(self):
        """Refunds count against the amount paid."""
        return -self.amount if self.payment_type == "refund" else self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "customer_company_id": self.customer_company_id,
            "order_id": self.order_id,
            "invoice_id": self.invoice_id,
            "transaction_id": self.transaction_id,
            "amount": to_number(self.amount),
            "method": self.method,
            "payment_type": self.payment_type,
            "status": self.status,
            "payment_date": to_utc_z(self.payment_date),
            "external_reference": self.external_reference,
            "notes": self.notes,
            "reconciliation_status": self.reconciliation_status,
            "reconciled_at": to_utc_z(self.reconciled_at),
            "reconciled_by_id": self.reconciled_by_id,
            "voided_at": to_utc_z(self.voided_at),
            "void_reason": self.void_reason,
            "recorded_by_id": self.recorded_by_id,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
        }


class Invoice(db.Model):
    """
    Bill issued by a supplier for one order. At most one invoice per order.

    Drafts are private to the supplier; the customer company sees an
    invoice once it has been sent.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_invoices_order_id"),
        db.UniqueConstraint("company_id", "invoice_number", name="uq_invoices_company_number"),
        db.Index("ix_invoices_company_status", "company_id", "status"),
        db.Index("ix_invoices_customer_company_id", "customer_company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    customer_company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)

    invoice_number = db.Column(db.String(32), nullable=False)
    status = db.Column(
        db.Enum(*INVOICE_STATUSES, name="invoice_status"),
        nullable=False,
        default="draft",
        server_default="draft",
    )
    payment_term = db.Column(
        db.Enum(*PAYMENT_TERMS, name="payment_term"),
        nullable=False,
        default="net30",
        server_default="net30",
    )
    issue_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0, server_default="0")
    billing_address = db.Column(db.JSON, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    order = db.relationship("Order", backref=db.backref("invoice", uselist=False, passive_deletes=True))
    company = db.relationship("Company", foreign_keys=[company_id])
    customer_company = db.relationship("Company", foreign_keys=[customer_company_id])
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    items = db.relationship(
        "InvoiceItem",
        backref="invoice",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InvoiceItem.id",
    )

    @property
    def balance_due(self):
        return max(self.total_amount - self.paid_amount, 0)

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "company_id": self.company_id,
            "supplier_name": self.company.name if self.company else None,
            "customer_company_id": self.customer_company_id,
            "customer_company_name": self.customer_company.name if self.customer_company else None,
            "order_id": self.order_id,
            "status": self.status,
            "payment_term": self.payment_term,
            "issue_date": to_iso_date(self.issue_date),
            "due_date": to_iso_date(self.due_date),
            "total_amount": to_number(self.total_amount),
            "paid_amount": to_number(self.paid_amount),
            "balance_due": to_number(self.balance_due),
            "billing_address": self.billing_address,
            "notes": self.notes,
            "metadata": self.meta or {},
            "created_by_id": self.created_by_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(db.Model):
    """Invoice line copied from an order line when the invoice is drafted."""
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.Index("ix_invoice_items_invoice_id", "invoice_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    # Per-unit, as on the order line
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "description": self.description,
            "quantity": to_number(self.quantity),
            "unit_price": to_number(self.unit_price),
            "discount": to_number(self.discount),
            "line_total": to_number(self.line_total),
        }
