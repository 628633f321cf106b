"""
Document store models.

These tables live on the "documents" bind (SQLALCHEMY_BINDS["documents"]),
a database separate from the relational store. Each row is a denormalized,
schema-flexible document: identifying/indexed fields are columns, the rest
is JSON. There are no foreign keys into the relational store; ids are copied
by value so documents survive the rows they describe.
"""

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class OrderDocument(db.Model):
    """Denormalized copy of an order, refreshed on every change."""
    __bind_key__ = "documents"
    __tablename__ = "order_documents"
    __table_args__ = (
        db.Index("ix_order_documents_company_id", "company_id"),
        db.Index("ix_order_documents_customer_company_id", "customer_company_id"),
        db.Index("ix_order_documents_created_at", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, nullable=False, unique=True)
    company_id = db.Column(db.Integer, nullable=False)
    customer_company_id = db.Column(db.Integer, nullable=True)
    customer_id = db.Column(db.Integer, nullable=True)
    items = db.Column(db.JSON, nullable=False)
    status = db.Column(db.String(20), nullable=False)
    payment_status = db.Column(db.String(20), nullable=False)
    payment_method = db.Column(db.String(50), nullable=True)
    delivery_address = db.Column(db.JSON, nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "company_id": self.company_id,
            "customer_company_id": self.customer_company_id,
            "customer_id": self.customer_id,
            "items": self.items,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "delivery_address": self.delivery_address,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class AnalyticsEvent(db.Model):
    __bind_key__ = "documents"
    __tablename__ = "analytics_events"
    __table_args__ = (
        db.Index("ix_analytics_events_company_timestamp", "company_id", "timestamp"),
        db.Index("ix_analytics_events_event_type", "event_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False)
    company_id = db.Column(db.Integer, nullable=True)
    user_id = db.Column(db.Integer, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)
    data = db.Column(db.JSON, nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "company_id": self.company_id,
            "user_id": self.user_id,
            "timestamp": to_utc_z(self.timestamp),
            "data": self.data or {},
            "metadata": self.meta or {},
        }


class AuditLogEntry(db.Model):
    """Entity-level change log (company verification, order status, stock moves)."""
    __bind_key__ = "documents"
    __tablename__ = "audit_log_entries"
    __table_args__ = (
        db.Index("ix_audit_log_entries_company_timestamp", "company_id", "timestamp"),
        db.Index("ix_audit_log_entries_entity", "entity_type", "entity_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(64), nullable=False)
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    company_id = db.Column(db.Integer, nullable=True)
    user_id = db.Column(db.Integer, nullable=True)
    changes = db.Column(db.JSON, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "company_id": self.company_id,
            "user_id": self.user_id,
            "changes": self.changes or {},
            "timestamp": to_utc_z(self.timestamp),
        }


class CustomerActivity(db.Model):
    __bind_key__ = "documents"
    __tablename__ = "customer_activities"
    __table_args__ = (
        db.Index("ix_customer_activities_customer_timestamp", "customer_id", "timestamp"),
        db.Index("ix_customer_activities_company_timestamp", "company_id", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, nullable=False)
    company_id = db.Column(db.Integer, nullable=True)
    activity_type = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "company_id": self.company_id,
            "activity_type": self.activity_type,
            "description": self.description,
            "metadata": self.meta or {},
            "timestamp": to_utc_z(self.timestamp),
        }
