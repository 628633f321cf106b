from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .enums import COMPANY_TYPES, SUBSCRIPTION_TIERS, COMPANY_STATUSES


class Company(db.Model):
    """
    Multi-tenant root: every tenant is a Company (dealer or supplier).

    WHY: Shared-database multi-tenancy with strict isolation.
    Users, categories, products, warehouses, batches, inventory and orders
    all carry a company FK with ON DELETE CASCADE, so removing a company
    removes everything it owns.

    VERIFICATION:
    - New registrations start as pending_verification
    - A platform admin approves (active) or rejects (rejected)
    - Active companies may later be suspended and reinstated
    - Verification details live in metadata["verification"]
    """
    __tablename__ = "companies"
    __table_args__ = (
        db.Index("ix_companies_type", "type"),
        db.Index("ix_companies_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.Enum(*COMPANY_TYPES, name="company_type"), nullable=False)

    # Tax IDs are globally unique: one registration per legal entity
    tax_id = db.Column(db.String(20), nullable=False, unique=True, index=True)
    business_license = db.Column(db.String(100), nullable=False)

    # {"street", "city", "province", "postal_code"}
    address = db.Column(db.JSON, nullable=False)

    business_category = db.Column(db.String(100), nullable=True)
    employee_count = db.Column(db.Integer, nullable=True)
    year_established = db.Column(db.Integer, nullable=True)
    contact_phone = db.Column(db.String(20), nullable=False)

    subscription_tier = db.Column(
        db.Enum(*SUBSCRIPTION_TIERS, name="subscription_tier"),
        nullable=False,
        default="free",
        server_default="free",
    )
    status = db.Column(
        db.Enum(*COMPANY_STATUSES, name="company_status"),
        nullable=False,
        default="pending_verification",
        server_default="pending_verification",
    )

    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_operational(self) -> bool:
        """Pending companies can sign in and set up; suspended/rejected cannot."""
        return self.status in ("active", "pending_verification")

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "tax_id": self.tax_id,
            "business_license": self.business_license,
            "address": self.address,
            "business_category": self.business_category,
            "employee_count": self.employee_count,
            "year_established": self.year_established,
            "contact_phone": self.contact_phone,
            "subscription_tier": self.subscription_tier,
            "status": self.status,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_public_dict(self) -> dict:
        """Directory view shown to other tenants (no license/tax details)."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "address": self.address,
            "business_category": self.business_category,
            "contact_phone": self.contact_phone,
            "status": self.status,
        }
