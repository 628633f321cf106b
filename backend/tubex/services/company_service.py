# Overview: Service-layer operations for companies; encapsulates business logic and database work.

"""
Company Directory and Profile Service

MULTI-TENANT: Companies are the tenants. Other tenants see only active
companies and only their public fields; a company always sees itself.
"""

from ..extensions import db
from ..models import Company
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    validate_address,
    parse_id_list,
)
from .tenant_service import TenantAccessError


COMPANY_PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "address",
        "business_category",
        "employee_count",
        "year_established",
        "contact_phone",
        "metadata",
    },
    required_on_create=set(),
)


def search_companies(
    *,
    search: str | None = None,
    company_type: str | None = None,
    status: str | None = "active",
):
    """Directory query, newest first. Caller paginates."""
    query = db.session.query(Company)
    if status:
        query = query.filter(Company.status == status)
    if company_type:
        if company_type not in ("dealer", "supplier"):
            raise ValidationError("type must be one of: dealer, supplier")
        query = query.filter(Company.type == company_type)
    if search:
        query = query.filter(Company.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Company.created_at.desc(), Company.id.desc())


def list_active_by_type(company_type: str) -> list[Company]:
    return db.session.query(Company).filter(
        Company.type == company_type,
        Company.status == "active",
    ).order_by(Company.name.asc()).all()


def get_visible_company(company_id: int, viewer_company_id: int | None) -> Company:
    """
    The viewer's own company is always visible; other companies only
    while active. Anything else reads as not found.
    """
    company = db.session.get(Company, company_id)
    if company is None:
        raise TenantAccessError("Company not found")
    if company.id != viewer_company_id and company.status != "active":
        raise TenantAccessError("Company not found")
    return company


def update_company_profile(company: Company, payload: dict) -> Company:
    """tax_id, type, status and tier are not writable here."""
    patch = validate_payload(model=Company, payload=payload, policy=COMPANY_PROFILE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    if "address" in patch:
        patch["address"] = validate_address(patch["address"])
    if patch.get("employee_count") is not None and patch["employee_count"] < 0:
        raise ValidationError("employee_count must be >= 0")

    for key, value in patch.items():
        setattr(company, key, value)
    db.session.commit()
    return company


def get_companies_batch(ids) -> list[Company]:
    company_ids = parse_id_list(ids, "ids")
    return db.session.query(Company).filter(
        Company.id.in_(company_ids),
        Company.status == "active",
    ).order_by(Company.id.asc()).all()
