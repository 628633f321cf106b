"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Centralize tenant validation logic for reuse across services and routes.
Every request is scoped to a company, and cross-tenant access must be
explicitly denied.

SECURITY INVARIANTS:
1. Every authenticated company request has g.company_id set
2. Ids from client input (warehouse, product, batch, inventory, user,
   category) are validated against g.company_id before use
3. A row owned by another company is reported exactly like a missing row
4. Cross-tenant access attempts are logged as security events

USAGE:
    from tubex.services.tenant_service import require_owned, get_current_company_id

    warehouse = require_owned(Warehouse, warehouse_id, g.company_id, label="Warehouse")
"""

from flask import g, has_request_context
from ..extensions import db
from ..models import Company
from .permission_service import log_request_event


class TenantAccessError(Exception):
    """Raised when a row is missing or owned by another tenant."""
    pass


def get_current_company_id() -> int:
    """
    Get current tenant's company_id from Flask g context.

    SECURITY: Raises TenantAccessError if company_id not set (platform
    admin sessions carry no company).
    """
    if not hasattr(g, "company_id") or g.company_id is None:
        raise TenantAccessError("Tenant context not established")
    return g.company_id


def get_current_company() -> Company:
    company = db.session.get(Company, get_current_company_id())
    if company is None:
        raise TenantAccessError("Company not found")
    return company


def require_owned(model, obj_id: int, company_id: int, *, label: str, owner_attr: str = "company_id"):
    """
    Load model row by id and require it to belong to company_id.

    owner_attr names the ownership column (Product uses supplier_id).

    Raises:
        TenantAccessError("<label> not found") when missing or foreign
    """
    obj = db.session.get(model, obj_id) if obj_id is not None else None

    if obj is None:
        raise TenantAccessError(f"{label} not found")

    owner_id = getattr(obj, owner_attr)
    if owner_id != company_id:
        # CRITICAL: Cross-tenant access attempt
        _log_cross_tenant_attempt(
            f"{label} {obj_id} belongs to company {owner_id}, not {company_id}",
            company_id=company_id,
        )
        raise TenantAccessError(f"{label} not found")  # Don't reveal it exists in another company

    return obj


def require_all_owned(model, obj_ids: list[int], company_id: int, *, label: str, owner_attr: str = "company_id") -> list:
    """
    Batch variant of require_owned. All ids must exist and belong to the
    company; otherwise nothing is returned.
    """
    if not obj_ids:
        return []

    rows = db.session.query(model).filter(model.id.in_(obj_ids)).all()

    missing_ids = set(obj_ids) - {r.id for r in rows}
    if missing_ids:
        raise TenantAccessError(f"One or more {label.lower()}s not found")

    for row in rows:
        owner_id = getattr(row, owner_attr)
        if owner_id != company_id:
            _log_cross_tenant_attempt(
                f"{label} {row.id} belongs to company {owner_id}, not {company_id}",
                company_id=company_id,
            )
            raise TenantAccessError(f"One or more {label.lower()}s not found")

    return rows


def scoped_query(model, company_id: int = None, owner_attr: str = "company_id"):
    """
    Base query filtered to the tenant's rows.

    Usage:
        warehouses = scoped_query(Warehouse).filter_by(status="active").all()
    """
    if company_id is None:
        company_id = get_current_company_id()
    return db.session.query(model).filter(getattr(model, owner_attr) == company_id)


def _log_cross_tenant_attempt(reason: str, company_id: int | None = None) -> None:
    """
    Log a cross-tenant access attempt as a security event.

    SECURITY: Critical audit trail for detecting unauthorized access attempts.
    """
    log_request_event(
        "CROSS_TENANT_ACCESS_DENIED",
        success=False,
        user=getattr(g, "current_user", None) if has_request_context() else None,
        company_id=company_id,
        reason=reason,
    )
