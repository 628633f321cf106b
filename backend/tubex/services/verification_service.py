# Overview: Service-layer operations for company verification; encapsulates business logic and database work.

"""
Company Verification Service (platform admins)

LIFECYCLE:
    pending_verification --approve--> active
    pending_verification --reject---> rejected
    active <--suspend / reinstate--> suspended

Verification outcome is stored in Company.metadata["verification"] and
mirrored to the document store audit trail. Suspension and rejection
revoke every session of the company.
"""

import logging

from ..extensions import db
from ..models import Company, User
from ..time_utils import utcnow, to_utc_z
from ..validation import ValidationError
from .document_service import record_audit_entry
from .session_service import revoke_company_sessions
from .tenant_service import TenantAccessError

logger = logging.getLogger(__name__)


def list_pending_companies() -> list[Company]:
    return db.session.query(Company).filter(
        Company.status == "pending_verification",
    ).order_by(Company.created_at.asc(), Company.id.asc()).all()


def _get_company(company_id: int) -> Company:
    company = db.session.get(Company, company_id)
    if company is None:
        raise TenantAccessError("Company not found")
    return company


def verify_company(admin: User, company_id: int, approve, reason: str | None = None) -> Company:
    """Approve or reject a pending registration."""
    if not isinstance(approve, bool):
        raise ValidationError("approve must be a boolean")

    company = _get_company(company_id)
    if company.status != "pending_verification":
        raise ValidationError("Company is not pending verification")

    reason = (reason or "").strip() or None
    if not approve and not reason:
        raise ValidationError("A reason is required when rejecting a company")

    previous_status = company.status
    company.status = "active" if approve else "rejected"

    meta = dict(company.meta or {})
    meta["verification"] = {
        "verified_at": to_utc_z(utcnow()),
        "verified_by": admin.id,
        "rejection_reason": None if approve else reason,
    }
    company.meta = meta

    if not approve:
        revoke_company_sessions(company.id, reason="Company rejected", commit=False)

    record_audit_entry(
        "company_verified" if approve else "company_rejected",
        entity_type="company",
        entity_id=company.id,
        company_id=company.id,
        user_id=admin.id,
        changes={"status": {"from": previous_status, "to": company.status}, "reason": reason},
    )
    db.session.commit()

    logger.info("Company %s %s by platform admin %s", company.id, company.status, admin.id)
    return company


def set_company_status(admin: User, company_id: int, status: str, reason: str | None = None) -> Company:
    """Suspend an active company or reinstate a suspended one."""
    if status not in ("active", "suspended"):
        raise ValidationError("status must be one of: active, suspended")

    company = _get_company(company_id)
    if company.status not in ("active", "suspended"):
        raise ValidationError("Only verified companies can be suspended or reinstated")
    if company.status == status:
        raise ValidationError(f"Company is already {status}")

    previous_status = company.status
    company.status = status

    meta = dict(company.meta or {})
    history = list(meta.get("status_history") or [])
    history.append({
        "from": previous_status,
        "to": status,
        "reason": reason,
        "changed_by": admin.id,
        "changed_at": to_utc_z(utcnow()),
    })
    meta["status_history"] = history
    company.meta = meta

    if status == "suspended":
        revoke_company_sessions(company.id, reason="Company suspended", commit=False)

    record_audit_entry(
        "company_status_changed",
        entity_type="company",
        entity_id=company.id,
        company_id=company.id,
        user_id=admin.id,
        changes={"status": {"from": previous_status, "to": status}, "reason": reason},
    )
    db.session.commit()

    logger.info("Company %s status %s -> %s", company.id, previous_status, status)
    return company
