# Overview: Service-layer operations for company user management; encapsulates business logic and database work.

"""
User Management Service

Admins change roles and status of users in their own company, approve
invited employees, and remove users. Every change writes an immutable
UserAuditLog row with the previous and new role/status.

SAFETY RULES:
- Nobody modifies or removes themselves through these paths
- A company always keeps at least one active admin
- Deactivation and removal revoke the user's sessions
"""

import logging

from ..extensions import db
from ..models import User, UserAuditLog
from ..validation import ValidationError, ConflictError
from .auth_service import PROFILE_FIELDS, can_assign_role
from .session_service import revoke_all_user_sessions
from .tenant_service import require_owned

logger = logging.getLogger(__name__)

AUDIT_LOG_LIMIT = 100


def list_users(company_id: int, *, role: str | None = None, status: str | None = None) -> list[User]:
    query = db.session.query(User).filter(User.company_id == company_id)
    if role:
        query = query.filter(User.role == role)
    if status:
        query = query.filter(User.status == status)
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def update_profile(user: User, payload: dict) -> User:
    """Profile fields are merged into metadata; other keys are rejected."""
    if not isinstance(payload, dict) or not payload:
        raise ValidationError("No profile fields provided")

    unknown = sorted(set(payload) - set(PROFILE_FIELDS))
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    meta = dict(user.meta or {})
    for field in PROFILE_FIELDS:
        if field in payload:
            value = payload[field]
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{field} must be a string")
            meta[field] = value.strip() if isinstance(value, str) else None
    user.meta = meta
    db.session.commit()
    return user


def _count_active_admins(company_id: int) -> int:
    return db.session.query(User).filter(
        User.company_id == company_id,
        User.role == "admin",
        User.status == "active",
    ).count()


def _guard_last_admin(target: User, new_role: str, new_status: str) -> None:
    """Refuse a change that would leave the company without an active admin."""
    was_active_admin = target.role == "admin" and target.status == "active"
    stays_active_admin = new_role == "admin" and new_status == "active"
    if was_active_admin and not stays_active_admin and _count_active_admins(target.company_id) <= 1:
        raise ConflictError("Cannot remove the last active admin of the company")


def _load_target(actor: User, user_id: int) -> User:
    target = require_owned(User, user_id, actor.company_id, label="User")
    if target.id == actor.id:
        raise ValidationError("You cannot modify your own account here")
    return target


def _write_audit(actor: User, target: User, action: str, previous: dict, reason: str | None) -> UserAuditLog:
    log = UserAuditLog(
        company_id=target.company_id,
        target_user_id=target.id,
        performed_by_id=actor.id,
        action=action,
        changes={
            "previous": previous,
            "new": {"role": target.role, "status": target.status},
        },
        reason=reason,
    )
    db.session.add(log)
    return log


def update_user(actor: User, user_id: int, payload: dict) -> User:
    """
    Change role and/or status of a company user.

    payload: {role?, status?, reason?}
    """
    target = _load_target(actor, user_id)

    new_role = payload.get("role", target.role)
    new_status = payload.get("status", target.status)

    if "role" not in payload and "status" not in payload:
        raise ValidationError("Provide role or status")
    if new_role not in ("admin", "manager", "staff"):
        raise ValidationError("role must be one of: admin, manager, staff")
    if new_status not in ("pending", "active", "inactive"):
        raise ValidationError("status must be one of: pending, active, inactive")
    if new_role != target.role and not can_assign_role(actor, new_role):
        raise ValidationError("Cannot assign a role higher than your own")

    _guard_last_admin(target, new_role, new_status)

    previous = {"role": target.role, "status": target.status}
    role_changed = new_role != target.role
    status_changed = new_status != target.status

    target.role = new_role
    target.status = new_status

    reason = payload.get("reason")
    if role_changed:
        _write_audit(actor, target, "role_update", previous, reason)
    if status_changed:
        _write_audit(actor, target, "status_update", previous, reason)

    if status_changed and new_status != "active":
        revoke_all_user_sessions(target.id, reason="User deactivated", commit=False)

    db.session.commit()
    logger.info("User %s updated by %s: %s -> %s", target.id, actor.id, previous, {"role": new_role, "status": new_status})
    return target


def remove_user(actor: User, user_id: int, reason: str | None = None) -> User:
    """Soft removal: status -> inactive, sessions revoked."""
    target = _load_target(actor, user_id)
    _guard_last_admin(target, target.role, "inactive")

    previous = {"role": target.role, "status": target.status}
    target.status = "inactive"
    _write_audit(actor, target, "removal", previous, reason)
    revoke_all_user_sessions(target.id, reason="User removed", commit=False)

    db.session.commit()
    return target


def verify_employee(actor: User, user_id: int, approve: bool, reason: str | None = None) -> User:
    """Approve (active) or reject (inactive) a pending employee."""
    target = _load_target(actor, user_id)
    if target.status != "pending":
        raise ValidationError("Only pending users can be verified")

    previous = {"role": target.role, "status": target.status}
    target.status = "active" if approve else "inactive"
    _write_audit(actor, target, "status_update", previous, reason)

    db.session.commit()
    return target


def list_audit_logs(company_id: int, target_user_id: int | None = None) -> list[UserAuditLog]:
    query = db.session.query(UserAuditLog).filter(UserAuditLog.company_id == company_id)
    if target_user_id is not None:
        query = query.filter(UserAuditLog.target_user_id == target_user_id)
    return query.order_by(UserAuditLog.created_at.desc(), UserAuditLog.id.desc()).limit(AUDIT_LOG_LIMIT).all()
