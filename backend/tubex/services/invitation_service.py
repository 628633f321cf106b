# Overview: Service-layer operations for employee invitations; encapsulates business logic and database work.

"""
Invitation Service

An admin or manager creates an invitation for an email and role. The
8-character code travels out of band; the invitee looks it up, then
registers with it and lands as a pending user of the inviting company
until an admin approves them (users route POST /<id>/verify).

MULTI-TENANT: Invitations are company-scoped for listing and revoking.
Code lookup is public, so responses expose only what the invitee needs.
"""

import logging
import secrets
import string
from datetime import timedelta

from ..extensions import db
from ..models import Invitation, User
from ..time_utils import utcnow
from ..validation import ValidationError, ConflictError, require_fields
from .auth_service import (
    normalize_email,
    ensure_email_available,
    validate_password_strength,
    create_user,
    can_assign_role,
    extract_profile,
)
from .tenant_service import require_owned, TenantAccessError

logger = logging.getLogger(__name__)

INVITATION_TTL = timedelta(days=7)
CODE_LENGTH = 8
MIN_LOOKUP_CODE_LENGTH = 5
CODE_ALPHABET = string.ascii_uppercase + string.digits


class InvitationError(Exception):
    """Invitation cannot be used (expired, revoked, accepted, wrong email)."""
    pass


def _generate_code() -> str:
    while True:
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
        if not db.session.query(Invitation.id).filter_by(code=code).first():
            return code


def create_invitation(inviter: User, payload: dict) -> Invitation:
    """
    Invite an employee into the inviter's company.

    The invited role may not outrank the inviter. The company must be
    active or still pending verification.
    """
    require_fields(payload, "email", "role")
    email = normalize_email(payload["email"])
    role = payload["role"]

    if role not in ("admin", "manager", "staff"):
        raise ValidationError("role must be one of: admin, manager, staff")
    if not can_assign_role(inviter, role):
        raise ValidationError("Cannot invite a user with a higher role than your own")

    company = inviter.company
    if company is None or not company.is_operational:
        raise ValidationError("Company is not active")

    ensure_email_available(email)

    pending = db.session.query(Invitation).filter_by(
        company_id=company.id, email=email, status="pending",
    ).first()
    if pending and pending.expires_at > utcnow():
        raise ConflictError("A pending invitation already exists for this email")

    invitation = Invitation(
        company_id=company.id,
        email=email,
        code=_generate_code(),
        role=role,
        status="pending",
        message=payload.get("message"),
        invited_by_id=inviter.id,
        expires_at=utcnow() + INVITATION_TTL,
    )
    db.session.add(invitation)
    db.session.commit()

    logger.info("Invitation %s created for %s by user %s", invitation.id, email, inviter.id)
    return invitation


def list_invitations(company_id: int, status: str | None = None) -> list[Invitation]:
    query = db.session.query(Invitation).filter(Invitation.company_id == company_id)
    if status:
        query = query.filter(Invitation.status == status)
    return query.order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()


def revoke_invitation(company_id: int, invitation_id: int) -> Invitation:
    invitation = require_owned(Invitation, invitation_id, company_id, label="Invitation")
    if invitation.status != "pending":
        raise ValidationError(f"Cannot revoke an invitation that is {invitation.status}")
    invitation.status = "revoked"
    db.session.commit()
    return invitation


def _usable_invitation(code: str) -> Invitation:
    """
    Resolve a code to a pending, unexpired invitation of an operational
    company. Expired invitations are marked as such on lookup.
    """
    code = str(code or "").strip().upper()
    if len(code) < MIN_LOOKUP_CODE_LENGTH:
        raise ValidationError("Invalid invitation code")

    invitation = db.session.query(Invitation).filter_by(code=code).first()
    if invitation is None:
        raise TenantAccessError("Invitation not found")

    if invitation.status != "pending":
        raise InvitationError(f"Invitation is {invitation.status}")

    if invitation.expires_at < utcnow():
        invitation.status = "expired"
        db.session.commit()
        raise InvitationError("Invitation has expired")

    if not invitation.company or not invitation.company.is_operational:
        raise InvitationError("Company is not accepting new members")

    return invitation


def verify_invitation_code(code: str) -> dict:
    invitation = _usable_invitation(code)
    return {
        "company_name": invitation.company.name,
        "company_type": invitation.company.type,
        "role": invitation.role,
        "email": invitation.email,
        "expires_at": invitation.to_dict()["expires_at"],
    }


def register_employee(payload: dict) -> User:
    """
    Accept an invitation: create a pending user with the invited role.
    """
    require_fields(payload, "code", "email", "password")
    invitation = _usable_invitation(payload["code"])

    email = normalize_email(payload["email"])
    if email != invitation.email:
        raise InvitationError("Email does not match the invitation")

    validate_password_strength(payload["password"])
    ensure_email_available(email)

    user = create_user(
        company=invitation.company,
        email=email,
        password=payload["password"],
        role=invitation.role,
        status="pending",
        profile=extract_profile(payload),
        commit=False,
    )

    invitation.status = "accepted"
    invitation.accepted_user_id = user.id
    db.session.commit()

    logger.info("Invitation %s accepted by user %s", invitation.id, user.id)
    return user


def expire_stale_invitations() -> int:
    """Mark pending invitations past expires_at as expired. Returns count."""
    count = db.session.query(Invitation).filter(
        Invitation.status == "pending",
        Invitation.expires_at < utcnow(),
    ).update({"status": "expired"}, synchronize_session=False)
    db.session.commit()
    return count
