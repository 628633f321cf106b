# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service with Multi-Tenant Support

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

MULTI-TENANT: Users belong to exactly one company. Self-service
registration creates the company and its first user in one transaction.
Email is globally unique.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, upper, lower, digit and special char
- Session tokens managed separately (see session_service.py)
- One-time tokens (email verification, password reset) stored hashed
  in action_tokens and consumed on first use
"""

import logging
import re
from datetime import timedelta

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..models import User, Company, ActionToken
from ..permissions import role_can_assign
from ..time_utils import utcnow
from ..validation import (
    ValidationError,
    ConflictError,
    require_fields,
    validate_tax_id,
    validate_business_license,
    validate_address,
)
from .session_service import generate_token, hash_token, revoke_all_user_sessions
from .permission_service import get_user_permissions
from .document_service import record_analytics_event

logger = logging.getLogger(__name__)

EMAIL_VERIFICATION_TTL = timedelta(hours=24)
PASSWORD_RESET_TTL = timedelta(hours=1)

PROFILE_FIELDS = ("first_name", "last_name", "phone", "job_title")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthenticationError(Exception):
    """Raised for bad or unusable credentials and tokens (401)."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """bcrypt (BCRYPT_ROUNDS, default 12). Password strength is validated first."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email) -> str:
    value = str(email or "").strip().lower()
    if not _EMAIL_RE.match(value) or len(value) > 255:
        raise ValidationError("A valid email is required")
    return value


def ensure_email_available(email: str) -> None:
    if db.session.query(User.id).filter(User.email == email).first():
        raise ConflictError("User with this email already exists")


def extract_profile(payload: dict) -> dict:
    """Profile fields live in User.metadata."""
    profile = {}
    for field in PROFILE_FIELDS:
        value = payload.get(field)
        if value is not None:
            profile[field] = str(value).strip()
    return profile


# -- One-time tokens --

def issue_action_token(user: User, purpose: str, ttl: timedelta) -> str:
    """
    Create a single-use token for user. Earlier unconsumed tokens of the
    same purpose are invalidated. Returns the plaintext token.
    """
    now = utcnow()
    db.session.query(ActionToken).filter(
        ActionToken.user_id == user.id,
        ActionToken.purpose == purpose,
        ActionToken.consumed_at.is_(None),
    ).update({"consumed_at": now}, synchronize_session=False)

    plaintext = generate_token()
    db.session.add(ActionToken(
        user_id=user.id,
        purpose=purpose,
        token_hash=hash_token(plaintext),
        created_at=now,
        expires_at=now + ttl,
    ))
    return plaintext


def consume_action_token(token: str, purpose: str) -> User:
    """
    Mark token consumed and return its user.

    Raises AuthenticationError when unknown, expired or already used.
    """
    if not token or not isinstance(token, str):
        raise ValidationError("token is required")

    record = db.session.query(ActionToken).filter_by(
        token_hash=hash_token(token),
        purpose=purpose,
    ).first()

    now = utcnow()
    if not record or record.consumed_at is not None or record.expires_at < now:
        raise AuthenticationError("Invalid or expired token")

    record.consumed_at = now
    return record.user


# -- Registration --

def register_company(payload: dict) -> tuple[Company, User, str]:
    """
    Create a company (pending_verification, free tier) and its first user
    (pending until the email is verified) in one transaction.

    Payload:
        {email, password, role?, first_name?, last_name?, phone?, job_title?,
         company: {name, type, tax_id, business_license, address,
                   contact_phone, business_category?, employee_count?,
                   year_established?}}

    Returns (company, user, email_verification_token).
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    require_fields(payload, "email", "password", "company")

    email = normalize_email(payload["email"])
    validate_password_strength(payload["password"])

    role = payload.get("role") or "admin"
    if role not in ("admin", "manager", "staff"):
        raise ValidationError("role must be one of: admin, manager, staff")

    company_data = payload["company"]
    if not isinstance(company_data, dict):
        raise ValidationError("company must be an object")
    require_fields(company_data, "name", "type", "tax_id", "business_license", "address", "contact_phone")

    if company_data["type"] not in ("dealer", "supplier"):
        raise ValidationError("company.type must be one of: dealer, supplier")

    tax_id = validate_tax_id(company_data["tax_id"])
    business_license = validate_business_license(company_data["business_license"])
    address = validate_address(company_data["address"])

    ensure_email_available(email)
    if db.session.query(Company.id).filter(Company.tax_id == tax_id).first():
        raise ConflictError("Company with this tax ID already exists")

    company = Company(
        name=str(company_data["name"]).strip(),
        type=company_data["type"],
        tax_id=tax_id,
        business_license=business_license,
        address=address,
        contact_phone=str(company_data["contact_phone"]).strip(),
        business_category=company_data.get("business_category"),
        employee_count=_optional_int(company_data.get("employee_count"), "employee_count"),
        year_established=_optional_int(company_data.get("year_established"), "year_established"),
        subscription_tier="free",
        status="pending_verification",
        meta={},
    )
    db.session.add(company)
    db.session.flush()

    user = User(
        company_id=company.id,
        email=email,
        password_hash=hash_password(payload["password"]),
        role=role,
        status="pending",
        meta=extract_profile(payload),
    )
    db.session.add(user)
    db.session.flush()

    token = issue_action_token(user, "email_verification", EMAIL_VERIFICATION_TTL)
    record_analytics_event(
        "company_registered",
        company_id=company.id,
        user_id=user.id,
        data={"type": company.type},
    )

    db.session.commit()
    logger.info("Registered company %s (%s) with user %s", company.id, company.type, user.email)
    return company, user, token


def _optional_int(value, field: str):
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


def verify_email(token: str) -> User:
    """Consume a verification token; a pending user becomes active."""
    user = consume_action_token(token, "email_verification")
    if user.status == "pending":
        user.status = "active"
    db.session.commit()
    return user


# -- Login --

def authenticate(email: str, password: str) -> User:
    """
    Check credentials and account state.

    Returns the user; raises AuthenticationError with a reason otherwise.
    Updates last_login_at on success.
    """
    email = str(email or "").strip().lower()
    user = db.session.query(User).filter(User.email == email).first()

    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        raise AuthenticationError("Account is not active")

    if not user.is_platform_admin:
        company = user.company
        if company is None or not company.is_operational:
            raise AuthenticationError("Company account is not active")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def build_auth_payload(user: User) -> dict:
    """User, company and effective permissions for login/validate responses."""
    return {
        "user": user.to_dict(),
        "company": user.company.to_dict() if user.company else None,
        "permissions": sorted(get_user_permissions(user)),
    }


# -- Password reset --

def request_password_reset(email: str) -> str | None:
    """
    Issue a reset token when the email belongs to a user.

    Returns the token or None; callers must not reveal which.
    """
    email = str(email or "").strip().lower()
    user = db.session.query(User).filter(User.email == email).first()
    if not user:
        return None

    token = issue_action_token(user, "password_reset", PASSWORD_RESET_TTL)
    db.session.commit()
    return token


def reset_password(token: str, new_password: str) -> User:
    """Consume a reset token, set the password, revoke all sessions."""
    validate_password_strength(new_password)
    user = consume_action_token(token, "password_reset")
    user.password_hash = hash_password(new_password)
    revoke_all_user_sessions(user.id, reason="Password reset", commit=False)
    db.session.commit()
    return user


# -- Direct creation (CLI, invitations) --

def create_user(
    *,
    company: Company | None,
    email: str,
    password: str,
    role: str = "staff",
    status: str = "active",
    is_platform_admin: bool = False,
    profile: dict | None = None,
    commit: bool = True,
) -> User:
    """
    Create a user in a company (or a platform admin with company=None).

    Raises ConflictError on duplicate email, PasswordValidationError on a
    weak password.
    """
    email = normalize_email(email)
    ensure_email_available(email)

    if not is_platform_admin and company is None:
        raise ValidationError("company is required")

    user = User(
        company_id=company.id if company else None,
        email=email,
        password_hash=hash_password(password),
        role=role,
        status=status,
        is_platform_admin=is_platform_admin,
        meta=profile or {},
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def can_assign_role(actor: User, role: str) -> bool:
    return role_can_assign(actor.role, role)
