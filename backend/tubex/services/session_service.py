# Overview: Opaque bearer sessions with tenant context, idle and absolute timeouts.

"""
Session Token Management Service with Multi-Tenant Support

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

MULTI-TENANT: Sessions capture company_id at creation time. This
establishes the tenant context for every authenticated request without
repeated lookups. Platform admin sessions carry company_id = NULL.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout, password reset, deactivation, company suspension
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta
from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    """
    Session context returned by validate_session.

    company_id comes from the session record, not the user.
    """
    user: User
    session: SessionToken
    company_id: int | None


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 hex digest for database storage.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create new session token for user with tenant context.

    Returns (session_record, plaintext_token).

    Raises ValueError if a non-platform user has no company, or the
    company is suspended/rejected.
    """
    if not user.is_platform_admin:
        if not user.company_id:
            raise ValueError("User must belong to a company")
        if not user.company or not user.company.is_operational:
            raise ValueError("Company is not active")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        company_id=user.company_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str, now=None) -> None:
    session.is_revoked = True
    session.revoked_at = now or utcnow()
    session.revoked_reason = reason


def _find_live(token: str) -> SessionToken | None:
    return db.session.query(SessionToken).filter_by(token_hash=hash_token(token), is_revoked=False).first()


def _revocation_reason(session: SessionToken, now) -> str | None:
    """Why a non-expired session can no longer be used, or None."""
    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        return "Idle timeout"
    if not session.user or not session.user.is_active:
        return "User account deactivated"
    if session.company_id is not None and (not session.company or not session.company.is_operational):
        return "Company not operational"
    return None


def validate_session(token: str) -> SessionContext | None:
    """
    SessionContext for a live token, else None.

    A session whose idle timeout passed, whose user was deactivated or whose
    company was suspended/rejected after login is revoked on the spot.
    Successful validation slides last_used_at.
    """
    session = _find_live(token)
    now = utcnow()
    if session is None or session.expires_at < now:
        return None

    reason = _revocation_reason(session, now)
    if reason:
        _revoke(session, reason, now)
    else:
        session.last_used_at = now
    db.session.commit()

    if reason:
        return None
    return SessionContext(user=session.user, session=session, company_id=session.company_id)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if session was revoked, False if not found."""
    session = _find_live(token)
    if session is None:
        return False
    _revoke(session, reason)
    db.session.commit()
    return True


def _revoke_where(reason: str, commit: bool, **filters) -> int:
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(is_revoked=False, **filters).all()
    for session in sessions:
        _revoke(session, reason, now)
    if commit:
        db.session.commit()
    return len(sessions)


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions", commit: bool = True) -> int:
    """
    Revoke all active sessions for a user. Returns count revoked.

    commit=False folds the revocation into the caller's transaction.
    """
    return _revoke_where(reason, commit, user_id=user_id)


def revoke_company_sessions(company_id: int, reason: str, commit: bool = True) -> int:
    """Revoke every active session of a company (suspension, rejection)."""
    return _revoke_where(reason, commit, company_id=company_id)


def cleanup_expired_sessions() -> int:
    """
    Delete expired and revoked sessions older than 30 days.

    Run periodically via `flask maintenance cleanup-sessions`.
    """
    cutoff = utcnow() - timedelta(days=30)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked == True,  # noqa: E712
        ),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
