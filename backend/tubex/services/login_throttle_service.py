# Overview: Login attempt tracking and temporary lockout, backed by security_events.

"""
Login Throttling Service

SECURITY: Failed logins are counted per normalized email over a sliding
window. Reaching MAX_FAILED_ATTEMPTS locks the email until LOCKOUT_DURATION
has passed since the latest failure. The lock applies to the identifier,
not to the user row, so unknown emails are throttled the same way.

Attempts live in SecurityEvent (event_type LOGIN_FAILED / LOGIN_SUCCESS,
action = normalized email) and are pruned with the other security events.
"""

from datetime import timedelta
from ..extensions import db
from ..models import SecurityEvent, User
from ..time_utils import utcnow


MAX_FAILED_ATTEMPTS = 10
WARNING_THRESHOLD = 3
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)

LOGIN_RESOURCE = "/api/v1/auth/login"


def _identifier(value: str) -> str:
    return (value or "").strip().lower()


def _window_failures(identifier: str) -> list:
    """occurred_at of failures inside the window, newest first."""
    rows = (
        db.session.query(SecurityEvent.occurred_at)
        .filter(
            SecurityEvent.event_type == "LOGIN_FAILED",
            SecurityEvent.action == _identifier(identifier),
            SecurityEvent.occurred_at >= utcnow() - LOCKOUT_WINDOW,
        )
        .order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc())
        .all()
    )
    return [r[0] for r in rows]


def get_recent_failed_attempts(identifier: str) -> int:
    return len(_window_failures(identifier))


def _lock_state(failures: list) -> tuple[bool, int | None]:
    if len(failures) < MAX_FAILED_ATTEMPTS:
        return False, None
    unlock_at = failures[0] + LOCKOUT_DURATION
    now = utcnow()
    if now >= unlock_at:
        return False, None
    return True, int((unlock_at - now).total_seconds())


def is_account_locked(identifier: str) -> tuple[bool, int | None]:
    """(True, seconds_remaining) while locked, else (False, None)."""
    return _lock_state(_window_failures(identifier))


def remaining_attempts(failed_count: int) -> int:
    return max(MAX_FAILED_ATTEMPTS - failed_count, 0)


def lockout_warning(failed_count: int) -> str | None:
    """Warning text once few attempts remain; None otherwise."""
    remaining = remaining_attempts(failed_count)
    if 0 < remaining <= WARNING_THRESHOLD:
        return f"{remaining} attempts remaining before account lockout"
    return None


def _record(event_type: str, identifier: str, user: User | None, *, success: bool, reason=None,
            ip_address=None, user_agent=None) -> None:
    db.session.add(SecurityEvent(
        user_id=user.id if user else None,
        company_id=user.company_id if user else None,
        event_type=event_type,
        resource=LOGIN_RESOURCE,
        action=identifier,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    ))
    db.session.commit()


def record_failed_attempt(
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials",
) -> int:
    """Record a failure and return the failure count inside the window."""
    identifier = _identifier(identifier)
    user = db.session.query(User).filter(User.email == identifier).first()
    _record("LOGIN_FAILED", identifier, user, success=False, reason=reason,
            ip_address=ip_address, user_agent=user_agent)
    return get_recent_failed_attempts(identifier)


def record_successful_login(user: User, ip_address: str | None = None, user_agent: str | None = None) -> None:
    _record("LOGIN_SUCCESS", _identifier(user.email), user, success=True,
            ip_address=ip_address, user_agent=user_agent)


def get_lockout_status(identifier: str) -> dict:
    failures = _window_failures(identifier)
    locked, seconds_remaining = _lock_state(failures)
    return {
        "locked": locked,
        "failed_attempts": len(failures),
        "max_attempts": MAX_FAILED_ATTEMPTS,
        "attempts_remaining": remaining_attempts(len(failures)),
        "seconds_until_unlock": seconds_remaining,
        "lockout_window_minutes": int(LOCKOUT_WINDOW.total_seconds() // 60),
        "lockout_duration_minutes": int(LOCKOUT_DURATION.total_seconds() // 60),
    }
