# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent, ActionToken, Batch
from ..time_utils import utcnow, today


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    if retention_days < 1:
        raise ValueError("retention_days must be >= 1")
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def cleanup_action_tokens() -> int:
    """Delete consumed or expired one-time tokens."""
    deleted = db.session.query(ActionToken).filter(
        db.or_(ActionToken.consumed_at.isnot(None), ActionToken.expires_at < utcnow())
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def expire_batches() -> int:
    """Active batches past their expiry date become "expired"."""
    updated = db.session.query(Batch).filter(
        Batch.status == "active",
        Batch.expiry_date.isnot(None),
        Batch.expiry_date < today(),
    ).update({"status": "expired"}, synchronize_session=False)
    db.session.commit()
    return updated
