# backend/tubex/routes/system.py
"""
System health and version endpoints.

Health covers the relational store, the document store bind and the
session table.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Company, User, SessionToken, AnalyticsEvent
from ..time_utils import utcnow, to_utc_z

API_VERSION = "1.0.0"

system_bp = Blueprint("system", __name__, url_prefix="/api/v1")


def check_database_health() -> dict:
    """Relational store connectivity and basic counts."""
    start_time = time.time()
    try:
        company_count = db.session.query(Company).count()
        user_count = db.session.query(User).count()
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "companies": company_count,
                "users": user_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_document_store_health() -> dict:
    """
    Document store bind. Failure here degrades the service rather than
    taking it down: business writes still need it, reads do not.
    """
    start_time = time.time()
    try:
        event_count = db.session.query(AnalyticsEvent).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"analytics_events": event_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Document store health check failed")
        db.session.rollback()
        return {
            "status": "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "warning": "Document store unavailable"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked == False,  # noqa: E712
        ).count()
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session service health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session service error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "document_store": check_document_store_health(),
        "session_service": check_session_service_health(),
    }

    statuses = [c["status"] for c in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
