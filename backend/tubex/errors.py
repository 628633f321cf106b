# Overview: App-wide JSON error handlers (constraint violations, 404/405, unexpected failures).

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .extensions import db


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    return "foreign key" in str(exc.orig).lower()


def register_error_handlers(app) -> None:
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc):
        db.session.rollback()
        if _is_unique_violation(exc):
            return jsonify({"error": "A record with this information already exists"}), 409
        if _is_foreign_key_violation(exc):
            return jsonify({"error": "Referenced resource does not exist or cannot be modified"}), 400
        current_app.logger.warning("Integrity error: %s", exc.orig)
        return jsonify({"error": "Request violates a data constraint"}), 400

    @app.errorhandler(404)
    def handle_not_found(exc):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(exc):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description}), exc.code
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500
