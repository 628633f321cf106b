# backend/tubex/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Relational store (companies, users, catalog, inventory, orders)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///tubex.sqlite3",
    )
    # Document store: schema-flexible event/audit documents on a separate bind
    SQLALCHEMY_BINDS = {
        "documents": os.environ.get(
            "DOCUMENT_DATABASE_URL",
            "sqlite:///tubex_documents.sqlite3",
        ),
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
        ).split(",")
        if origin.strip()
    ]

    # No mail transport: one-time tokens are returned in responses when enabled
    RETURN_ACTION_TOKENS = _env_flag("RETURN_ACTION_TOKENS", False)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # bcrypt cost factor; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
