from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .enums import USER_ROLES, USER_STATUSES, INVITATION_STATUSES, USER_AUDIT_ACTIONS, ACTION_TOKEN_PURPOSES


class User(db.Model):
    """
    User accounts for authentication and attribution.

    MULTI-TENANT: Users belong to exactly one company (company_id).
    Platform admins are the exception: company_id is NULL and
    is_platform_admin is set. They verify companies and see nothing else.

    Email is globally unique so login needs no tenant hint.

    STATUS:
    - pending: registered, waiting for email verification or admin approval
    - active: may sign in
    - inactive: removed or deactivated (soft delete; audit rows keep the FK)
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_company_id", "company_id"),
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    company_id = db.Column(
        db.Integer,
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=True,
    )

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.Enum(*USER_ROLES, name="user_role"), nullable=False, default="staff")
    status = db.Column(
        db.Enum(*USER_STATUSES, name="user_status"),
        nullable=False,
        default="active",
        server_default="active",
    )

    is_platform_admin = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())

    # Profile fields (first_name, last_name, phone, job_title)
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    company = db.relationship(
        "Company",
        backref=db.backref("users", lazy=True, passive_deletes=True),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "is_platform_admin": self.is_platform_admin,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Secure session token management with tenant context.

    MULTI-TENANT: Session tokens carry company_id captured at login, which
    establishes the tenant context for every authenticated request.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout
    - 2-hour idle timeout
    - Revocable on logout, refresh, password reset, deactivation
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        db.Index("ix_session_tokens_company_id", "company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # NULL for platform admin sessions
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=True)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True, passive_deletes=True))
    company = db.relationship("Company", backref=db.backref("session_tokens", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company_id": self.company_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }


class ActionToken(db.Model):
    """
    Single-use tokens for email verification and password reset.

    Stored hashed like session tokens. consumed_at is set on first use;
    a consumed or expired token is rejected.
    """
    __tablename__ = "action_tokens"
    __table_args__ = (
        db.Index("ix_action_tokens_user_purpose", "user_id", "purpose"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    purpose = db.Column(db.Enum(*ACTION_TOKEN_PURPOSES, name="action_token_purpose"), nullable=False)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    consumed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", backref=db.backref("action_tokens", lazy=True, passive_deletes=True))


class Invitation(db.Model):
    """
    Email-code based onboarding of employees into an existing company.

    The code is shared out of band; the invitee registers with it and lands
    as a pending user with the invited role until an admin approves.
    """
    __tablename__ = "invitations"
    __table_args__ = (
        db.Index("ix_invitations_company_status", "company_id", "status"),
        db.Index("ix_invitations_email", "email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    role = db.Column(db.Enum(*USER_ROLES, name="invitation_role"), nullable=False)
    status = db.Column(
        db.Enum(*INVITATION_STATUSES, name="invitation_status"),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    message = db.Column(db.Text, nullable=True)

    invited_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    accepted_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship("Company", backref=db.backref("invitations", lazy=True, passive_deletes=True))
    invited_by = db.relationship("User", foreign_keys=[invited_by_id])
    accepted_user = db.relationship("User", foreign_keys=[accepted_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "email": self.email,
            "code": self.code,
            "role": self.role,
            "status": self.status,
            "message": self.message,
            "invited_by_id": self.invited_by_id,
            "accepted_user_id": self.accepted_user_id,
            "expires_at": to_utc_z(self.expires_at),
            "created_at": to_utc_z(self.created_at),
        }


class UserAuditLog(db.Model):
    """
    Change tracking for user management actions.

    IMMUTABLE: Append-only. changes = {"previous": {role, status},
    "new": {role, status}}.
    """
    __tablename__ = "user_audit_logs"
    __table_args__ = (
        db.Index("ix_user_audit_logs_company_created", "company_id", "created_at"),
        db.Index("ix_user_audit_logs_target", "target_user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    target_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    performed_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = db.Column(db.Enum(*USER_AUDIT_ACTIONS, name="user_audit_action"), nullable=False)
    changes = db.Column(db.JSON, nullable=False)
    reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    target_user = db.relationship("User", foreign_keys=[target_user_id])
    performed_by = db.relationship("User", foreign_keys=[performed_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "target_user_id": self.target_user_id,
            "target_user_email": self.target_user.email if self.target_user else None,
            "performed_by_id": self.performed_by_id,
            "performed_by_email": self.performed_by.email if self.performed_by else None,
            "action": self.action,
            "changes": self.changes,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }
