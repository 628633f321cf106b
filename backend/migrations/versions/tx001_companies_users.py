"""Companies, users, sessions and security events

MULTI-TENANT ROOT:
1. Creates 'companies' as the tenant root (tax_id globally unique)
2. Creates users (company-scoped; platform admins have no company)
3. Creates session/action tokens, invitations and the user audit trail
4. Creates security_events for auth and permission auditing

Revision ID: tx001_companies_users
Revises:
Create Date: 2026-03-02
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'tx001_companies_users'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # STEP 1: companies
    # ==========================================================================
    op.create_table('companies',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.Enum('dealer', 'supplier', name='company_type'), nullable=False),
        sa.Column('tax_id', sa.String(length=20), nullable=False),
        sa.Column('business_license', sa.String(length=100), nullable=False),
        sa.Column('address', sa.JSON(), nullable=False),
        sa.Column('business_category', sa.String(length=100), nullable=True),
        sa.Column('employee_count', sa.Integer(), nullable=True),
        sa.Column('year_established', sa.Integer(), nullable=True),
        sa.Column('contact_phone', sa.String(length=20), nullable=False),
        sa.Column('subscription_tier', sa.Enum('free', 'basic', 'premium', name='subscription_tier'),
                  nullable=False, server_default='free'),
        sa.Column('status', sa.Enum('pending_verification', 'active', 'suspended', 'rejected', name='company_status'),
                  nullable=False, server_default='pending_verification'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('companies', schema=None) as batch_op:
        batch_op.create_index('ix_companies_tax_id', ['tax_id'], unique=True)
        batch_op.create_index('ix_companies_type', ['type'], unique=False)
        batch_op.create_index('ix_companies_status', ['status'], unique=False)

    # ==========================================================================
    # STEP 2: users
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.Enum('admin', 'manager', 'staff', name='user_role'), nullable=False),
        sa.Column('status', sa.Enum('pending', 'active', 'inactive', name='user_status'),
                  nullable=False, server_default='active'),
        sa.Column('is_platform_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_users_company_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_email', ['email'], unique=True)
        batch_op.create_index('ix_users_company_id', ['company_id'], unique=False)
        batch_op.create_index('ix_users_role', ['role'], unique=False)

    # ==========================================================================
    # STEP 3: session and one-time action tokens
    # ==========================================================================
    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_session_tokens_user_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_session_tokens_company_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_session_tokens_token_hash', ['token_hash'], unique=True)
        batch_op.create_index('ix_session_tokens_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_session_tokens_expires_at', ['expires_at'], unique=False)
        batch_op.create_index('ix_session_tokens_is_revoked', ['is_revoked'], unique=False)
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'], unique=False)
        batch_op.create_index('ix_session_tokens_company_id', ['company_id'], unique=False)

    op.create_table('action_tokens',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('purpose', sa.Enum('email_verification', 'password_reset', name='action_token_purpose'), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_action_tokens_user_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('action_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_action_tokens_token_hash', ['token_hash'], unique=True)
        batch_op.create_index('ix_action_tokens_user_purpose', ['user_id', 'purpose'], unique=False)

    # ==========================================================================
    # STEP 4: invitations and user audit trail
    # ==========================================================================
    op.create_table('invitations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('role', sa.Enum('admin', 'manager', 'staff', name='invitation_role'), nullable=False),
        sa.Column('status', sa.Enum('pending', 'accepted', 'revoked', 'expired', name='invitation_status'),
                  nullable=False, server_default='pending'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('invited_by_id', sa.Integer(), nullable=True),
        sa.Column('accepted_user_id', sa.Integer(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_invitations_company_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by_id'], ['users.id'], name='fk_invitations_invited_by_id', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['accepted_user_id'], ['users.id'], name='fk_invitations_accepted_user_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invitations', schema=None) as batch_op:
        batch_op.create_index('ix_invitations_code', ['code'], unique=True)
        batch_op.create_index('ix_invitations_company_status', ['company_id', 'status'], unique=False)
        batch_op.create_index('ix_invitations_email', ['email'], unique=False)

    op.create_table('user_audit_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('target_user_id', sa.Integer(), nullable=False),
        sa.Column('performed_by_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.Enum('role_update', 'status_update', 'removal', name='user_audit_action'), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_user_audit_logs_company_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['target_user_id'], ['users.id'], name='fk_user_audit_logs_target_user_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['performed_by_id'], ['users.id'], name='fk_user_audit_logs_performed_by_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('user_audit_logs', schema=None) as batch_op:
        batch_op.create_index('ix_user_audit_logs_company_created', ['company_id', 'created_at'], unique=False)
        batch_op.create_index('ix_user_audit_logs_target', ['target_user_id'], unique=False)

    # ==========================================================================
    # STEP 5: security events
    # ==========================================================================
    op.create_table('security_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=255), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_security_events_company_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_security_events_user_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('security_events', schema=None) as batch_op:
        batch_op.create_index('ix_security_events_company_id', ['company_id'], unique=False)
        batch_op.create_index('ix_security_events_event_type', ['event_type'], unique=False)
        batch_op.create_index('ix_security_events_success', ['success'], unique=False)
        batch_op.create_index('ix_security_events_occurred_at', ['occurred_at'], unique=False)
        batch_op.create_index('ix_security_events_user_type', ['user_id', 'event_type'], unique=False)
        batch_op.create_index('ix_security_events_company_occurred', ['company_id', 'occurred_at'], unique=False)


def downgrade():
    op.drop_table('security_events')
    op.drop_table('user_audit_logs')
    op.drop_table('invitations')
    op.drop_table('action_tokens')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('companies')
