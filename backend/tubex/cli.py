# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tubex/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (relational store and document store). Idempotent.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Company management (MULTI-TENANT):
# - python -m flask companies list [--status pending_verification]
#   List companies with type and status.
# - python -m flask companies create --name "Acme Supply" --type supplier --tax-id 0123456789 ...
#   Create an active company directly (skips verification).
# - python -m flask companies verify 3 --approve --admin-email root@tubex.local
#   Approve or reject a pending company as a platform admin.
#
# User inspection/bootstrap:
# - python -m flask users list [--company-id 1]
#   List users with role and status.
# - python -m flask users create --company-id 1 --email a@acme.vn --password "Passw0rd!" --role admin
#   Create an active user in a company.
# - python -m flask users create-platform-admin --email root@tubex.local --password "Passw0rd!"
#   Create a platform admin (no company).
#
# Permission inspection:
# - python -m flask perms list [--role staff]
#   List permissions (optionally only those a role grants).
# - python -m flask perms check a@acme.vn MANAGE_ORDERS
#   Check whether a user has a permission.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
# - python -m flask maintenance cleanup-security-events --retention-days 90
# - python -m flask maintenance cleanup-action-tokens
# - python -m flask maintenance expire-invitations
# - python -m flask maintenance expire-batches
# - python -m flask maintenance mark-overdue-invoices

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, User
from .permissions import PERMISSION_DEFINITIONS, get_role_permissions, get_permission_definition
from .services.auth_service import create_user, normalize_email, PasswordValidationError
from .services import permission_service
from .services import maintenance_service
from .services import session_service
from .services import invitation_service
from .services import invoice_service
from .services import verification_service
from .services.tenant_service import TenantAccessError
from .validation import ValidationError, validate_tax_id, validate_business_license


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create the schema for both stores.

    Production databases should be upgraded with `flask db upgrade`; this
    command is for development and throwaway environments.
    """
    click.echo("START Initializing Tubex schema...")
    db.create_all()
    click.echo("PASS Relational and document store tables ready")
    click.echo("Next: python -m flask users create-platform-admin")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@click.option('--status', type=click.Choice(['pending_verification', 'active', 'suspended', 'rejected']))
@with_appcontext
def list_companies(status):
    """List companies."""
    query = db.session.query(Company)
    if status:
        query = query.filter(Company.status == status)
    companies = query.order_by(Company.id).all()

    if not companies:
        click.echo("No companies found")
        return

    click.echo(f"\n{'ID':<5} {'Name':<30} {'Type':<10} {'Tax ID':<12} {'Status':<22}")
    click.echo("-" * 82)
    for c in companies:
        click.echo(f"{c.id:<5} {c.name:<30} {c.type:<10} {c.tax_id:<12} {c.status:<22}")
    click.echo(f"\nTotal: {len(companies)} companies")


@companies_group.command('create')
@click.option('--name', prompt=True, help='Company name')
@click.option('--type', 'company_type', type=click.Choice(['dealer', 'supplier']), prompt=True)
@click.option('--tax-id', prompt=True, help='10-digit tax ID')
@click.option('--business-license', prompt=True)
@click.option('--contact-phone', prompt=True)
@click.option('--street', prompt=True)
@click.option('--city', prompt=True)
@click.option('--province', prompt=True)
@click.option('--postal-code', prompt=True)
@with_appcontext
def create_company_cli(name, company_type, tax_id, business_license, contact_phone, street, city, province, postal_code):
    """
    Create an active company without going through verification.

    Intended for seeding; self-service sign-ups use POST /api/v1/auth/register.
    """
    try:
        tax_id = validate_tax_id(tax_id)
        business_license = validate_business_license(business_license)
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return

    if db.session.query(Company).filter_by(tax_id=tax_id).first():
        click.echo(f"FAIL A company with tax ID {tax_id} already exists")
        return

    company = Company(
        name=name.strip(),
        type=company_type,
        tax_id=tax_id,
        business_license=business_license,
        contact_phone=contact_phone.strip(),
        address={"street": street, "city": city, "province": province, "postal_code": postal_code},
        status="active",
        meta={"verification": {"status": "active", "source": "cli"}},
    )
    db.session.add(company)
    db.session.commit()
    click.echo(f"PASS Created company: {company.name} (ID: {company.id}, Type: {company.type})")


@companies_group.command('verify')
@click.argument('company_id', type=int)
@click.option('--approve/--reject', default=True, help='Approve (default) or reject')
@click.option('--reason', help='Required when rejecting')
@click.option('--admin-email', prompt=True, help='Platform admin performing the verification')
@with_appcontext
def verify_company_cli(company_id, approve, reason, admin_email):
    """Approve or reject a company that is pending verification."""
    admin = db.session.query(User).filter_by(email=admin_email.strip().lower()).first()
    if admin is None or not admin.is_platform_admin:
        click.echo(f"FAIL '{admin_email}' is not a platform admin")
        return

    try:
        company = verification_service.verify_company(admin, company_id, approve, reason)
    except TenantAccessError:
        click.echo(f"FAIL Company ID {company_id} not found")
        return
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Company {company.name} (ID: {company.id}) is now {company.status}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'manager', 'staff']), prompt=True, help='Role')
@with_appcontext
def create_user_cli(company_id, email, password, role):
    """
    Create an active user in a company.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    company = db.session.get(Company, company_id)
    if not company:
        click.echo(f"FAIL Company ID {company_id} not found")
        return

    try:
        user = create_user(company=company, email=email, password=password, role=role, status="active")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.email} with role '{role}'")
    click.echo(f"     Company: {company.name} (ID: {company.id})")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('create-platform-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_platform_admin_cli(email, password):
    """
    Create a platform admin account.

    Platform admins belong to no company. They verify, suspend and
    reinstate companies; they cannot act inside a tenant.
    """
    try:
        user = create_user(
            company=None,
            email=email,
            password=password,
            role="admin",
            status="active",
            is_platform_admin=True,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        return
    except ValueError as e:
        click.echo(f"FAIL Failed to create platform admin: {str(e)}")
        return

    click.echo(f"PASS Created platform admin: {user.email} (ID: {user.id})")


@users_group.command('list')
@click.option('--company-id', type=int, help='Filter by company ID')
@with_appcontext
def list_users(company_id):
    """List users with role, status and company."""
    query = db.session.query(User)
    if company_id:
        query = query.filter(User.company_id == company_id)
    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found")
        return

    click.echo(f"\n{'ID':<5} {'Email':<35} {'Role':<8} {'Status':<10} {'Company':<8}")
    click.echo("-" * 70)
    for u in users:
        company = "platform" if u.is_platform_admin else str(u.company_id)
        click.echo(f"{u.id:<5} {u.email:<35} {u.role:<8} {u.status:<10} {company:<8}")
    click.echo(f"\nTotal: {len(users)} users")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(['admin', 'manager', 'staff']), help='Only permissions granted to this role')
@with_appcontext
def list_permissions_cli(role):
    """List permission definitions."""
    granted = get_role_permissions(role) if role else None

    current_category = None
    for code, name, description, category in PERMISSION_DEFINITIONS:
        if granted is not None and code not in granted:
            continue
        if category != current_category:
            click.echo(f"\n[{category}]")
            current_category = category
        click.echo(f"  {code:<24} {description}")


@perms_group.command('check')
@click.argument('email')
@click.argument('permission_code')
@with_appcontext
def check_permission_cli(email, permission_code):
    """Check if a user has a specific permission."""
    try:
        email = normalize_email(email)
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return

    definition = get_permission_definition(permission_code)
    if definition is None:
        click.echo(f"FAIL Unknown permission code '{permission_code}'")
        return

    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    if permission_service.user_has_permission(user, permission_code):
        click.echo(f"PASS User '{email}' HAS permission '{permission_code}'")
    else:
        click.echo(f"FAIL User '{email}' DOES NOT HAVE permission '{permission_code}'")
    click.echo(f"  {definition['name']}: {definition['description']}")

    all_perms = permission_service.get_user_permissions(user)
    click.echo(f"\nUser role: {'platform admin' if user.is_platform_admin else user.role}")
    click.echo(f"Total permissions: {len(all_perms)}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance and cleanup commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired and revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired or revoked sessions.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


@maintenance_group.command('cleanup-action-tokens')
@with_appcontext
def cleanup_action_tokens_cli():
    deleted = maintenance_service.cleanup_action_tokens()
    click.echo(f"Deleted {deleted} consumed or expired tokens.")


@maintenance_group.command('expire-invitations')
@with_appcontext
def expire_invitations_cli():
    count = invitation_service.expire_stale_invitations()
    click.echo(f"Expired {count} invitations.")


@maintenance_group.command('expire-batches')
@with_appcontext
def expire_batches_cli():
    """Mark active batches past their expiry date as expired."""
    count = maintenance_service.expire_batches()
    click.echo(f"Expired {count} batches.")


@maintenance_group.command('mark-overdue-invoices')
@with_appcontext
def mark_overdue_invoices_cli():
    """Mark sent invoices past their due date as overdue."""
    count = invoice_service.mark_overdue_invoices()
    click.echo(f"Marked {count} invoices overdue.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(companies_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
