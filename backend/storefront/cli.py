# Overview: Flask CLI command groups for bootstrap, accounts, and cashflow maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users create-admin --email admin@shop.local --name "Shop Admin" --password "Password123!" [--staff]
#   Create an admin storefront account; --staff also provisions its staff directory record.
# - python -m flask users list
#   List storefront accounts.
#
# Cashflow:
# - python -m flask cashflow reset --yes
#   Delete every cashflow entry (reports drop to zero).
# - python -m flask cashflow reconcile [--limit 50]
#   Retry income postings that failed during payment approval.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, cashflow_service, reconciliation_service
from .services.auth_service import PasswordValidationError
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


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
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """Storefront account commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Login email')
@click.option('--name', default=None, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--staff', is_flag=True, help='Also provision the staff directory record')
@with_appcontext
def create_admin(email, name, password, staff):
    """Create an admin account that can verify payments."""
    try:
        user = auth_service.create_admin_user(email=email, name=name, password=password)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        raise SystemExit(1)
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")

    if staff:
        staff_id = auth_service.ensure_staff_record(user)
        click.echo(f"PASS Staff record ready (ID: {staff_id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all storefront accounts."""
    users = db.session.query(User).order_by(User.created_at, User.email).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<38} {'Email':<32} {'Role':<10} {'Name'}")
    click.echo("="*90)
    for user in users:
        click.echo(f"{user.id:<38} {user.email:<32} {user.role:<10} {user.name or '-'}")


@click.group('cashflow')
def cashflow_group():
    """Cashflow ledger maintenance."""


@cashflow_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_cashflow(yes):
    """Delete every cashflow entry."""
    if not yes:
        click.confirm("WARN This will DELETE ALL CASHFLOW ENTRIES. Are you sure?", abort=True)

    deleted = cashflow_service.reset_cashflow()
    click.echo(f"PASS Deleted {deleted} cashflow entries")


@cashflow_group.command('reconcile')
@click.option('--limit', type=int, default=None, help='Maximum postings to retry')
@with_appcontext
def reconcile(limit):
    """Retry income postings that failed during payment approval."""
    pending = reconciliation_service.list_pending_postings()
    if not pending:
        click.echo("PASS Nothing to reconcile")
        return

    summary = reconciliation_service.retry_pending_postings(limit=limit)
    click.echo(
        f"PASS Attempted {summary['attempted']}, resolved {summary['resolved']}, failed {summary['failed']}"
    )
    if summary["failed"]:
        click.echo("WARN Some postings are still pending; see the application log for errors")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(cashflow_group)
