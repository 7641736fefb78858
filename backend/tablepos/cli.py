# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tablepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--no-users]
#   Idempotent bootstrap: configuration, tables, products and demo users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --email admin@tablepos.local --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Consistency:
# - python -m flask repair check
#   Report paid orders without a payment and payments without a paid order.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired session tokens.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import auth_service, bootstrap_service, repair_service, session_service
from .services.auth_service import PasswordValidationError, VALID_ROLES
from .validation import PosError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--no-users', is_flag=True, help='Skip demo user accounts')
@with_appcontext
def init_system(no_users):
    """
    Initialize reference data.

    Safe to run repeatedly: each kind is only created when absent.
    """
    db.create_all()
    result = bootstrap_service.bootstrap(include_users=not no_users)

    click.echo("PASS Configuration: " + ("created" if result["configuration"] else "already present"))
    click.echo(f"PASS Tables created: {result['tables']}")
    click.echo(f"PASS Products created: {result['products']}")
    if not no_users:
        click.echo(f"PASS Users created: {result['users']}")
        if result["users"]:
            click.echo(f"     Default password: {bootstrap_service.DEFAULT_PASSWORD}")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', default='', help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, name, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = auth_service.create_user(email, password, name, role)
        click.echo(f"PASS Created user: {user['email']} with role '{role}'")
        click.echo(f"     ID: {user['id']}")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except PosError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'Email':<32} {'Name':<24} {'Role':<10} {'Active':<8} {'ID'}")
    click.echo("="*100)

    for user in sorted(users, key=lambda u: u.get("email", "")):
        active_str = "No" if user.get("active") is False else "Yes"
        click.echo(
            f"{user.get('email', ''):<32} {user.get('name', ''):<24} "
            f"{user.get('role', ''):<10} {active_str:<8} {user['id']}"
        )

    click.echo("="*100 + "\n")


@click.group('repair')
def repair_group():
    """Consistency inspection commands (read-only)."""


@repair_group.command('check')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw report')
@with_appcontext
def repair_check(as_json):
    """Compare orders against payments and list anything out of step."""
    report = repair_service.find_inconsistencies()

    if as_json:
        click.echo(json.dumps(report, indent=2))
        return

    if report["ok"]:
        click.echo("PASS Orders and payments are consistent")
        return

    for order_id in report["paid_without_payment"]:
        click.echo(f"FAIL Order {order_id} is paid but has no payment")
    for payment_id in report["payment_without_order"]:
        click.echo(f"FAIL Payment {payment_id} references a missing order")
    for payment_id in report["payment_order_not_paid"]:
        click.echo(f"FAIL Payment {payment_id} belongs to an order that is not paid")
    for order_id, payment_ids in report["duplicate_payments"].items():
        click.echo(f"FAIL Order {order_id} has {len(payment_ids)} payments: {', '.join(payment_ids)}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired session tokens."""
    removed = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Removed {removed} expired session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(repair_group)
    app.cli.add_command(maintenance_group)
