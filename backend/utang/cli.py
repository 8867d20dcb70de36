# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/utang/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with their store memberships.
# - python -m flask users create --name "Aling Nena" --email nena@example.com --password "Password123!"
#   Create a user (prompts if options are omitted).
#
# Store inspection/bootstrap:
# - python -m flask stores list
#   List all stores with member counts.
# - python -m flask stores create --owner-email nena@example.com --name "Nena's Sari-Sari" --address "Purok 3"
#   Create a store and its OWNER membership in one transaction.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Store, StoreMembership, User
from .services.auth_service import create_user, normalize_email, PasswordValidationError
from .services.resource_registry import ResourceKind, get_delegate
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(name, email, password):
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
        user = create_user(name=name, email=email, password=password)
        click.echo(f"PASS Created user: {user.name} ({user.email})")
        click.echo(f"     User ID: {user.id}")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their store memberships."""
    users = db.session.query(User).order_by(User.created_at).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<38} {'Name':<20} {'Email':<30} {'Stores'}")
    click.echo("="*100)

    for user in users:
        stores = ", ".join(f"{m.store.name} ({m.role})" for m in user.memberships) or "none"
        click.echo(f"{user.id:<38} {user.name:<20} {user.email:<30} {stores}")

    click.echo("="*100 + "\n")


@click.group('stores')
def stores_group():
    """Store inspection and bootstrap commands."""


@stores_group.command('create')
@click.option('--owner-email', required=True, help='Email of the user who will own the store')
@click.option('--name', required=True, help='Store name')
@click.option('--address', default=None, help='Store address')
@with_appcontext
def create_store_cli(owner_email, name, address):
    """Create a store with an OWNER membership for an existing user."""
    owner = db.session.query(User).filter_by(email=normalize_email(owner_email)).first()
    if not owner:
        click.echo(f"FAIL No user with email {owner_email}")
        return

    store = get_delegate(ResourceKind.STORES).create(
        {"name": name, "address": address},
        related={"memberships": [{"user_id": owner.id, "role": "OWNER"}]},
    )
    click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    click.echo(f"     Owner: {owner.email}")


@stores_group.command('list')
@with_appcontext
def list_stores():
    """List all stores with their member counts."""
    stores = db.session.query(Store).order_by(Store.created_at).all()

    if not stores:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<38} {'Name':<30} {'Members':<8} {'Owners'}")
    click.echo("="*90)

    for store in stores:
        owners = db.session.query(User.email).join(StoreMembership).filter(
            StoreMembership.store_id == store.id,
            StoreMembership.role == "OWNER",
        ).all()
        owner_str = ", ".join(email for (email,) in owners) or "none"
        click.echo(f"{store.id:<38} {store.name:<30} {len(store.memberships):<8} {owner_str}")

    click.echo("="*90 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stores_group)
