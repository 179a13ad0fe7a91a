# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/hardware_inventory/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask db upgrade
#   Apply Alembic migrations (preferred for server databases).
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables from the models (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Insert the default categories and suppliers (skips names that exist).
#
# Service accounts:
# - python -m flask users list
#   List accounts with role and active status.
# - python -m flask users create --username operador --password "StockManager#789" --role OPERATOR
#   Create or replace an account (prompts if options are omitted).
# - python -m flask users deactivate operador
#   Disable an account without deleting it.
#
# Inventory inspection:
# - python -m flask items low-stock
#   List active items at or below their minimum stock.

import click
from dataclasses import replace
from flask import current_app
from flask.cli import with_appcontext

from .domain import Role, UserAccount
from .extensions import db
from .services.auth_service import hash_password, is_strong

DEFAULT_CATEGORIES = (
    ("Hand Tools", "Hammers, screwdrivers, wrenches and pliers"),
    ("Fasteners", "Screws, nails, bolts and anchors"),
    ("Plumbing", "Pipes, fittings, valves and sealants"),
    ("Electrical", "Cable, switches, outlets and lighting"),
    ("Paint", "Paints, brushes, rollers and solvents"),
)

DEFAULT_SUPPLIERS = (
    {"name": "Ferretera Central", "contact": "Purchasing desk", "phone": "555-0100",
     "email": "ventas@ferreteracentral.example", "address": "Av. Industrial 120"},
    {"name": "Tornillos y Herrajes del Norte", "contact": "Sales", "phone": "555-0142",
     "email": "pedidos@thnorte.example", "address": "Calle 8 #45"},
)


def _store():
    return current_app.extensions["inventory_facade"].service.store


@click.group('system')
def system_group():
    """Schema bootstrap and reference data."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables from the models."""
    db.create_all()
    click.echo("OK Tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate the inventory schema. Items, movements and users are lost."""
    if not yes:
        click.confirm("Erase every item, movement and user account?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("Inventory schema recreated (empty)")


@system_group.command('seed')
@with_appcontext
def seed():
    """Insert default categories and suppliers."""
    store = _store()
    existing_categories = {c.name for c in store.list_categories()}
    existing_suppliers = {s.name for s in store.list_suppliers()}

    created = 0
    for name, description in DEFAULT_CATEGORIES:
        if name in existing_categories:
            continue
        store.add_category(name, description)
        created += 1

    for supplier in DEFAULT_SUPPLIERS:
        if supplier["name"] in existing_suppliers:
            continue
        details = {key: value for key, value in supplier.items() if key != "name"}
        store.add_supplier(supplier["name"], **details)
        created += 1

    click.echo(f"OK Seeded {created} record(s)")


@click.group('users')
def users_group():
    """Service account management."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts with role and active status."""
    accounts = _store().list_users()
    if not accounts:
        click.echo("No users found.")
        return

    click.echo(f"{'Username':<20} {'Role':<10} {'Active'}")
    click.echo("=" * 40)
    for account in accounts:
        click.echo(f"{account.username:<20} {account.role.value:<10} {'Yes' if account.active else 'No'}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice([r.value for r in Role], case_sensitive=False), prompt=True)
@with_appcontext
def create_user(username, password, role):
    """Create or replace a service account."""
    if not is_strong(password):
        raise click.ClickException(
            "Password must have at least 8 characters with upper and lower case letters, "
            "a digit and a special character"
        )
    account = _store().save_user(
        UserAccount(username=username.strip().lower(), password_hash=hash_password(password), role=Role(role.upper()))
    )
    click.echo(f"OK User {account.username} saved with role {account.role.value}")


@users_group.command('deactivate')
@click.argument('username')
@with_appcontext
def deactivate_user(username):
    """Disable an account; its movements keep referring to it."""
    store = _store()
    account = store.find_user(username)
    if account is None:
        raise click.ClickException(f"User not found: {username}")
    store.save_user(replace(account, active=False))
    click.echo(f"OK User {account.username} deactivated")


@click.group('items')
def items_group():
    """Inventory inspection."""


@items_group.command('low-stock')
@with_appcontext
def low_stock():
    """List active items at or below their minimum stock."""
    items = current_app.extensions["inventory_facade"].service.list_low_stock()
    if not items:
        click.echo("No items at or below minimum stock.")
        return

    click.echo(f"{'Code':<20} {'Stock':>7} {'Min':>7}  Name")
    click.echo("=" * 60)
    for item in items:
        click.echo(f"{item.code:<20} {item.current_stock:>7} {item.min_stock:>7}  {item.name}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(items_group)
