# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/skinshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask accounts create --email admin@skinshop.local --password "Password123!" --role admin
# - python -m flask accounts list [--role manager]
#
# Catalog:
# - python -m flask catalog seed
#   Idempotently create sample categories, brands, skin types and products.
#
# Orders:
# - python -m flask orders list [--status Pending] [--limit 20]
# - python -m flask orders pending-report --older-than-hours 24
#   Report Pending orders that never received a successful payment callback.

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .extensions import db
from .models import Account, Brand, Category, Order, Product, Skin
from .models.accounts import VALID_ROLES
from .models.orders import ORDER_STATUSES
from .services.auth_service import create_account, PasswordValidationError
from .services.order_service import list_stale_pending_orders
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('accounts')
def accounts_group():
    """Account inspection and bootstrap."""


@accounts_group.command('create')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--username', default=None)
@click.option('--role', type=click.Choice(VALID_ROLES), default='customer', show_default=True)
@with_appcontext
def create_account_command(email, password, username, role):
    """Create an account with any role (staff accounts are created here)."""
    try:
        account = create_account(email, password, username=username, role=role)
    except (ValidationError, ConflictError, PasswordValidationError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created {account.role} account {account.email} (ID: {account.id})")


@accounts_group.command('list')
@click.option('--role', type=click.Choice(VALID_ROLES), default=None)
@with_appcontext
def list_accounts(role):
    query = db.session.query(Account).order_by(Account.id.asc())
    if role:
        query = query.filter_by(role=role)
    for account in query.all():
        status = "active" if account.is_active else "inactive"
        click.echo(f"{account.id:>5}  {account.email:<40} {account.role:<9} {status}")


@click.group('catalog')
def catalog_group():
    """Catalog bootstrap."""


SAMPLE_CATEGORIES = ["Cleanser", "Toner", "Serum", "Moisturizer", "Sunscreen"]
SAMPLE_BRANDS = ["La Roche-Posay", "CeraVe", "Cosrx", "Bioderma"]
SAMPLE_SKINS = ["Oily", "Dry", "Combination", "Sensitive", "Normal"]
SAMPLE_PRODUCTS = [
    # name, category, brand, skin, price (VND), quantity
    ("Effaclar Purifying Foaming Gel", "Cleanser", "La Roche-Posay", "Oily", 385000, 40),
    ("Hydrating Facial Cleanser", "Cleanser", "CeraVe", "Dry", 320000, 50),
    ("Advanced Snail 96 Mucin Essence", "Serum", "Cosrx", "Combination", 410000, 30),
    ("Sensibio H2O Micellar Water", "Toner", "Bioderma", "Sensitive", 295000, 60),
    ("Anthelios UVMune 400 Fluid", "Sunscreen", "La Roche-Posay", "Normal", 515000, 25),
]


def _get_or_create(model, name):
    row = db.session.query(model).filter_by(name=name).first()
    if row is None:
        row = model(name=name)
        db.session.add(row)
        db.session.flush()
    return row


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Idempotently create sample taxonomy and products."""
    categories = {name: _get_or_create(Category, name) for name in SAMPLE_CATEGORIES}
    brands = {name: _get_or_create(Brand, name) for name in SAMPLE_BRANDS}
    skins = {name: _get_or_create(Skin, name) for name in SAMPLE_SKINS}

    created = 0
    for name, category, brand, skin, price, quantity in SAMPLE_PRODUCTS:
        if db.session.query(Product).filter_by(name=name).first():
            continue
        db.session.add(Product(
            name=name,
            category_id=categories[category].id,
            brand_id=brands[brand].id,
            skin_id=skins[skin].id,
            price=price,
            quantity=quantity,
        ))
        created += 1

    db.session.commit()
    click.echo(f"PASS Catalog seeded ({created} new products)")


@click.group('orders')
def orders_group():
    """Order inspection."""


@orders_group.command('list')
@click.option('--status', type=click.Choice(ORDER_STATUSES), default=None)
@click.option('--limit', default=20, show_default=True)
@with_appcontext
def list_orders(status, limit):
    query = db.session.query(Order).order_by(Order.created_at.desc())
    if status:
        query = query.filter_by(status=status)
    for order in query.limit(limit).all():
        click.echo(
            f"{order.id:>6}  account={order.account_id:<6} {order.status:<9} "
            f"total={order.total_amount:>12,}  created={order.created_at}"
        )


@orders_group.command('pending-report')
@click.option('--older-than-hours', default=24, show_default=True, type=int)
@with_appcontext
def pending_report(older_than_hours):
    """
    List Pending orders older than N hours.

    Read-only: stock stays reserved until an operator decides what to do.
    """
    orders = list_stale_pending_orders(timedelta(hours=older_than_hours))
    if not orders:
        click.echo("PASS No stale Pending orders")
        return

    reserved_units = 0
    for order in orders:
        units = sum(item.quantity for item in order.items)
        reserved_units += units
        click.echo(
            f"{order.id:>6}  account={order.account_id:<6} total={order.total_amount:>12,} "
            f"units={units:<4} created={order.created_at}"
        )
    click.echo(f"WARN {len(orders)} stale Pending orders holding {reserved_units} units")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(accounts_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(orders_group)
