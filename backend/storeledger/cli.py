# Overview: Flask CLI command groups for bootstrap and ledger maintenance.

# backend/storeledger/cli.py
# Commands Legend (run from the backend directory):
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --username owner --email owner@example.com --password "Password123!" [--admin]
# - python -m flask users deactivate --username owner
#   Block login and revoke every open session (stores are kept).
#
# Ledger repair:
# - python -m flask ledger recalculate --product-id 12
# - python -m flask ledger recalculate --all
#   Replay sold ledgers and rewrite product aggregates.

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Product
from .services.auth_service import create_user, deactivate_user, PasswordValidationError
from .services.products_service import recalculate_product


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create database tables."""
    db.create_all()
    click.echo("PASS Database tables created.")


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
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--admin', 'is_admin', is_flag=True, help='Grant the admin overview')
@with_appcontext
def create_user_cli(username, email, password, is_admin):
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
        user = create_user(username=username, email=email, password=password, is_admin=is_admin)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        raise SystemExit(1)
    except LedgerError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        raise SystemExit(1)

    role = "admin" if user.is_admin else "owner"
    click.echo(f"PASS Created user: {user.username} ({user.email}) as {role}")


@users_group.command('deactivate')
@click.option('--username', required=True, help='Username')
@with_appcontext
def deactivate_user_cli(username):
    """Block a user from logging in and end their sessions."""
    try:
        user, revoked = deactivate_user(username)
    except LedgerError as e:
        click.echo(f"FAIL {str(e)}")
        raise SystemExit(1)

    click.echo(f"PASS Deactivated {user.username}; revoked {revoked} session(s)")


@click.group('ledger')
def ledger_group():
    """Sold ledger maintenance commands."""


@ledger_group.command('recalculate')
@click.option('--product-id', type=int, help='Replay one product')
@click.option('--all', 'all_products', is_flag=True, help='Replay every product')
@with_appcontext
def recalculate_cli(product_id, all_products):
    """
    Replay sold ledgers and rewrite product aggregates.

    Safe to run repeatedly: the replay is deterministic.
    """
    if (product_id is None) == (not all_products):
        raise click.UsageError("Pass exactly one of --product-id or --all")

    if product_id is not None:
        ids = [product_id]
    else:
        ids = [row[0] for row in db.session.query(Product.id).order_by(Product.id.asc()).all()]

    failed = 0
    for pid in ids:
        try:
            product = recalculate_product(pid)
        except LedgerError as e:
            failed += 1
            click.echo(f"FAIL product {pid}: {str(e)}")
            continue
        click.echo(
            f"PASS product {product.id}: sold={product.sold_out_quantity} "
            f"remain={product.remain_quantity} profit_cents={product.profit_cents}"
        )

    click.echo(f"Recalculated {len(ids) - failed} of {len(ids)} products.")
    if failed:
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
