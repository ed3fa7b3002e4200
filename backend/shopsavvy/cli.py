# Overview: Flask CLI command group for bootstrapping, inspecting and moving ledger data.

# backend/shopsavvy/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask ledger <command> [options]
#
# Bootstrap/repair:
# - python -m flask ledger init
#   Create tables if missing, then load the ledger (seeds demo data on first run).
# - python -m flask ledger reset --yes
#   DEV/TEST only: drop and recreate all tables, then reseed (deletes all data).
#
# Inspection:
# - python -m flask ledger shops
# - python -m flask ledger products
# - python -m flask ledger sales [--shop-id shop1]
#
# Maintenance:
# - python -m flask ledger set-stock shop1 prod1 40
#   Set (replace) the quantity of one inventory row.
# - python -m flask ledger expire-products
#   Deactivate every product whose expiry date has passed.
#
# Snapshots:
# - python -m flask ledger export ledger.json
# - python -m flask ledger import ledger.json
#   Documents without "schemaVersion" are treated as a raw browser-storage dump.

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from . import LEDGER_EXTENSION_KEY, get_ledger
from .extensions import db


@click.group('ledger')
def ledger_group():
    """Store ledger commands."""


@ledger_group.command('init')
@with_appcontext
def init_ledger():
    """Create tables if needed and load (or seed) the ledger."""
    db.create_all()

    ledger = current_app.extensions[LEDGER_EXTENSION_KEY]
    report = ledger.load().data
    if report.fallback:
        click.echo("WARN Stored data could not be read; running on demo data in memory")
    elif report.seeded:
        click.echo("PASS Seeded demo dataset")
    else:
        click.echo("PASS Loaded stored ledger")
    if report.deactivated:
        click.echo(f"PASS Deactivated {report.deactivated} expired product(s)")

    counts = ledger.counts()
    click.echo(", ".join(f"{key}: {count}" for key, count in counts.items()))


@ledger_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_ledger(yes):
    """
    DANGER: Drop all tables, recreate schema and reseed.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    result = current_app.extensions[LEDGER_EXTENSION_KEY].reset()
    if not result.success:
        click.echo(f"FAIL {result.error}")
        return
    click.echo("PASS Ledger reset complete.")


@ledger_group.command('shops')
@with_appcontext
def list_shops():
    """List all stores."""
    shops = get_ledger().shops.list()
    if not shops:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<20} {'Number':<10} {'Name':<25} {'Address'}")
    click.echo("="*80)
    for shop in shops:
        click.echo(f"{shop.id:<20} {shop.store_number:<10} {shop.name:<25} {shop.address}")
    click.echo("="*80 + "\n")


@ledger_group.command('products')
@with_appcontext
def list_products():
    """List all products with global stock."""
    products = get_ledger().products.list()
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<20} {'SKU':<10} {'Name':<25} {'Price':>10} {'Stock':>7} {'Active'}")
    click.echo("="*90)
    for product in products:
        active_str = "Yes" if product.is_active else "No"
        click.echo(
            f"{product.id:<20} {product.sku:<10} {product.name:<25} "
            f"{str(product.price):>10} {product.stock:>7} {active_str}"
        )
    click.echo("="*90 + "\n")


@ledger_group.command('sales')
@click.option('--shop-id', default=None, help='Only sales of this store')
@with_appcontext
def list_sales(shop_id):
    """List recorded sales."""
    ledger = get_ledger()
    sales = ledger.sales.list_by_shop(shop_id) if shop_id else ledger.sales.list()
    if not sales:
        click.echo("No sales found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<16} {'Store':<12} {'Type':<8} {'Total':>10} {'Paid':>10} {'Status':<10} {'Created'}")
    click.echo("="*100)
    for sale in sales:
        click.echo(
            f"{sale.id:<16} {sale.shop_id:<12} {sale.sale_type:<8} {str(sale.total):>10} "
            f"{str(sale.paid):>10} {sale.status:<10} {str(sale.created_at)[:19]}"
        )
    click.echo("="*100 + "\n")


@ledger_group.command('set-stock')
@click.argument('shop_id')
@click.argument('product_id')
@click.argument('quantity', type=int)
@with_appcontext
def set_stock(shop_id, product_id, quantity):
    """Set the quantity of one store's inventory row for a product."""
    ledger = get_ledger()
    if ledger.shops.get(shop_id) is None:
        click.echo(f"FAIL Store {shop_id} not found")
        return
    if ledger.products.get(product_id) is None:
        click.echo(f"FAIL Product {product_id} not found")
        return

    result = ledger.inventory.upsert(shop_id, product_id, quantity)
    if not result.success:
        click.echo(f"FAIL {result.error}")
        return
    click.echo(f"PASS {shop_id}/{product_id} quantity set to {result.data.quantity}")


@ledger_group.command('expire-products')
@with_appcontext
def expire_products():
    """Deactivate products past their expiry date."""
    result = get_ledger().products.deactivate_expired()
    if not result.success:
        click.echo(f"FAIL {result.error}")
        return
    click.echo(f"PASS Deactivated {len(result.data)} expired product(s)")


@ledger_group.command('export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_ledger(path):
    """Write every collection to a JSON snapshot file."""
    doc = get_ledger().export_snapshot()
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(doc, fh, indent=2)
    click.echo(f"PASS Exported snapshot to {path}")


@ledger_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_ledger(path):
    """Replace the ledger with the contents of a JSON snapshot file."""
    with open(path, encoding="utf-8") as fh:
        try:
            doc = json.load(fh)
        except ValueError:
            click.echo(f"FAIL {path} is not valid JSON")
            return

    result = get_ledger().import_snapshot(doc)
    if not result.success:
        click.echo(f"FAIL {result.error}")
        return
    counts = get_ledger().counts()
    click.echo("PASS Imported snapshot: " + ", ".join(f"{k}: {v}" for k, v in counts.items()))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(ledger_group)
