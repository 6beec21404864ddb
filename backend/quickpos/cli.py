# Overview: Flask CLI command groups for bootstrap, demo data, and inspection.

# backend/quickpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the walk-in customer and the invoice sequence.
# - python -m flask system seed
#   Load the demo catalog (8 products) and customers. Skips SKUs that already exist.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system wipe --yes
#   Delete all transactions; catalog, customers and invoice numbering are kept.
#
# Catalog inspection:
# - python -m flask catalog list [--category Electronics]
# - python -m flask catalog low-stock [--threshold 20]
#
# Sales inspection:
# - python -m flask sales recent --limit 10
# - python -m flask sales dashboard

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, DocumentSequence, Product, Transaction, TransactionLine
from .services import customers_service, dashboard_service, products_service
from .services.checkout_service import list_transactions
from .services.document_service import INVOICE_DOCUMENT_TYPE
from .services.pricing import from_cents


DEMO_PRODUCTS = [
    # name, sku, price_cents, cost_cents, stock, category, tax_rate_bps
    ("Ballpoint Pen (Box)", "OFF-001", 1299, 750, 150, "Office Supplies", 1500),
    ("A4 Paper Ream", "OFF-002", 2499, 1400, 80, "Office Supplies", 1500),
    ("Desk Calculator", "ELC-001", 4500, 2200, 35, "Electronics", 1500),
    ("USB Flash Drive 64GB", "ELC-002", 2999, 1200, 60, "Electronics", 1500),
    ("Receipt Printer Roll", "OFF-003", 850, 350, 200, "Office Supplies", 1500),
    ("Accounting Ledger Book", "OFF-004", 3500, 1800, 45, "Office Supplies", 1500),
    ("Wireless Mouse", "ELC-003", 5500, 2800, 40, "Electronics", 1500),
    ("Folder Organizer Set", "OFF-005", 1875, 900, 90, "Office Supplies", 1500),
]

DEMO_CUSTOMERS = [
    # name, phone, email
    ("Ahmed Al-Rashid", "+966-50-1234567", "ahmed@company.sa"),
    ("Fatima Holdings LLC", "+966-55-9876543", "accounts@fatima.sa"),
    ("Gulf Trading Co.", "+966-54-1112233", "procurement@gulftrade.sa"),
]


def ensure_invoice_sequence() -> DocumentSequence:
    seq = db.session.query(DocumentSequence).filter_by(document_type=INVOICE_DOCUMENT_TYPE).first()
    if seq is None:
        seq = DocumentSequence(
            document_type=INVOICE_DOCUMENT_TYPE,
            next_number=current_app.config.get("INVOICE_SEQUENCE_START", 1001),
        )
        db.session.add(seq)
    return seq


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables, the walk-in customer and the invoice sequence (idempotent)."""
    click.echo("START Initializing POS database...")
    db.create_all()

    walk_in = customers_service.ensure_walk_in_customer()
    seq = ensure_invoice_sequence()
    db.session.commit()

    click.echo(f"PASS Walk-in customer: {walk_in.name} (ID: {walk_in.id})")
    click.echo(f"PASS Next invoice number: {seq.next_number}")


@system_group.command('seed')
@with_appcontext
def seed_demo():
    """Load the demo catalog and customer directory."""
    customers_service.ensure_walk_in_customer()
    ensure_invoice_sequence()

    created = 0
    for name, sku, price, cost, stock, category, tax in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=sku).first():
            click.echo(f"SKIP  {sku} already exists")
            continue
        db.session.add(Product(
            name=name,
            sku=sku,
            price_cents=price,
            cost_cents=cost,
            stock=stock,
            category=category,
            tax_rate_bps=tax,
        ))
        created += 1

    for name, phone, email in DEMO_CUSTOMERS:
        if not db.session.query(Customer).filter_by(name=name).first():
            db.session.add(Customer(name=name, phone=phone, email=email))

    db.session.commit()
    click.echo(f"PASS Seeded {created} products")


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


@system_group.command('wipe')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def wipe_data(yes):
    """
    Delete every transaction from the ledger.

    Keeps: products (stock is NOT restored), customers and the invoice
    counter, so numbers issued before the wipe are never reused.
    """
    if not yes:
        click.confirm("WARN This will DELETE all transactions. Are you sure?", abort=True)

    click.echo("WIPE  Clearing transactions...")
    lines = db.session.query(TransactionLine).delete()
    txs = db.session.query(Transaction).delete()
    seq = ensure_invoice_sequence()
    db.session.commit()
    click.echo(f"PASS Removed {txs} transactions ({lines} lines); next invoice number {seq.next_number}")


@click.group('catalog')
def catalog_group():
    """Catalog inspection commands."""


@catalog_group.command('list')
@click.option('--category', default=None, help='Filter by category')
@click.option('--search', default=None, help='Substring of name or SKU')
@with_appcontext
def list_catalog(category, search):
    """List products."""
    products = products_service.list_products(search=search, category=category)
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'SKU':<10} {'Name':<30} {'Category':<18} {'Price':>10} {'Stock':>8}")
    click.echo("="*90)
    for p in products:
        click.echo(f"{p.id:<5} {p.sku:<10} {p.name[:30]:<30} {p.category[:18]:<18} {from_cents(p.price_cents):>10.2f} {p.stock:>8}")
    click.echo("="*90 + "\n")


@catalog_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Defaults to LOW_STOCK_THRESHOLD')
@with_appcontext
def list_low_stock(threshold):
    """List products below the low-stock threshold."""
    threshold = threshold if threshold is not None else current_app.config.get("LOW_STOCK_THRESHOLD", 20)
    products = dashboard_service.low_stock(threshold)
    if not products:
        click.echo(f"PASS No products below {threshold} units.")
        return
    for p in products:
        click.echo(f"WARN {p.sku:<10} {p.name:<30} stock={p.stock}")


@click.group('sales')
def sales_group():
    """Sales ledger inspection commands."""


@sales_group.command('recent')
@click.option('--limit', type=int, default=10, show_default=True)
@with_appcontext
def recent_sales(limit):
    """List the newest transactions."""
    for tx in list_transactions(limit=limit):
        click.echo(
            f"{tx.invoice_number:<12} {tx.created_at:%Y-%m-%d %H:%M} {tx.customer_name[:24]:<24} "
            f"{tx.payment_method:<14} {from_cents(tx.grand_total_cents):>10.2f}"
        )


@sales_group.command('dashboard')
@with_appcontext
def show_dashboard():
    """Print the dashboard payload as JSON."""
    click.echo(json.dumps(dashboard_service.build_dashboard(), indent=2))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(sales_group)
