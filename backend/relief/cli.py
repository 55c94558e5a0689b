# Overview: Flask CLI command groups for setup, catalog, and fulfillment maintenance.

# backend/relief/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "relief:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (dev/test; production uses `flask db upgrade`).
#
# Catalog:
# - python -m flask catalog seed
#   Insert the default supply items that are missing (idempotent).
# - python -m flask catalog list
#   List catalog items.
#
# Fulfillment maintenance:
# - python -m flask pins reconcile --pin-id 12
#   Re-derive completion for one pin and delete it if fulfilled.
# - python -m flask pins sweep
#   Reconcile every pin whose line items are all fulfilled.
#
# Reporting:
# - python -m flask supplies by-region
#   Print outstanding quantities grouped by region and item.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ReliefError
from .services import aggregation_service, catalog_service, fulfillment_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


# =============================================================================
# CATALOG
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Supply catalog commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert default catalog items (idempotent)."""
    created = catalog_service.seed_default_items()
    click.echo(f"PASS Created {created} catalog item(s)")


@catalog_group.command('list')
@with_appcontext
def list_catalog():
    """List catalog items."""
    items = catalog_service.list_items()
    if not items:
        click.echo("No catalog items found.")
        return

    click.echo(f"{'ID':<5} {'Name':<30} {'Unit':<12} {'Category'}")
    for item in items:
        click.echo(f"{item.id:<5} {item.name:<30} {item.unit:<12} {item.category or '-'}")


# =============================================================================
# FULFILLMENT MAINTENANCE
# =============================================================================

@click.group('pins')
def pins_group():
    """Pin fulfillment maintenance commands."""


@pins_group.command('reconcile')
@click.option('--pin-id', type=int, required=True, help='Pin ID')
@with_appcontext
def reconcile_pin_cli(pin_id):
    """Re-derive completion for one pin."""
    try:
        result = fulfillment_service.reconcile(pin_id)
    except ReliefError as e:
        click.echo(f"FAIL {e}")
        return

    if result.deleted:
        click.echo(f"PASS Pin {pin_id} was complete and has been removed")
    else:
        click.echo(f"PASS Pin {pin_id} left unchanged")


@pins_group.command('sweep')
@with_appcontext
def sweep_pins_cli():
    """Reconcile every pin whose line items are all fulfilled."""
    results = fulfillment_service.sweep_completed()
    removed = [r.pin_id for r in results if r.deleted]
    click.echo(f"PASS Sweep removed {len(removed)} pin(s)")
    for pin_id in removed:
        click.echo(f"   - pin {pin_id}")


# =============================================================================
# REPORTING
# =============================================================================

@click.group('supplies')
def supplies_group():
    """Supply reporting commands."""


@supplies_group.command('by-region')
@with_appcontext
def supplies_by_region_cli():
    """Print outstanding quantities grouped by region and item."""
    supplies = aggregation_service.aggregate_outstanding_by_region()
    if not supplies:
        click.echo("No outstanding supplies.")
        return

    click.echo(f"{'Region':<40} {'Item':<30} {'Needed':>8} {'Unit'}")
    for row in supplies:
        click.echo(
            f"{row['region']:<40} {row['item_name']:<30} {row['total_quantity_needed']:>8} {row['unit']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(pins_group)
    app.cli.add_command(supplies_group)
