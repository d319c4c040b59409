# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/gamestock/cli.py
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
# Catalog inspection:
# - python -m flask catalog list [--search mario] [--in-stock]
#   List games with per-variant stock and cost basis.
# - python -m flask catalog show 0045496590420
#   Show one game in full.
#
# Audit trail:
# - python -m flask ledger recent --limit 20 [--category inventory]
#   Most recent ledger events.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import NotFoundError
from .services import catalog_service, ledger_service


def _money(cents: int | None) -> str:
    if cents is None:
        return "-"
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
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


@click.group('catalog')
def catalog_group():
    """Catalog inspection commands."""


@catalog_group.command('list')
@click.option('--search', default=None, help='Filter by title or barcode')
@click.option('--in-stock', 'in_stock', is_flag=True, help='Only games with stock')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_games_cli(search, in_stock, limit):
    """
    List games.

    Example:
        flask catalog list
        flask catalog list --search zelda --in-stock
    """
    games, total = catalog_service.list_games(search=search, in_stock_only=in_stock, page=1, limit=limit)

    if not games:
        click.echo("No games found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'Barcode':<14} {'Title':<40} {'Case':>6} {'Cart':>6} {'Price':>12} {'Cost basis':>12}")
    click.echo("="*100)

    for game in games:
        click.echo(
            f"{game.barcode:<14} {game.title[:40]:<40} {game.stock_with_case:>6} "
            f"{game.stock_cartridge_only:>6} {_money(game.price_cents):>12} {_money(game.cost_basis_cents):>12}"
        )

    click.echo("="*100)
    click.echo(f"Showing {len(games)} of {total}\n")


@catalog_group.command('show')
@click.argument('barcode')
@with_appcontext
def show_game_cli(barcode):
    """Show one game as JSON."""
    try:
        game = catalog_service.get_by_barcode(barcode)
    except NotFoundError as e:
        raise click.ClickException(e.message)
    click.echo(json.dumps(game.to_dict(), indent=2))


@click.group('ledger')
def ledger_group():
    """Audit trail inspection commands."""


@ledger_group.command('recent')
@click.option('--limit', type=int, default=20, show_default=True)
@click.option('--category', default=None, help='inventory, catalog, sales, trades, acquisitions')
@with_appcontext
def recent_events_cli(limit, category):
    """Show the most recent ledger events."""
    events, _ = ledger_service.list_events(event_category=category, page=1, limit=limit)

    if not events:
        click.echo("No ledger events found.")
        return

    for ev in events:
        when = ev.to_dict()["occurred_at"]
        target = f"{ev.entity_type}#{ev.entity_id}"
        barcode = f" [{ev.barcode}]" if ev.barcode else ""
        click.echo(f"{when}  {ev.event_type:<24} {target:<18}{barcode} {ev.note or ''}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(ledger_group)
