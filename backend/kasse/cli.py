# Overview: Flask CLI command groups for bootstrap, SAF-T exports and POS reports.

# backend/kasse/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system create-store --name "Test AS" --slug test-as --org-number 123456789
#   Create a store (tenant) for exports and reports.
#
# SAF-T:
# - python -m flask saft export --store-id 1 --from 2024-03-01 --to 2024-03-31 [--output file.xml]
#   Generate the SAF-T Cash Register file (default: instance saf-t directory).
#
# Reports:
# - python -m flask reports x --session-id 12 [--pdf]
#   Produce an X-report for an open session (journaled as event 13008).
# - python -m flask reports z --session-id 12 [--pdf]
#   Produce a Z-report for a closed session (journaled as event 13009).
# - python -m flask reports regenerate-z [--store-id 1] [--from 2024-03-01] [--to 2024-03-31] [--limit 50] [--dry-run]
#   Recompute cash figures and cached Z-report snapshots for closed sessions.
# - python -m flask reports overview --store-id 1 --from 2024-03-01 --to 2024-03-31
#   Print the sales overview for closed sessions.
# - python -m flask reports csv --store-id 1 --from 2024-03-01 --to 2024-03-31
#   Write the session CSV to the instance exports directory.

import json

import click
from flask.cli import with_appcontext

from .extensions import db


DATE = click.DateTime(formats=["%Y-%m-%d"])


def _nok(amount_ore) -> str:
    return f"{(amount_ore or 0) / 100:,.2f} NOK"


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap commands."""


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


@system_group.command('create-store')
@click.option('--name', required=True, help='Store (company) name')
@click.option('--slug', required=True, help='URL-safe store identifier used in export filenames')
@click.option('--org-number', default=None, help='Organization number for the SAF-T header')
@click.option('--no-tips', is_flag=True, help='Disable tips in X/Z reports')
@with_appcontext
def create_store_cli(name, slug, org_number, no_tips):
    """Create a store."""
    from .models import Store

    store = Store(
        name=name,
        slug=slug,
        store_metadata={"organization_number": org_number} if org_number else None,
        tips_enabled=not no_tips,
    )
    db.session.add(store)
    db.session.commit()
    click.echo(f"PASS Created store {store.id}: {store.name} ({store.slug})")


# =============================================================================
# SAF-T
# =============================================================================

@click.group('saft')
def saft_group():
    """SAF-T Cash Register exports."""


@saft_group.command('export')
@click.option('--store-id', type=int, required=True, help='Store ID')
@click.option('--from', 'from_date', type=DATE, required=True, help='First day (YYYY-MM-DD)')
@click.option('--to', 'to_date', type=DATE, required=True, help='Last day, inclusive (YYYY-MM-DD)')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), help='Write to this path instead of storage')
@with_appcontext
def export_saft_cli(store_id, from_date, to_date, output):
    """
    Generate the SAF-T Cash Register XML for a store and date range.

    Example:
        flask saft export --store-id 1 --from 2024-03-01 --to 2024-03-31
    """
    from .services import export_service, session_service

    store = session_service.get_store(store_id)
    if not store:
        raise click.ClickException(f"Store {store_id} not found")

    try:
        result = export_service.export_saft_file(store, from_date, to_date, output_path=output)
    except export_service.ExportError as exc:
        raise click.ClickException(str(exc))

    click.echo(f"PASS Wrote {result['filename']} ({result['size']} bytes) to {result['path']}")


# =============================================================================
# REPORTS
# =============================================================================

@click.group('reports')
def reports_group():
    """X/Z reports and sales overviews."""


def _emit_report(report: dict, pdf: bool):
    from .services import export_service, pdf_service

    if pdf:
        filename = pdf_service.pdf_filename(report)
        result = export_service.write_file("REPORT_STORAGE_DIR", filename, pdf_service.render_report_pdf(report))
        click.echo(f"PASS Wrote {result['filename']} to {result['path']}")
        return

    click.echo(f"{report['report_type']} for session {report['session_number']}")
    click.echo(f"  Transactions: {report['transactions_count']}")
    click.echo(f"  Total:        {_nok(report['total_amount'])}")
    click.echo(f"  VAT:          {_nok(report['vat_amount'])}")
    click.echo(f"  Cash:         {_nok(report['cash_amount'])}")
    click.echo(f"  Card:         {_nok(report['card_amount'])}")
    click.echo(f"  Expected:     {_nok(report['expected_cash'])}")
    if report["report_type"] == "Z-Report":
        click.echo(f"  Counted cash: {_nok(report['actual_cash'])}")
        click.echo(f"  Difference:   {_nok(report['cash_difference'])}")


@reports_group.command('x')
@click.option('--session-id', type=int, required=True, help='Session ID')
@click.option('--pdf', is_flag=True, help='Write a PDF to the exports directory')
@with_appcontext
def x_report_cli(session_id, pdf):
    """Produce an X-report for an open session."""
    from .services import report_service

    try:
        report = report_service.produce_x_report(session_id)
    except report_service.ReportError as exc:
        raise click.ClickException(str(exc))
    _emit_report(report, pdf)


@reports_group.command('z')
@click.option('--session-id', type=int, required=True, help='Session ID')
@click.option('--pdf', is_flag=True, help='Write a PDF to the exports directory')
@with_appcontext
def z_report_cli(session_id, pdf):
    """Produce a Z-report for a closed session."""
    from .services import report_service

    try:
        report = report_service.produce_z_report(session_id)
    except report_service.ReportError as exc:
        raise click.ClickException(str(exc))
    _emit_report(report, pdf)


@reports_group.command('regenerate-z')
@click.option('--store-id', type=int, help='Only sessions of this store')
@click.option('--from', 'from_date', type=DATE, help='Closed on or after this day')
@click.option('--to', 'to_date', type=DATE, help='Closed on or before this day')
@click.option('--limit', type=int, help='Max sessions to process')
@click.option('--dry-run', is_flag=True, help='Report without saving')
@with_appcontext
def regenerate_z_cli(store_id, from_date, to_date, limit, dry_run):
    """
    Regenerate Z-reports for closed sessions.

    Example:
        flask reports regenerate-z --store-id 1 --dry-run
    """
    from .services import report_service

    stats = report_service.regenerate_z_reports(
        store_id=store_id,
        from_date=from_date,
        to_date=to_date,
        limit=limit,
        dry_run=dry_run,
    )

    click.echo(f"Sessions:    {stats['total_sessions']}")
    click.echo(f"Processed:   {stats['processed']}")
    click.echo(f"Regenerated: {stats['regenerated']}")
    if stats["errors"]:
        click.echo(f"Errors:      {len(stats['errors'])}")
        for message in stats["errors"]:
            click.echo(f"  FAIL {message}")
    if dry_run:
        click.echo("DRY RUN - no changes saved")


@reports_group.command('overview')
@click.option('--store-id', type=int, required=True, help='Store ID')
@click.option('--from', 'from_date', type=DATE, required=True, help='First day (YYYY-MM-DD)')
@click.option('--to', 'to_date', type=DATE, required=True, help='Last day, inclusive (YYYY-MM-DD)')
@with_appcontext
def overview_cli(store_id, from_date, to_date):
    """Print the sales overview as JSON."""
    from .services import report_service

    overview = report_service.sales_overview(store_id, from_date, to_date)
    click.echo(json.dumps(overview, indent=2, ensure_ascii=False))


@reports_group.command('csv')
@click.option('--store-id', type=int, required=True, help='Store ID')
@click.option('--from', 'from_date', type=DATE, required=True, help='First day (YYYY-MM-DD)')
@click.option('--to', 'to_date', type=DATE, required=True, help='Last day, inclusive (YYYY-MM-DD)')
@with_appcontext
def csv_cli(store_id, from_date, to_date):
    """Write the session CSV export."""
    from .services import export_service, report_service, session_service

    store = session_service.get_store(store_id)
    if not store:
        raise click.ClickException(f"Store {store_id} not found")

    filename = report_service.csv_filename(store, from_date, to_date)
    result = export_service.write_file(
        "REPORT_STORAGE_DIR",
        filename,
        report_service.sessions_csv(store_id, from_date, to_date),
    )
    click.echo(f"PASS Wrote {result['filename']} to {result['path']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(saft_group)
    app.cli.add_command(reports_group)
