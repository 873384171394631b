"""
Command-line interface for Ketchup Tracker.

Usage:
    ketchup status                 - Cycle day, phase and total logs
    ketchup dose log               - Log that you took today's dose
    ketchup dose list              - Show the dose log
    ketchup dose import FILE       - Import dose records from a JSON file

    ketchup cycle status           - Cycle position (count or date based)
    ketchup cycle compare          - Compare logged doses with the calendar

    ketchup diary add              - Add a diary row (Datum, Tid, Typ, ...)
    ketchup diary list             - Show the diary

    ketchup report generate        - Export PDF / Excel / CSV
    ketchup web start              - Start the web interface

Commands that read or write the log ask for the access password first.
"""

import json
import logging
from datetime import date, datetime
from functools import wraps
from pathlib import Path

import click
from tabulate import tabulate

from . import config
from .cycle import compute_date_state
from .database import init_database
from .export import EXPORTERS, export_diary_pdf
from .models import DiaryEntry, InvalidDoseEvent, diary_entry_to_event, event_from_record
from .session import SessionContext, open_gate, gate_status
from .store import DiaryStore, SqliteDoseLogStore, StoreError
from .tracker import DoseTracker


def get_store():
    return SqliteDoseLogStore(config.DB_PATH, config.USER_ID)


def get_diary():
    return DiaryStore(config.DIARY_PATH)


def requires_password(f):
    """Ask for the access password and pass the opened session to the command."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        attempt = click.prompt("Password", hide_input=True)
        session = open_gate(SessionContext(user=config.USER_ID), attempt,
                            config.ACCESS_PASSWORD)
        if gate_status(session) != 'open':
            click.echo("Wrong password.")
            click.get_current_context().exit(1)
        return f(session, *args, **kwargs)
    return wrapper


def resolve_cycle_start(start):
    """Use --start if given, else KETCHUP_CYCLE_START."""
    if start is not None:
        return start.date()
    if not config.is_cycle_start_configured():
        return None
    try:
        return config.get_cycle_start()
    except ValueError:
        raise click.BadParameter(
            f"KETCHUP_CYCLE_START is not a date: {config.CYCLE_START!r}",
            param_hint="--start",
        )


def print_state(state):
    click.echo(f"  Cycle day:  {state.cycle_day} / {config.CYCLE_LENGTH}")
    click.echo(f"  Phase:      {state.phase.label}")
    click.echo(f"  Total logs: {state.total_logs}")
    click.echo(f"\n  {state.advice}\n")


# ============================================================
# MAIN CLI GROUP
# ============================================================

@click.group()
@click.version_option(version="0.1.0", prog_name="Ketchup Tracker")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose):
    """
    Ketchup Tracker - medication cycle log

    Log doses, follow the 28-day cycle and export reports.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    init_database()


@cli.command("status")
@requires_password
def quick_status(session):
    """Show cycle day, phase and total logs."""
    tracker = DoseTracker(get_store(), session)
    click.echo("\n" + "=" * 50)
    click.echo("  KETCHUP STATUS")
    click.echo("=" * 50 + "\n")
    print_state(tracker.state())
    tracker.close()


# ============================================================
# DOSE COMMANDS
# ============================================================

@cli.group()
def dose():
    """Log doses and view the dose log."""
    pass


@dose.command("log")
@requires_password
def dose_log(session):
    """Log one confirmed dose."""
    tracker = DoseTracker(get_store(), session)
    result = tracker.log_dose()

    if result.ok:
        click.echo(f"\n✓ {result.message}")
        click.echo(f"  Time: {result.event.timestamp.astimezone().strftime('%H:%M')}\n")
        print_state(tracker.state())
    else:
        click.echo(f"\n✗ {result.message}\n")
    tracker.close()


@dose.command("list")
@click.option("--limit", "-l", default=config.REPORT_ROW_LIMIT, type=int,
              help="Number of entries to show (default: 20)")
@requires_password
def dose_list(session, limit):
    """Show the dose log, newest first."""
    try:
        events = get_store().list_all()
    except StoreError as e:
        click.echo(f"Could not read the dose log: {e}")
        return

    if not events:
        click.echo("No doses logged yet. Use 'ketchup dose log' to log one.")
        return

    table_data = []
    total = len(events)
    for idx, event in enumerate(events[:limit]):
        when = event.timestamp.astimezone().strftime("%Y-%m-%d %H:%M") if event.timestamp else "-"
        table_data.append([total - idx, when, event.cycle_day, event.status.value])

    headers = ["#", "Time", "Cycle day", "Status"]
    click.echo("\nDose log:")
    click.echo(tabulate(table_data, headers=headers, tablefmt="simple"))
    click.echo()


@dose.command("import")
@click.argument("records_file", type=click.Path(exists=True, dir_okay=False))
@requires_password
def dose_import(session, records_file):
    """
    Import dose records from a JSON file.

    The file holds a list of {timestamp, cycleDay, status} records, or the
    {"logs": [...]} body returned by /api/logs.

    Examples:
        ketchup dose import logs.json
    """
    try:
        data = json.loads(Path(records_file).read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.BadParameter(f"Not a JSON file: {e}", param_hint="RECORDS_FILE")

    records = data.get('logs', []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise click.BadParameter("Expected a list of dose records", param_hint="RECORDS_FILE")

    store = get_store()
    imported = skipped = failed = 0
    for number, record in enumerate(records, start=1):
        try:
            event = event_from_record(record)
        except (InvalidDoseEvent, TypeError, AttributeError) as e:
            click.echo(f"  Skipping record {number}: {e}")
            skipped += 1
            continue
        if store.append(event):
            imported += 1
        else:
            failed += 1

    click.echo(f"\n✓ Imported {imported} dose(s)")
    if skipped:
        click.echo(f"  Skipped {skipped} unreadable record(s)")
    if failed:
        click.echo(f"✗ {failed} dose(s) could not be saved.")
    click.echo()


# ============================================================
# CYCLE COMMANDS
# ============================================================

@cli.group()
def cycle():
    """Show the cycle position."""
    pass


@cycle.command("status")
@click.option("--strategy", "-s", type=click.Choice(['count', 'date']), default='count',
              help="count: number of logged doses, date: days since --start")
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="Cycle start date (default: KETCHUP_CYCLE_START)")
@requires_password
def cycle_status(session, strategy, start):
    """
    Show the cycle position.

    Examples:
        ketchup cycle status
        ketchup cycle status -s date --start 2026-01-05
    """
    if strategy == 'count':
        tracker = DoseTracker(get_store(), session)
        click.echo("\nCycle (by logged doses):")
        print_state(tracker.state())
        tracker.close()
        return

    cycle_start = resolve_cycle_start(start)
    if cycle_start is None:
        click.echo("No cycle start date. Use --start or set KETCHUP_CYCLE_START.")
        return

    state = compute_date_state(cycle_start)
    click.echo(f"\nCycle (since {cycle_start}):")
    click.echo(f"  Day in cycle: {state.day_in_cycle}")
    click.echo(f"  Cycle day:    {state.cycle_day_mod} / {config.CYCLE_LENGTH}")
    click.echo(f"  Pill:         {state.pill_type.label}")
    click.echo(f"  Phase:        {state.phase.label}")
    click.echo(f"\n  {state.advice}\n")


@cycle.command("compare")
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="Cycle start date (default: KETCHUP_CYCLE_START)")
@requires_password
def cycle_compare(session, start):
    """Compare the logged-dose count with the calendar."""
    cycle_start = resolve_cycle_start(start)
    if cycle_start is None:
        click.echo("No cycle start date. Use --start or set KETCHUP_CYCLE_START.")
        return

    tracker = DoseTracker(get_store(), session)
    result = tracker.divergence(cycle_start)
    tracker.close()

    click.echo(f"\n  By logged doses: day {result['count_day']}")
    click.echo(f"  By calendar:     day {result['date_day']}")
    if result['agree']:
        click.echo("\n  ✓ Both agree.\n")
    else:
        click.echo(f"\n  ✗ {result['gap_days']} day(s) apart - a dose may be missing.\n")


# ============================================================
# DIARY COMMANDS
# ============================================================

@cli.group()
def diary():
    """Keep the diary spreadsheet (Datum, Tid, Typ, Humör, Hud, Spotting)."""
    pass


@diary.command("add")
@click.option("--datum", default=None, help="Date YYYY-MM-DD (default: today)")
@click.option("--tid", default=None, help="Time HH:MM (default: now)")
@click.option("--typ", default=None, help="Pill type (default: from cycle start)")
@click.option("--humor", "-m", default="", help="Mood (Humör)")
@click.option("--hud", default="", help="Skin (Hud)")
@click.option("--spotting", default="", help="Spotting")
@requires_password
def diary_add(session, datum, tid, typ, humor, hud, spotting):
    """Add a row to the diary."""
    now = datetime.now()
    datum = datum or now.strftime("%Y-%m-%d")
    tid = tid or now.strftime("%H:%M")

    if typ is None:
        typ = ""
        cycle_start = resolve_cycle_start(None)
        if cycle_start is not None:
            try:
                day = date.fromisoformat(datum)
            except ValueError:
                raise click.BadParameter(f"Not a date: {datum}", param_hint="--datum")
            typ = compute_date_state(cycle_start, day).pill_type.label

    entry = DiaryEntry(datum=datum, tid=tid, typ=typ, humor=humor, hud=hud, spotting=spotting)
    if get_diary().append(entry):
        click.echo(f"\n✓ Saved diary row for {datum} {tid}\n")
    else:
        click.echo("\n✗ Could not save the diary row. Please try again.\n")


@diary.command("list")
@click.option("--limit", "-l", default=config.REPORT_ROW_LIMIT, type=int,
              help="Number of rows to show (default: 20)")
@requires_password
def diary_list(session, limit):
    """Show the diary, newest first."""
    try:
        entries = get_diary().list_all()
    except StoreError as e:
        click.echo(f"Could not read the diary: {e}")
        return

    if not entries:
        click.echo("The diary is empty. Use 'ketchup diary add' to add a row.")
        return

    cycle_start = resolve_cycle_start(None)
    table_data = []
    for e in entries[:limit]:
        day = "-"
        if cycle_start is not None:
            try:
                day = diary_entry_to_event(e, cycle_start).cycle_day
            except InvalidDoseEvent:
                pass
        table_data.append([e.datum, e.tid, day, e.typ, e.humor, e.hud, e.spotting])

    headers = ["Datum", "Tid", "Cykeldag", "Typ", "Humör", "Hud", "Spotting"]
    click.echo()
    click.echo(tabulate(table_data, headers=headers, tablefmt="simple"))
    click.echo()


# ============================================================
# REPORT COMMANDS
# ============================================================

@cli.group()
def report():
    """Generate reports."""
    pass


@report.command("generate")
@click.option("--format", "-f", "format_type", type=click.Choice(['pdf', 'excel', 'csv']),
              default='pdf', help="Export format (default: pdf)")
@click.option("--diary", "from_diary", is_flag=True, help="Export the diary instead (PDF only)")
@requires_password
def report_generate(session, format_type, from_diary):
    """
    Export the 20 most recent entries.

    Examples:
        ketchup report generate              # PDF of the dose log
        ketchup report generate -f excel     # Excel workbook
        ketchup report generate --diary      # PDF of the diary
    """
    click.echo(f"\nGenerating {format_type.upper()} report...")

    try:
        if from_diary:
            filepath = export_diary_pdf(get_diary().list_all())
        else:
            filepath = EXPORTERS[format_type](get_store().list_all())
    except StoreError as e:
        click.echo(f"\n✗ Could not read data: {e}\n")
        return
    except OSError as e:
        click.echo(f"\n✗ Could not write the report: {e}\n")
        return

    click.echo(f"\n✓ Report generated: {filepath}\n")


# ============================================================
# WEB COMMANDS
# ============================================================

@cli.group()
def web():
    """Manage the web interface."""
    pass


@web.command("start")
@click.option("--host", "-h", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
@click.option("--port", "-p", default=5000, type=int, help="Port to run on (default: 5000)")
@click.option("--debug", "-d", is_flag=True, help="Run in debug mode")
def web_start(host, port, debug):
    """
    Start the web interface.

    Access from your phone at http://<your-computer-ip>:5000
    """
    from web.app import run_server
    run_server(host=host, port=port, debug=debug)


# ============================================================
# ENTRY POINT
# ============================================================

def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
