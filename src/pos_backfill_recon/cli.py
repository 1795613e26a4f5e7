"""
Command-line interface for the POS transaction backfill tool.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import ReconConfig, generate_default_config, load_config
from .matching.engine import ReconciliationEngine, group_by_day
from .models.transaction import CanonicalTransaction, ReconciliationReport, RunMode
from .normalization.normalizer import NormalizationResult, TransactionNormalizer
from .parsers.sheet_parser import SheetParser
from .store.sql import SqlEventStore
from .utils.business_day import BusinessDayClock, parse_day
from .utils.exceptions import InvalidTimestamp, RowRejected
from .utils.logging_config import setup_logging

console = Console()

MISSING_SAMPLE_SIZE = 20


@click.group()
@click.version_option(version=__version__)
def main():
    """POS transaction reconciliation and backfill tool."""
    pass


@main.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("--day", help="Only process this business day (YYYY-MM-DD)")
@click.option(
    "--apply/--dry-run",
    "apply",
    default=False,
    help="Insert missing transactions (default: dry run, no writes)",
)
@click.option(
    "--purge-manual",
    is_flag=True,
    help="Delete previously backfilled events for --day before reconciling",
)
@click.option("--database-url", help="Override the event store database URL")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also log to this file")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def backfill(
    files: tuple[Path, ...],
    config: Optional[Path],
    day: Optional[str],
    apply: bool,
    purge_manual: bool,
    database_url: Optional[str],
    log_file: Optional[Path],
    verbose: bool,
):
    """
    Reconcile POS exports against the event store and backfill the gaps.

    FILES: One or more .xlsx or .csv transaction exports
    """
    if purge_manual and not (apply and day):
        raise click.UsageError("--purge-manual requires --apply and --day")

    try:
        recon_config = load_config(config)
        setup_logging(
            logging.DEBUG if verbose else recon_config.logging.level,
            log_file or recon_config.logging.file,
            recon_config.logging.format,
        )

        if database_url:
            recon_config.store.database_url = database_url

        days = [parse_day(day).isoformat()] if day else None
        mode = RunMode.APPLY if apply else RunMode.DRY_RUN
        clock = BusinessDayClock(recon_config.business.timezone)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Parsing export files...", total=None)
            normalized = _load_candidates(files, recon_config, clock)
            progress.update(task, completed=True)

            task = progress.add_task(f"Reconciling ({mode.value})...", total=None)
            with SqlEventStore(recon_config.store.database_url) as store:
                engine = ReconciliationEngine(recon_config, store, clock)
                if purge_manual:
                    deleted = engine.purge_backfilled(days[0])
                    console.print(f"[yellow]Purged {deleted} backfilled events for {day}[/yellow]")
                report = engine.reconcile(normalized.transactions, mode=mode, days=days)
            progress.update(task, completed=True)

        _display_report(report, normalized)

        if verbose and report.missing:
            _display_missing(report.missing)

        if mode is RunMode.DRY_RUN:
            console.print(
                f"\n[yellow]Dry run - {len(report.missing)} missing, nothing written[/yellow]"
            )
        else:
            console.print(
                f"\n[green]Inserted {report.inserted}, skipped {report.skipped}, "
                f"failed {report.failed}[/green]"
            )

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("inspect-sheet")
@click.argument("sheet_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--day", help="Only show this business day (YYYY-MM-DD)")
def inspect_sheet(sheet_file: Path, config: Optional[Path], day: Optional[str]):
    """
    Parse an export and display per-day totals from the sheet alone.

    SHEET_FILE: Path to the .xlsx or .csv export
    """
    try:
        recon_config = load_config(config)
        clock = BusinessDayClock(recon_config.business.timezone)
        normalized = _load_candidates((sheet_file,), recon_config, clock)
        by_day = group_by_day(normalized.transactions)
        selected = [parse_day(day).isoformat()] if day else sorted(by_day)

        table = Table(title=f"Sheet Totals: {sheet_file.name}")
        table.add_column("Day")
        table.add_column("Rows", justify="right")
        table.add_column("Amount Due", justify="right")
        table.add_column("Tips", justify="right")
        table.add_column("Cash", justify="right")
        table.add_column("Card", justify="right")

        for key in selected:
            txns = by_day.get(key, [])
            table.add_row(
                key,
                str(len(txns)),
                _money(sum((t.amount_due for t in txns), Decimal("0"))),
                _money(sum((t.tip for t in txns), Decimal("0"))),
                _money(sum((t.cash_tendered for t in txns), Decimal("0"))),
                _money(sum((t.card_amount for t in txns), Decimal("0"))),
            )

        console.print(table)
        console.print(f"\nTotal rows: {len(normalized.transactions)}")
        if normalized.rejected:
            console.print(f"Rejected rows: {normalized.rejected}")

    except Exception as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)


@main.command("inspect-events")
@click.argument("day")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--database-url", help="Override the event store database URL")
def inspect_events(day: str, config: Optional[Path], database_url: Optional[str]):
    """
    Show the stored events of a business day in canonical form.

    DAY: Business day (YYYY-MM-DD)
    """
    try:
        recon_config = load_config(config)
        if database_url:
            recon_config.store.database_url = database_url
        clock = BusinessDayClock(recon_config.business.timezone)
        normalizer = TransactionNormalizer(recon_config, clock)
        start, end = clock.business_day_to_utc_range(day)
        with SqlEventStore(recon_config.store.database_url) as store:
            events = store.find_by_day_range(start, end)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"Stored Events: {day}")
    table.add_column("Event ID", style="cyan")
    table.add_column("Day")
    table.add_column("Time")
    table.add_column("Service")
    table.add_column("Amount", justify="right")
    table.add_column("Tip", justify="right")
    table.add_column("Provider")

    unreadable = 0
    for position, event in enumerate(events, start=1):
        try:
            txn = normalizer.normalize_payload(
                event.payload, source_label=event.event_id, row_number=position
            )
        except (RowRejected, InvalidTimestamp) as e:
            unreadable += 1
            console.print(f"[yellow]Skipping {event.event_id}: {e}[/yellow]")
            continue
        table.add_row(
            event.event_id,
            txn.business_day,
            txn.business_minute,
            txn.service,
            _money(txn.amount_due),
            _money(txn.tip),
            txn.provider_name or "-",
        )

    console.print(table)
    console.print(f"\nStored events: {len(events)}")
    if unreadable:
        console.print(f"Unreadable events: {unreadable}")


@main.command("day-range")
@click.argument("day")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def day_range(day: str, config: Optional[Path]):
    """
    Show the UTC interval covered by a business day.

    DAY: Business day (YYYY-MM-DD)
    """
    try:
        recon_config = load_config(config)
        clock = BusinessDayClock(recon_config.business.timezone)
        start, end = clock.business_day_to_utc_range(day)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    hours = (end - start).total_seconds() / 3600
    console.print(f"Business day {day} ({clock.timezone_name})")
    console.print(f"  start: {start.isoformat()}")
    console.print(f"  end:   {end.isoformat()}")
    console.print(f"  length: {hours:g}h")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _load_candidates(
    files: tuple[Path, ...], config: ReconConfig, clock: BusinessDayClock
) -> NormalizationResult:
    """Parse and normalize every export into one candidate batch."""
    parser = SheetParser(config)
    normalizer = TransactionNormalizer(config, clock)

    combined = NormalizationResult()
    for file_path in files:
        result = normalizer.normalize_rows(parser.parse_file(file_path))
        combined.transactions.extend(result.transactions)
        for reason, count in result.rejected.items():
            combined.rejected[reason] = combined.rejected.get(reason, 0) + count

    return combined


def _display_report(report: ReconciliationReport, normalized: NormalizationResult) -> None:
    """Display per-day reconciliation counts in console."""
    table = Table(title=f"Backfill Summary ({report.mode.value})")
    table.add_column("Day", style="cyan")
    table.add_column("Source Rows", justify="right")
    table.add_column("Existing", justify="right")
    table.add_column("Backfilled", justify="right")
    table.add_column("Missing", justify="right")
    table.add_column("Inserted", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right")

    for summary in report.days:
        table.add_row(
            summary.day,
            str(summary.source_rows),
            str(summary.existing_records),
            str(summary.backfilled_records),
            str(summary.missing),
            str(summary.inserted),
            str(summary.skipped),
            str(summary.failed),
        )

    console.print(table)

    if normalized.rejected:
        console.print(f"Rejected source rows: {normalized.rejected}")
    console.print(f"Processing Time: {report.processing_time_seconds:.2f}s")


def _display_missing(missing: list[CanonicalTransaction]) -> None:
    """Display a sample of the candidates not found in the store."""
    table = Table(title="Missing Transactions")
    table.add_column("Source")
    table.add_column("Row", justify="right")
    table.add_column("Day")
    table.add_column("Time")
    table.add_column("Service")
    table.add_column("Amount", justify="right")
    table.add_column("Tip", justify="right")
    table.add_column("Provider")

    for txn in missing[:MISSING_SAMPLE_SIZE]:
        table.add_row(
            txn.source_label,
            str(txn.row_number),
            txn.business_day,
            txn.business_minute,
            txn.service[:40] + "..." if len(txn.service) > 40 else txn.service,
            _money(txn.amount_due),
            _money(txn.tip),
            txn.provider_name or "-",
        )

    console.print(table)

    if len(missing) > MISSING_SAMPLE_SIZE:
        console.print(f"\n... and {len(missing) - MISSING_SAMPLE_SIZE} more missing")


def _money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


if __name__ == "__main__":
    main()
