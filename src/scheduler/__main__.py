#!/usr/bin/env python3
"""
CLI interface for the scheduled reconciliation pass.

A pass refreshes the subscribed config file, then concurrently refreshes live
channel counts, starts a due OpenList scan, reconciles every user's play
records and favorites against the catalog, and checks anime subscriptions.

Usage:
    uv run -m src.scheduler --once
    uv run -m src.scheduler --interval 60
    uv run -m src.scheduler --once --verbose
"""

import argparse
import asyncio
import sys
from datetime import datetime

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.db import check_database_connection
from src.logger import setup_logging

from .orchestrator import CronScheduler, PassResult
from .wiring import build_scheduler


console = Console()


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run scheduled reconciliation passes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a single pass and wait for background emails and scans
  uv run -m src.scheduler --once

  # Run a pass every 60 minutes
  uv run -m src.scheduler --interval 60

Notes:
  - Settings come from the environment (.env is loaded)
  - Logs written to logs/scheduler.log and one file per job
        """,
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run one pass and exit (default)",
    )
    mode.add_argument(
        "--interval",
        type=int,
        metavar="MINUTES",
        help="Run a pass every MINUTES minutes until interrupted",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )
    return parser.parse_args()


def print_summary(result: PassResult) -> None:
    """Print a pass summary table."""
    if result.skipped:
        console.print("[yellow]Pass skipped: another pass is still running[/yellow]")
        return

    table = Table(title="Scheduled pass")
    table.add_column("Task")
    table.add_column("Result")

    table.add_row("Config refresh", "applied" if result.config_refreshed else "unchanged")
    table.add_row("Live sources", str(result.live_sources))
    table.add_row("OpenList scan", result.openlist_task_id or "skipped")
    if result.records:
        table.add_row(
            "Users",
            f"{result.records['users']} in {result.records['batches']} batches, "
            f"{result.records['errors']} errors",
        )
    else:
        table.add_row("Users", "aborted")
    if result.anime:
        table.add_row(
            "Anime subscriptions",
            f"{result.anime['checked']} checked, {result.anime['skipped']} skipped, "
            f"{result.anime['errors']} errors",
        )
    else:
        table.add_row("Anime subscriptions", "disabled or aborted")

    console.print(table)
    console.print(
        f"Finished in {(result.finished_at - result.started_at) / 1000:.1f}s"
    )
    for error in result.errors:
        console.print(f"[red]✗ {error}[/red]")


async def run_once(scheduler: CronScheduler) -> PassResult:
    result = await scheduler.run()
    await scheduler.drain()
    return result


async def run_forever(scheduler: CronScheduler, interval_minutes: int) -> None:
    while True:
        console.print(f"[bold]Pass started at {datetime.now():%Y-%m-%d %H:%M:%S}[/bold]")
        print_summary(await scheduler.run())
        await asyncio.sleep(interval_minutes * 60)


def main():
    """Main entry point for the scheduler CLI."""
    args = parse_arguments()
    logger = setup_logging(
        logger_name="scheduler",
        log_file="logs/scheduler.log",
        verbose=args.verbose,
    )

    if args.interval is not None and args.interval <= 0:
        print("✗ Error: --interval must be a positive number of minutes", file=sys.stderr)
        sys.exit(1)

    settings = Settings.from_env()
    try:
        scheduler = build_scheduler(settings)
    except ValueError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not check_database_connection():
        print("✗ Error: Cannot connect to the database, see logs/database.log", file=sys.stderr)
        sys.exit(1)

    try:
        if args.interval:
            logger.info(f"Running a pass every {args.interval} minutes")
            asyncio.run(run_forever(scheduler, args.interval))
        else:
            print_summary(asyncio.run(run_once(scheduler)))
    except KeyboardInterrupt:
        logger.info("Scheduler interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
