#!/usr/bin/env python3
"""
Tarkov Data Manager Scheduler Runner

Runs every job on its cron schedule until stopped.

Usage:
    # Run in foreground
    tdm-scheduler

    # Show the schedules and exit
    tdm-scheduler --list-jobs

    # Skip the startup jobs
    tdm-scheduler --no-startup
"""

import argparse
import asyncio
import logging
import signal

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tarkov_data_manager.config.settings import Config
from tarkov_data_manager.jobs.registry import build_registry
from tarkov_data_manager.scheduler.job_scheduler import JobScheduler
from tarkov_data_manager.utils.logging_config import init_logging

logger = logging.getLogger(__name__)
console = Console()


def display_jobs(scheduler: JobScheduler):
    """Display all scheduled jobs in a table."""
    table = Table(title="Scheduled Jobs", show_header=True)
    table.add_column("Job", style="cyan")
    table.add_column("Schedule", style="yellow")
    table.add_column("Next Run", style="green")

    for entry in scheduler.list_schedules():
        next_run = entry['nextRun'].strftime('%Y-%m-%d %H:%M:%S') if entry['nextRun'] else 'N/A'
        table.add_row(entry['name'], entry['schedule'] or '-', next_run)

    console.print(table)


async def run(args) -> None:
    scheduler = JobScheduler(build_registry(), timezone=args.timezone)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    scheduler.start()
    try:
        if args.no_startup:
            scheduler.install_schedules()
        else:
            await scheduler.start_jobs()
        display_jobs(scheduler)
        console.print("Press Ctrl+C to stop\n")
        await stop.wait()
    finally:
        console.print("\n[yellow]Received shutdown signal. Stopping scheduler...[/yellow]")
        scheduler.shutdown(wait=True)
        console.print("[green]Scheduler stopped gracefully.[/green]")


def main():
    parser = argparse.ArgumentParser(
        description='Tarkov Data Manager Scheduler',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tdm-scheduler                  # Run with the configured schedules
  tdm-scheduler --list-jobs      # List all scheduled jobs
  tdm-scheduler --no-startup     # Do not run startup jobs
        """
    )
    parser.add_argument(
        '--list-jobs',
        action='store_true',
        help='List all scheduled jobs and exit'
    )
    parser.add_argument(
        '--no-startup',
        action='store_true',
        help='Install schedules without running the startup jobs'
    )
    parser.add_argument(
        '--timezone',
        default=Config.SCHED_TZ,
        help=f'Timezone for scheduling (default: {Config.SCHED_TZ})'
    )
    args = parser.parse_args()

    init_logging()

    console.print(Panel.fit(
        "[bold blue]Tarkov Data Manager Scheduler[/bold blue]\n"
        f"Timezone: {args.timezone}\n"
        f"Environment: {'dev' if Config.is_dev() else 'production'}",
        border_style="blue"
    ))
    if Config.skip_jobs():
        console.print("[yellow]WARNING: SKIP_JOBS is set - scheduled runs will be skipped[/yellow]")

    if args.list_jobs:
        scheduler = JobScheduler(build_registry(), timezone=args.timezone)
        scheduler.install_schedules()
        display_jobs(scheduler)
        return

    asyncio.run(run(args))


if __name__ == '__main__':
    main()
