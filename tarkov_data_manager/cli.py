"""
Tarkov Data Manager CLI

Administrative commands for the job engine:
- List job schedules and run state
- Run a job once
- Change a job's schedule
- Show a job's cached output
"""

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from tarkov_data_manager.exceptions import JobNotFoundError
from tarkov_data_manager.jobs.registry import JOB_CLASSES, build_registry
from tarkov_data_manager.scheduler.job_scheduler import JobScheduler
from tarkov_data_manager.utils.logging_config import init_logging

logger = logging.getLogger(__name__)
console = Console()


def _format_time(value) -> str:
    return value.strftime('%Y-%m-%d %H:%M:%S %Z') if value else 'N/A'


@click.group()
def cli():
    """Tarkov Data Manager CLI."""
    init_logging()


@cli.command('schedules')
def schedules():
    """
    List every job with its schedule, last run and next run.

    Example:
        tdm schedules
    """
    scheduler = JobScheduler(build_registry())
    scheduler.install_schedules()

    table = Table(title="Job Schedules", show_header=True)
    table.add_column("Job", style="cyan")
    table.add_column("Schedule", style="yellow")
    table.add_column("Last Run", style="green")
    table.add_column("Next Run", style="green")
    table.add_column("Running", justify="center")

    for entry in scheduler.list_schedules():
        table.add_row(
            entry['name'],
            entry['schedule'] or '[dim]unscheduled[/dim]',
            _format_time(entry['lastRun']),
            _format_time(entry['nextRun']),
            '[green]✓[/green]' if entry['running'] else '',
        )
    console.print(table)


@cli.command('run')
@click.argument('job_name', type=click.Choice(sorted(JOB_CLASSES)))
def run(job_name):
    """
    Run a job once and store its output.

    Example:
        tdm run update-presets
    """
    console.print(Panel.fit(f"[bold blue]Running {job_name}[/bold blue]", border_style="blue"))
    manager = build_registry()
    try:
        envelope = asyncio.run(manager.run_job(job_name))
    except Exception as e:
        console.print(f"\n[bold red]✗ {job_name} failed: {e}[/bold red]\n")
        logger.error(f"{job_name} failed: {e}", exc_info=True)
        raise click.Abort()

    path = manager.output_cache.path_for(manager.get_job(job_name))
    console.print(f"[green]✓[/green] {job_name} complete; output written to {path}")
    console.print(f"  Updated: {envelope.get('updated')}")


@cli.command('set-schedule')
@click.argument('job_name')
@click.argument('cron_expression', required=False)
def set_schedule(job_name, cron_expression):
    """
    Set a job's cron schedule.

    Use "default" to restore the built-in schedule; omit the expression to
    unschedule the job. A running scheduler picks the change up on restart.

    Example:
        tdm set-schedule update-item-cache "*/10 * * * *"
    """
    scheduler = JobScheduler(build_registry())
    try:
        scheduler.set_schedule(job_name, cron_expression)
    except JobNotFoundError as e:
        console.print(f"[bold red]ERROR: {e}[/bold red]")
        raise click.Abort()
    except ValueError as e:
        console.print(f"[bold red]ERROR: invalid cron expression: {e}[/bold red]")
        raise click.Abort()

    cron = scheduler.schedules.get(job_name)
    if cron:
        console.print(f"[green]✓[/green] {job_name} scheduled to run {cron}")
    else:
        console.print(f"[yellow]{job_name} unscheduled[/yellow]")


@cli.command('output')
@click.argument('job_name')
@click.option('--raw', is_flag=True, help='Show the full stored envelope')
def output(job_name, raw):
    """
    Show a job's output, running the job first when none is cached.

    Example:
        tdm output update-traders
    """
    manager = build_registry()
    try:
        result = asyncio.run(manager.job_output(job_name, raw_output=raw))
    except JobNotFoundError as e:
        console.print(f"[bold red]ERROR: {e}[/bold red]")
        raise click.Abort()
    except Exception as e:
        logger.error(f"Could not get {job_name} output: {e}", exc_info=True)
        console.print(f"[bold red]ERROR: {e}[/bold red]")
        raise click.Abort()
    console.print(Syntax(json.dumps(result, indent=2, default=str), 'json'))


if __name__ == '__main__':
    cli()
