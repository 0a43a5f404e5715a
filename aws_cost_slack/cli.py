"""
AWS Cost Slack CLI - local entry point.
"""

import sys
import logging
from typing import List

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

from .config import load_config
from .errors import CostReportError
from .handler import run
from .monitor.aws_monitor import CostEntry, TOTAL_LABEL, clean_label, fetch_costs
from .report.formatter import render_block

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

console = Console()


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
def cli(debug):
    """Post this month's AWS costs by service to a chat webhook."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command(name="run")
@click.option("--config", "config_path", default=None, help="Optional YAML settings file")
@click.option("--dry-run", is_flag=True, default=False, help="Print the report instead of posting it")
def run_command(config_path, dry_run):
    """Fetch month-to-date costs and send the report."""
    try:
        console.print(Panel.fit("[bold cyan]AWS Cost and Usage[/bold cyan]"))

        if dry_run:
            entries = fetch_costs()
            display_costs(entries)
            console.print(render_block(entries), markup=False, highlight=False)
            console.print("\n[yellow]Dry-run mode: report not sent[/yellow]")
            return

        config = load_config(path=config_path)
        entries = run(config)
        display_costs(entries)
        console.print(f"[green]Report sent to {config.channel}[/green]")

    except CostReportError as e:
        console.print(f"\n[red]Fatal error: {e}[/red]")
        logger.exception("Fatal error in run command")
        sys.exit(1)


@cli.command()
@click.option("--config", "config_path", default=None, help="Optional YAML settings file")
def print_config(config_path):
    """Print effective configuration (without secrets)."""
    try:
        config = load_config(path=config_path)
    except CostReportError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    console.print(Panel.fit("[bold]Effective Configuration[/bold]"))
    console.print_json(data=config.masked())


def display_costs(entries: List[CostEntry]):
    """Display cost table."""
    table = Table(title="Month-to-date Costs", show_header=True)
    table.add_column("Service", style="cyan")
    table.add_column("Amount", justify="right", style="green")
    table.add_column("Unit")

    for entry in entries:
        label = escape(clean_label(entry.label))
        amount = f"{entry.amount:,.3f}"
        if entry.label == TOTAL_LABEL:
            label = f"[bold]{label}[/bold]"
            amount = f"[bold]{amount}[/bold]"
        table.add_row(label, amount, entry.unit.strip())

    console.print(table)


if __name__ == "__main__":
    cli()
