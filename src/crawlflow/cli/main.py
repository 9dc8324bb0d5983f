"""
CrawlFlow CLI - Main entry point
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from crawlflow.core.config.settings import settings
from crawlflow.core.config.validation import load_job_file
from crawlflow.core.exceptions.custom_exceptions import CrawlFlowError, JobError
from crawlflow.core.logging.logger import get_logger, setup_logging
from crawlflow.hooks import list_hooks
from crawlflow.jobs.executor import JobResult
from crawlflow.jobs.manager import JobManager
from crawlflow.storage.base import StoreFactory
from crawlflow.tasks.base import TaskHandlerFactory

# Initialize CLI app
app = typer.Typer(
    name="crawlflow",
    help="Job and task orchestration for data crawling workflows",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# Initialize console and logger
console = Console()
logger = get_logger(__name__)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """
    CrawlFlow CLI - Run declarative crawling jobs

    Run 'crawlflow --help' for available commands.
    """
    if verbose:
        setup_logging("DEBUG")
        logger.info("Verbose logging enabled")


async def _run_job(
    job: Dict[str, Any], workers: Optional[int], progress: Progress
) -> JobResult:
    total = len(job.get("tasks") or [])
    progress_task = progress.add_task(f"Running job {job.get('id')}...", total=total)
    manager = JobManager(workers_limit=workers)
    return await manager.create(
        job, progress=lambda outcome: progress.advance(progress_task)
    )


def _print_summary(result: JobResult) -> None:
    table = Table(title=f"Job {result.job_id}")
    table.add_column("Task", style="cyan")
    table.add_column("Status")
    table.add_column("Duration", style="yellow")
    table.add_column("Error", style="red")

    for outcome in result.tasks:
        status = "[green]success[/]" if outcome.success else "[red]failed[/]"
        table.add_row(
            str(outcome.id),
            status,
            f"{outcome.duration_seconds:.2f}s",
            outcome.error.message if outcome.error else "",
        )

    console.print(table)
    console.print(
        f"{len(result.tasks) - len(result.failed_tasks)}/{len(result.tasks)} "
        f"tasks succeeded in {result.duration_seconds:.2f}s",
        style="green" if result.success else "yellow",
    )


@app.command()
def run(
    job_file: str = typer.Argument(..., help="Job definition file (YAML or JSON)"),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", min=1, help="Maximum number of concurrent tasks"
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the job result as JSON to this file"
    ),
) -> None:
    """Run a job definition"""
    try:
        job = load_job_file(job_file)
    except CrawlFlowError as e:
        console.print(f"Error loading job file: {e}", style="red")
        raise typer.Exit(1)

    logger.info(f"Running job from: {job_file}")
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            result = asyncio.run(_run_job(job, workers, progress))
    except JobError as e:
        console.print(
            f"Job failed in {e.details.get('phase')} hooks "
            f"({e.details.get('hook')}): {e.message}",
            style="red",
        )
        raise typer.Exit(1)
    except CrawlFlowError as e:
        console.print(f"Job rejected: {e}", style="red")
        raise typer.Exit(1)

    _print_summary(result)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(result.to_dict(), f, indent=2, default=str)
        console.print(f"Job result written to {output_path}", style="green")

    if not result.success:
        raise typer.Exit(1)


@app.command()
def hooks() -> None:
    """List registered hooks"""
    table = Table(title="Registered Hooks")
    table.add_column("Hook", style="cyan")

    for name in list_hooks():
        table.add_row(name)

    console.print(table)


@app.command()
def version() -> None:
    """Show CrawlFlow version information"""
    table = Table(title="CrawlFlow Version Information")
    table.add_column("Component", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("CrawlFlow", settings.APP_VERSION)
    table.add_row("Environment", settings.ENVIRONMENT)
    table.add_row("Workers limit", str(settings.WORKERS_LIMIT))
    table.add_row("Store types", ", ".join(StoreFactory.list_stores()))
    table.add_row("Task types", ", ".join(TaskHandlerFactory.list_handlers()))

    console.print(table)


if __name__ == "__main__":
    app()
