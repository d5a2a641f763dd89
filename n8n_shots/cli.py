"""CLI interface for the n8n-shots screenshot generator."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import psutil
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.logging import RichHandler
from rich.markup import escape

from n8n_shots import __version__
from n8n_shots.capture import create_capturer
from n8n_shots.config import Settings
from n8n_shots.errors import ConfigError, ShotError
from n8n_shots.github import GitHubContentStore
from n8n_shots.n8n import N8nClient
from n8n_shots.pipeline import ScreenshotPipeline
from n8n_shots.report import FAILED, SKIPPED, ItemOutcome, RunReport
from n8n_shots.scanner import WorkflowScanner

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler.

    Args:
        verbose: Enable debug level logging
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def load_settings(**overrides) -> Settings:
    """Read settings from the environment and apply CLI overrides."""
    return Settings.from_env().override(**overrides)


def print_progress(report: RunReport, outcome: ItemOutcome) -> None:
    """Print one progress line after a workflow finishes."""
    memory_mb = psutil.Process().memory_info().rss / (1024 * 1024)
    marker = {
        FAILED: "[red]✗[/red]",
        SKIPPED: "[yellow]⏭[/yellow]",
    }.get(outcome.status, "[green]✓[/green]")

    console.print(
        f"{marker} Progress: {report.processed}/{report.total} "
        f"([green]{report.succeeded} ✓[/green], "
        f"[red]{report.failed} ✗[/red], "
        f"[yellow]{report.skipped} ⏭[/yellow])  "
        f"[dim]Memory: {memory_mb:.1f} MB[/dim]"
    )


def print_summary(report: RunReport, results_file: Optional[Path]) -> None:
    """Print the final summary panel and every error."""
    summary_lines = [
        f"Total workflows: {report.total}",
        f"[green]✓ Successfully processed:[/green] {report.succeeded}",
        f"[red]✗ Failed:[/red] {report.failed}",
        f"[yellow]⏭ Skipped (already exist):[/yellow] {report.skipped}",
    ]
    if results_file:
        summary_lines.append(f"[dim]Report:[/dim] {results_file}")

    console.print("\n")
    console.print(Panel(
        "\n".join(summary_lines),
        title="[bold]Summary[/bold]",
        border_style="green" if report.failed == 0 else "yellow",
    ))

    if report.errors:
        console.print("\n[bold red]Errors:[/bold red]")
        for error in report.errors:
            console.print(f"  [red]✗[/red] {escape(error.workflow)}: {escape(error.error)}")


def discover_workflows(settings: Settings):
    """Scan the workflows folder, leaving out this tool's own output."""
    scanner = WorkflowScanner(
        settings.workflows_dir,
        exclude=[settings.screenshots_dir, settings.results_file, settings.debug_dir],
    )
    scanner.scan()
    return scanner


async def run_pipeline(settings: Settings, workflows: list) -> RunReport:
    """Start the browser, build the clients and run the pipeline."""
    n8n = N8nClient(settings.n8n_url, settings.n8n_api_key, debug=settings.debug)
    store = GitHubContentStore(
        settings.github_repo,
        settings.github_token,
        branch=settings.github_branch,
        existence_on_error=settings.existence_on_error,
    )

    try:
        async with create_capturer(
            n8n_url=settings.n8n_url,
            width=settings.viewport_width,
            height=settings.viewport_height,
            settle_time=settings.delay_after_page_load,
            headless=settings.headless,
            email=settings.n8n_email,
            password=settings.n8n_password,
            basic_auth_user=settings.n8n_basic_auth_user,
            basic_auth_password=settings.n8n_basic_auth_password,
            debug=settings.debug,
            debug_dir=settings.debug_dir,
        ) as capturer:
            pipeline = ScreenshotPipeline.from_settings(
                settings,
                n8n,
                store,
                capturer,
                progress_callback=print_progress,
            )
            return await pipeline.run(workflows)
    finally:
        n8n.close()
        store.close()


@click.group()
@click.version_option(version=__version__, prog_name="n8n-shots")
def cli():
    """n8n-shots - Screenshot n8n workflows and publish them to GitHub.

    Workflows are imported into a running n8n instance, captured with
    Playwright, uploaded through the GitHub contents API and deleted again.
    """
    pass


@cli.command()
@click.option("--workflows-dir", type=click.Path(exists=True, file_okay=False, path_type=Path),
              help="Folder with workflow JSON files (default: WORKFLOWS_DIR or .)")
@click.option("--screenshots-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Local backup folder for PNG files (default: ./screenshots)")
@click.option("--results-file", type=click.Path(dir_okay=False, path_type=Path),
              help="Where to write the JSON report (default: screenshot-results.json)")
@click.option("--skip-existing/--no-skip-existing", default=None,
              help="Skip workflows whose screenshot is already in GitHub")
@click.option("--limit", type=click.IntRange(min=1), help="Only process the first N workflows")
@click.option("--headful", is_flag=True, help="Show the browser window")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def run(
    workflows_dir: Optional[Path],
    screenshots_dir: Optional[Path],
    results_file: Optional[Path],
    skip_existing: Optional[bool],
    limit: Optional[int],
    headful: bool,
    verbose: bool,
):
    """Generate, upload and report screenshots for all workflows."""
    try:
        settings = load_settings(
            workflows_dir=workflows_dir,
            screenshots_dir=screenshots_dir,
            results_file=results_file,
            skip_existing=skip_existing,
            headless=False if headful else None,
        )
        setup_logging(verbose or settings.debug)
        settings.validate_required()
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print(Panel.fit(
        f"[bold cyan]n8n Workflow Screenshot Generator[/bold cyan]\n"
        f"n8n URL: {settings.n8n_url}\n"
        f"GitHub Repo: {settings.github_repo} ({settings.github_branch})\n"
        f"Workflows Dir: {settings.workflows_dir}\n"
        f"Screenshots Dir: {settings.screenshots_dir}\n"
        f"Viewport: {settings.viewport_width}x{settings.viewport_height}",
        border_style="cyan"
    ))

    try:
        with console.status("[bold green]Finding workflow files..."):
            scanner = discover_workflows(settings)
        workflows = scanner.workflows[:limit] if limit else scanner.workflows
    except (FileNotFoundError, NotADirectoryError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(f"Found {len(workflows)} workflows\n")

    if not workflows:
        console.print("[yellow]No workflow files found![/yellow]")
        RunReport().write(settings.results_file)
        console.print(f"[dim]Results saved to {settings.results_file}[/dim]")
        return

    try:
        report = asyncio.run(run_pipeline(settings, workflows))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        if settings.results_file.exists():
            console.print(f"[dim]Partial results saved to {settings.results_file}[/dim]")
        sys.exit(130)
    except ShotError as e:
        console.print(f"[red]Fatal error:[/red] {escape(str(e))}")
        if verbose:
            console.print_exception()
        sys.exit(1)

    print_summary(report, settings.results_file)


@cli.command()
@click.argument("workflows_dir", type=click.Path(exists=True, file_okay=False, path_type=Path),
                required=False)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def scan(workflows_dir: Optional[Path], verbose: bool):
    """List discovered workflows with their category and output name.

    WORKFLOWS_DIR: Folder with workflow JSON files (default: WORKFLOWS_DIR or .)
    """
    setup_logging(verbose)

    try:
        settings = load_settings(workflows_dir=workflows_dir)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    try:
        with console.status("[bold green]Scanning files..."):
            scanner = discover_workflows(settings)
    except (FileNotFoundError, NotADirectoryError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if not scanner.workflows:
        console.print("[yellow]No workflow files found.[/yellow]")
        return

    table = Table(title="Scan Results", show_header=True, header_style="bold magenta")
    table.add_column("Workflow", style="cyan", no_wrap=True)
    table.add_column("Category")
    table.add_column("Output", style="dim")
    table.add_column("Status", justify="center")

    for workflow in scanner.workflows:
        status = "[green]Valid[/green]" if workflow.valid else "[red]Invalid[/red]"
        table.add_row(workflow.label[:50], workflow.category, workflow.filename, status)

    console.print(table)

    summary = scanner.get_summary()
    console.print("\n[bold]Summary:[/bold]")
    console.print(f"  Workflows: {summary['total_files']}")
    console.print(f"  [green]Valid: {summary['valid_workflows']}[/green]")
    console.print(f"  [red]Unreadable: {summary['invalid_workflows']}[/red]")
    console.print(f"  Other JSON files ignored: {summary['ignored_files']}")

    invalid = scanner.get_invalid_workflows()
    if invalid:
        console.print("\n[bold red]Errors:[/bold red]")
        for workflow in invalid:
            console.print(f"  [red]✗[/red] {escape(workflow.label)}: {escape(workflow.error or '')}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
