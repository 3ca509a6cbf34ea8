"""CLI entry point for pkgtrust."""

import asyncio
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import httpx
import psycopg2
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from pkgtrust.adapters.base import ResolutionError, is_internal
from pkgtrust.adapters.npm import NpmAdapter
from pkgtrust.adapters.resolver import ReferenceResolver
from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.analyzers.pipeline import ScoringPipeline, read_references
from pkgtrust.analyzers.scorer import AggregationError, NetScorer, QuotaExhaustedError
from pkgtrust.config import Settings, configure_logging
from pkgtrust.metrics.registry import expected_call_cost
from pkgtrust.models.schemas import MetricKind
from pkgtrust.storage import JsonResultSink, PostgresResultSink, ResultSink

app = typer.Typer(help="Trust scoring for npm and GitHub packages.")

# Progress and tables go to stderr; stdout carries only NDJSON summary lines
console = Console(stderr=True)

EXIT_QUOTA_EXHAUSTED = 2


def _load_settings() -> Settings:
    settings = Settings.from_env(dotenv=False)
    configure_logging(settings)
    return settings


def _open_sinks(settings: Settings, data_dir: Path | None, use_db: bool) -> list[ResultSink]:
    sinks: list[ResultSink] = []
    if data_dir is not None:
        sinks.append(JsonResultSink(data_dir))
    if use_db and settings.database_enabled:
        try:
            sinks.append(PostgresResultSink(**settings.db_params))
        except psycopg2.Error as e:
            console.print(f"[yellow]Database unavailable, results will not be stored: {e}[/yellow]")
    return sinks


@app.command()
def score(
    file: Path = typer.Argument(..., help="File with one package URL per line"),
    data_dir: Path | None = typer.Option(None, "--data-dir", "-d", help="Also save JSON results here"),
    db: bool = typer.Option(True, "--db/--no-db", help="Store results in PostgreSQL when configured"),
) -> None:
    """Score every package listed in FILE."""
    if not file.is_file():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    settings = _load_settings()
    references = read_references(file)
    summary = asyncio.run(_score_batch(settings, references, data_dir, db))

    console.print(f"Processed {summary.processed} package(s), skipped {summary.skipped}")
    if summary.quota_exhausted:
        console.print("[red]GitHub API quota exhausted, batch stopped early[/red]")
        raise typer.Exit(EXIT_QUOTA_EXHAUSTED)


async def _score_batch(
    settings: Settings,
    references: list[str],
    data_dir: Path | None,
    use_db: bool,
):
    """Async implementation of score."""
    sinks = _open_sinks(settings, data_dir, use_db)

    async with httpx.AsyncClient(timeout=30.0) as http, GitHubClient(
        token=settings.github_token, client=http
    ) as github:
        pipeline = ScoringPipeline(
            resolver=ReferenceResolver(NpmAdapter(client=http)),
            scorer=NetScorer(github, quota_floor=settings.quota_floor),
            sinks=sinks,
            internal_domain=settings.internal_domain,
            default_version=settings.default_package_version,
            emit=typer.echo,
        )
        try:
            return await pipeline.run(references)
        finally:
            pipeline.close()


@app.command()
def check(
    url: str = typer.Argument(..., help="GitHub or npm package URL"),
) -> None:
    """Score one package and show the breakdown."""
    settings = _load_settings()
    asyncio.run(_check(settings, url))


async def _check(settings: Settings, url: str) -> None:
    """Async implementation of check."""
    async with GitHubClient(token=settings.github_token) as github:
        scorer = NetScorer(github, quota_floor=settings.quota_floor)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Resolving package...", total=None)
            try:
                repository = await ReferenceResolver().resolve(url)
                progress.update(task, description=f"Scoring {repository.slug}...")
                result = await scorer.score(repository)
            except ResolutionError as e:
                console.print(f"[red]Could not resolve {url}: {e.reason}[/red]")
                raise typer.Exit(1)
            except QuotaExhaustedError as e:
                console.print(f"[red]{e}[/red]")
                raise typer.Exit(EXIT_QUOTA_EXHAUSTED)
            except (AggregationError, ValidationError) as e:
                console.print(f"[red]Could not score {url}: {escape(str(e))}[/red]")
                raise typer.Exit(1)
            except httpx.HTTPError as e:
                console.print(f"[red]GitHub API error: {e}[/red]")
                raise typer.Exit(1)

    console.print()
    console.print(f"[bold cyan]{repository.slug}[/bold cyan]")
    if is_internal(repository.origin_url, settings.internal_domain):
        console.print("[dim]internal package[/dim]")
    console.print(f"Net score: {_score_bar(result.net_score)} {result.net_score:.3f}")
    console.print()

    table = Table(title="Sub-metrics")
    table.add_column("Metric", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("", width=22)
    table.add_column("Latency (s)", justify="right", style="dim")

    for kind in MetricKind:
        metric = result.metric(kind)
        table.add_row(kind.value, f"{metric.score:.3f}", _score_bar(metric.score), f"{metric.latency_seconds:.3f}")

    console.print(table)
    typer.echo(result.summary_line())


def _score_bar(score: float, width: int = 20) -> str:
    """Create a visual score bar."""
    filled = int(score * width)
    empty = width - filled
    color = "green" if score >= 0.8 else "yellow" if score >= 0.6 else "red"
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * empty}[/dim]"


@app.command()
def quota() -> None:
    """Show the remaining GitHub API budget."""
    settings = _load_settings()
    asyncio.run(_quota(settings))


async def _quota(settings: Settings) -> None:
    """Async implementation of quota."""
    async with GitHubClient(token=settings.github_token) as github:
        try:
            status = await github.get_quota_status()
        except httpx.HTTPError as e:
            console.print(f"[red]Could not fetch rate limit: {e}[/red]")
            raise typer.Exit(1)

    floor = settings.quota_floor if settings.quota_floor is not None else expected_call_cost()
    color = "green" if status.remaining >= floor else "red"
    console.print(f"Remaining: [{color}]{status.remaining}[/{color}] / {status.limit}")
    console.print(f"Needed per package: {floor}")
    if status.reset_at:
        console.print(f"Resets at: {status.reset_at.isoformat()}")


@app.command()
def version() -> None:
    """Show version information."""
    from pkgtrust import __version__

    console.print(f"pkgtrust v{__version__}")


if __name__ == "__main__":
    app()
