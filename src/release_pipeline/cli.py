"""Command line interface for the release pipeline."""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Awaitable, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from .application import AdminDecisionGate, ReleaseCatalogService, ReleaseChanges, SubmissionGate
from .domain import Page, Release, ReleaseStatus, Requester, UserRole, is_terminal, partition
from .domain.repositories import ORDERABLE_COLUMNS
from .exceptions import ReleasePipelineError
from .infrastructure import SQLiteReleaseRepository
from .models.config import Config, load_config, save_config
from .processing import InMemoryProcessingLogSink, ProcessingTaskRegistry, ReleaseOrchestrator

console = Console()

STATUS_STYLES = {
    ReleaseStatus.DRAFT: "white",
    ReleaseStatus.PROCESSING: "yellow",
    ReleaseStatus.PENDING_REVIEW: "cyan",
    ReleaseStatus.PUBLISHED: "green",
    ReleaseStatus.REJECTED: "red",
}


class AppContext:
    """Per-invocation state shared by all commands."""

    def __init__(self, config: Config, requester: Requester, verbose: bool):
        self.config = config
        self.requester = requester
        self.verbose = verbose
        self._repository = None

    @property
    def repository(self) -> SQLiteReleaseRepository:
        if self._repository is None:
            self._repository = SQLiteReleaseRepository(self.config.storage.db_path)
        return self._repository

    def catalog(self) -> ReleaseCatalogService:
        return ReleaseCatalogService(self.repository)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
            force=True,
        )
    else:
        logging.getLogger("release_pipeline").addHandler(logging.NullHandler())


def _run(coro: Awaitable[Any], verbose: bool = False) -> Any:
    """Run a coroutine, turning infrastructure errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except ReleasePipelineError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


def _unwrap(result) -> Any:
    if result.is_failure():
        console.print(f"[red]Error: {result.error()}[/red]")
        sys.exit(1)
    return result.value()


def _status_text(status: ReleaseStatus) -> str:
    return f"[{STATUS_STYLES[status]}]{status.value}[/{STATUS_STYLES[status]}]"


def _releases_table(title: str, page: Page[Release]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Genre")
    table.add_column("Artist")
    table.add_column("Tracks", justify="right")
    table.add_column("Status")
    for release in page.items:
        table.add_row(
            release.id,
            release.title + (" ★" if release.is_featured else ""),
            release.genre,
            release.artist_id,
            str(release.track_count),
            _status_text(release.status),
        )
    return table


def _print_page_footer(page: Page) -> None:
    console.print(f"Page {page.page} of {max(page.total_pages, 1)} ({page.total} total)")


@click.group()
@click.version_option(package_name="release-pipeline")
@click.option(
    '--db',
    type=click.Path(dir_okay=False, path_type=Path),
    help='SQLite database file (overrides the configuration)'
)
@click.option(
    '--config',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Configuration file path'
)
@click.option(
    '--user',
    default='artist-1',
    envvar='RELEASE_PIPELINE_USER',
    show_default=True,
    help='Id of the acting user'
)
@click.option(
    '--role',
    type=click.Choice([role.value for role in UserRole], case_sensitive=False),
    default=UserRole.ARTIST.value,
    envvar='RELEASE_PIPELINE_ROLE',
    show_default=True,
    help='Role of the acting user'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Verbose output'
)
@click.pass_context
def cli(ctx, db: Optional[Path], config: Optional[Path], user: str, role: str, verbose: bool):
    """Manage music releases through processing, review and publication."""
    _configure_logging(verbose)

    try:
        cfg = load_config(config) if config else Config.default()
    except ReleasePipelineError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if db is not None:
        cfg.storage.db_path = db
    ctx.obj = AppContext(cfg, Requester(user_id=user, role=UserRole(role.upper())), verbose)


@cli.command()
@click.argument('title')
@click.argument('genre')
@click.option('--cover-art-url', help='URL of the cover artwork')
@click.pass_obj
def create(app: AppContext, title: str, genre: str, cover_art_url: Optional[str]):
    """Create a DRAFT release owned by the current user."""
    release = _unwrap(_run(app.catalog().create_release(app.requester, title, genre, cover_art_url), app.verbose))
    console.print(f"[green]✓ Created release[/green] {release.id} ({release.title})")


@cli.command()
@click.argument('release_id')
@click.option('--title', help='New title')
@click.option('--genre', help='New genre')
@click.option('--cover-art-url', help='New cover artwork URL')
@click.option('--featured/--not-featured', default=None, help='Feature the release in the catalogue')
@click.pass_obj
def update(app: AppContext, release_id: str, title: Optional[str], genre: Optional[str],
           cover_art_url: Optional[str], featured: Optional[bool]):
    """Edit the metadata of RELEASE_ID."""
    changes = ReleaseChanges(title=title, genre=genre, cover_art_url=cover_art_url, is_featured=featured)
    release = _unwrap(_run(app.catalog().update_release(release_id, app.requester, changes), app.verbose))
    console.print(f"[green]✓ Updated release[/green] {release.id}")


@cli.command('add-track')
@click.argument('release_id')
@click.argument('title')
@click.option('--number', 'track_number', type=int, required=True, help='Track number (1-based)')
@click.option('--isrc', help='ISRC code')
@click.option('--audio-url', help='URL of the audio file')
@click.option('--duration', type=float, help='Duration in seconds')
@click.pass_obj
def add_track(app: AppContext, release_id: str, title: str, track_number: int,
              isrc: Optional[str], audio_url: Optional[str], duration: Optional[float]):
    """Add a track to RELEASE_ID."""
    track = _unwrap(_run(app.catalog().add_track(
        release_id, app.requester, title, track_number,
        isrc=isrc, audio_url=audio_url, duration=duration,
    ), app.verbose))
    console.print(f"[green]✓ Added track[/green] {track.track_number}. {track.title} ({track.id})")


@cli.command('remove-track')
@click.argument('track_id')
@click.pass_obj
def remove_track(app: AppContext, track_id: str):
    """Remove a track from its release."""
    _unwrap(_run(app.catalog().remove_track(track_id, app.requester), app.verbose))
    console.print(f"[green]✓ Removed track[/green] {track_id}")


async def _submit_and_wait(app: AppContext, release_ids, seed, time_scale, timeout):
    processing = app.config.processing
    if seed is not None:
        processing = replace(processing, seed=seed)
    if time_scale is not None:
        processing = replace(processing, time_scale=time_scale)

    sink = InMemoryProcessingLogSink()
    registry = ProcessingTaskRegistry()
    orchestrator = ReleaseOrchestrator.from_config(app.repository, processing, log_sink=sink)
    gate = SubmissionGate(app.repository, orchestrator, registry)

    results = [await gate.submit(release_id, app.requester) for release_id in release_ids]
    submitted, errors = partition(results)

    if submitted:
        with console.status(f"Processing {len(submitted)} release(s)..."):
            await registry.shutdown(timeout)

    finals = [await app.repository.get(release.id) for release in submitted]
    return [(release, sink.get(release.id)) for release in finals if release], errors


@cli.command()
@click.argument('release_ids', nargs=-1, required=True)
@click.option('--seed', type=int, help='Seed for the simulated stages')
@click.option('--time-scale', type=click.FloatRange(min=0), help='Multiplier on simulated latency (0 = no waiting)')
@click.option('--timeout', type=click.FloatRange(min=0, min_open=True), help='Cancel runs still going after this many seconds')
@click.pass_obj
def submit(app: AppContext, release_ids, seed: Optional[int], time_scale: Optional[float], timeout: Optional[float]):
    """Submit releases for processing and wait for the outcome."""
    outcomes, errors = _run(_submit_and_wait(app, release_ids, seed, time_scale, timeout), app.verbose)

    for error in errors:
        console.print(f"[red]Error: {error}[/red]")

    for release, verdicts in outcomes:
        console.print(f"\n[bold]{release.title}[/bold] ({release.id}): {_status_text(release.status)}")
        if release.processing_error_reason:
            console.print(f"  Reason: {release.processing_error_reason}")
        if verdicts:
            table = Table(title="Track verdicts")
            table.add_column("Track", style="dim")
            table.add_column("Status")
            table.add_column("Message")
            for verdict in verdicts:
                style = "green" if verdict.succeeded else "red"
                table.add_row(verdict.track_id, f"[{style}]{verdict.status.value}[/{style}]", verdict.message)
            console.print(table)

    if errors:
        sys.exit(1)


@cli.command()
@click.argument('release_id')
@click.argument('outcome', type=click.Choice(['PUBLISHED', 'REJECTED'], case_sensitive=False))
@click.option('--reason', help='Why the release is rejected (required when rejecting)')
@click.pass_obj
def review(app: AppContext, release_id: str, outcome: str, reason: Optional[str]):
    """Publish or reject a release awaiting review (admins only)."""
    gate = AdminDecisionGate(app.repository)
    release = _unwrap(_run(gate.decide(release_id, outcome.upper(), app.requester, reason), app.verbose))
    console.print(f"[green]✓ Release {release.id} is now[/green] {_status_text(release.status)}")


@cli.command()
@click.argument('release_id')
@click.pass_obj
def show(app: AppContext, release_id: str):
    """Show a release and its tracks."""
    async def load():
        catalog = app.catalog()
        result = await catalog.get_release(release_id)
        tracks = await catalog.get_tracks(release_id) if result.is_success() else []
        return result, tracks

    result, tracks = _run(load(), app.verbose)
    release = _unwrap(result)

    lines = [
        f"ID: {release.id}",
        f"Artist: {release.artist_id}",
        f"Genre: {release.genre}",
        f"Status: {_status_text(release.status)}" + (" (final)" if is_terminal(release.status) else ""),
        f"Featured: {'Yes' if release.is_featured else 'No'}",
        f"Updated: {release.updated_at:%Y-%m-%d %H:%M:%S} UTC",
    ]
    if release.cover_art_url:
        lines.append(f"Cover art: {release.cover_art_url}")
    if release.processing_error_reason:
        lines.append(f"[red]Reason: {release.processing_error_reason}[/red]")
    console.print(Panel("\n".join(lines), title=release.title, expand=False))

    table = Table(title="Tracks")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("ISRC")
    table.add_column("Duration", justify="right")
    table.add_column("ID", style="dim")
    for track in tracks:
        duration = f"{track.duration:.0f}s" if track.duration is not None else "-"
        table.add_row(str(track.track_number), track.title, track.isrc or "-", duration, track.id)
    console.print(table)


@cli.command('list')
@click.option('--page', type=click.IntRange(min=1), default=1, show_default=True)
@click.option('--limit', type=click.IntRange(min=1, max=100), default=10, show_default=True)
@click.option('--order-by', type=click.Choice(ORDERABLE_COLUMNS), default='created_at', show_default=True)
@click.option('--ascending', is_flag=True, help='Sort ascending instead of descending')
@click.pass_obj
def list_releases(app: AppContext, page: int, limit: int, order_by: str, ascending: bool):
    """List your releases (all releases for admins)."""
    result = _run(app.catalog().list_releases(
        app.requester, page=page, limit=limit, order_by=order_by, descending=not ascending
    ), app.verbose)
    console.print(_releases_table("Releases", result))
    _print_page_footer(result)


@cli.command()
@click.option('--search', help='Case-insensitive match on title or genre')
@click.option('--featured', is_flag=True, help='Only featured releases')
@click.option('--page', type=click.IntRange(min=1), default=1, show_default=True)
@click.option('--limit', type=click.IntRange(min=1, max=100), default=12, show_default=True)
@click.pass_obj
def catalogue(app: AppContext, search: Optional[str], featured: bool, page: int, limit: int):
    """Browse the published catalogue."""
    result = _run(app.catalog().list_published(
        search=search, is_featured=True if featured else None, page=page, limit=limit
    ), app.verbose)
    if not result.items:
        console.print("[yellow]No published releases found[/yellow]")
        return
    console.print(_releases_table("Catalogue", result))
    _print_page_footer(result)


@cli.command()
@click.argument('release_id')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_obj
def delete(app: AppContext, release_id: str, yes: bool):
    """Delete a release and all of its tracks."""
    if not yes and not Confirm.ask(f"Delete release {release_id} and its tracks?"):
        console.print("[yellow]Cancelled[/yellow]")
        return
    _unwrap(_run(app.catalog().delete_release(release_id, app.requester), app.verbose))
    console.print(f"[green]✓ Deleted release[/green] {release_id}")


@cli.command('init-config')
@click.argument('path', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--force', is_flag=True, help='Overwrite an existing file')
@click.pass_obj
def init_config(app: AppContext, path: Path, force: bool):
    """Write the active configuration to PATH as JSON."""
    if path.exists() and not force:
        console.print(f"[red]Error: {path} already exists (use --force to overwrite)[/red]")
        sys.exit(1)
    save_config(app.config, path)
    console.print(f"[green]✓ Configuration written to[/green] {path}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
