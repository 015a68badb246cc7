"""Command line interface for the series catalog."""

import asyncio
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import aiofiles
import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .application.bootstrap import build_catalog, create_buses
from .application.catalog_service import CatalogService
from .application.commands import CommandBus, CommandResult
from .application.commands.catalog import (
    AddEpisodeCommand,
    CreateSeriesCommand,
    DeleteEpisodeCommand,
    DeleteSeriesCommand,
    UpdateCoverImageCommand,
)
from .application.queries import QueryBus
from .application.queries.catalog import GetSeriesQuery, ListSeriesQuery
from .domain.catalog.entities import Series
from .domain.catalog.value_objects import BlobHandle, BlobMedia, EpisodeSpec, ExternalMedia, MediaRef
from .domain.result import Failure, Result, Success, ValidationError
from .exceptions import SeriesCatalogError
from .infrastructure.storage.upload_policy import UploadPolicy, image_policy, video_policy
from .models.config import CatalogConfig, load_config, save_config

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="series-catalog")
@click.option(
    '--config',
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Configuration file path'
)
@click.option(
    '--data-dir',
    type=click.Path(file_okay=False, path_type=Path),
    envvar='SERIES_CATALOG_DATA_DIR',
    help='Directory holding catalog.json and the uploads folder'
)
@click.option('--verbose', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], data_dir: Optional[Path], verbose: bool):
    """Catalog series of episodes backed by uploaded files or external URLs."""
    _configure_logging(verbose)
    try:
        config = load_config(config_path) if config_path else CatalogConfig.default()
    except SeriesCatalogError as e:
        raise click.ClickException(str(e))
    if data_dir is not None:
        config.storage.data_dir = data_dir
    ctx.obj = config


async def _open(config: CatalogConfig) -> Tuple[CatalogService, CommandBus, QueryBus]:
    service = await build_catalog(config)
    command_bus, query_bus = create_buses(service)
    return service, command_bus, query_bus


def _run(coro) -> None:
    """Run a command coroutine and exit with its status code."""
    try:
        code = asyncio.run(coro)
    except SeriesCatalogError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    sys.exit(code)


def _report(result: CommandResult) -> int:
    if not result.success:
        kind = result.error_type or "Error"
        err_console.print(f"[red]{kind}:[/red] {'; '.join(result.errors)}")
        if result.message:
            err_console.print(f"[dim]{result.message}[/dim]")
        return 1

    console.print(f"[green]✓[/green] {result.message}")
    for warning in result.warnings:
        console.print(f"[yellow]warning:[/yellow] {warning}")
    return 0


async def _stage_file(service: CatalogService, policy: UploadPolicy, path: Path) -> Result[BlobHandle, Exception]:
    """Check an upload against ``policy`` and stage it; rejected files are never staged."""
    try:
        size = path.stat().st_size
    except OSError as e:
        return Failure(SeriesCatalogError(f"Cannot read {path}: {e}"))

    content_type, _ = mimetypes.guess_type(path.name)
    checked = policy.check(path.name, size, content_type)
    if checked.is_failure():
        return Failure(checked.error())

    async with aiofiles.open(path, "rb") as f:
        return await service.blobs.stage(f, checked.value())


async def _resolve_media(service: CatalogService, policy: UploadPolicy,
                         source: str) -> Result[MediaRef, Exception]:
    """An existing local file is uploaded; a URL is kept as external media."""
    if not source.strip():
        return Failure(ValidationError("A file or a URL is required"))
    path = Path(source).expanduser()
    if path.is_file():
        return await _stage_file(service, policy, path)
    if not _is_url(source):
        return Failure(ValidationError(f"No such file: {source}"))
    return Success(ExternalMedia(source.strip()))


def _is_url(source: str) -> bool:
    parsed = urlparse(source.strip())
    return bool(parsed.scheme and parsed.netloc)


def _parse_episode(value: str) -> Tuple[str, str]:
    title, sep, source = value.partition("=")
    if not sep:
        return "", value
    return title.strip(), source.strip()


def _series_table(series: Sequence[Series]) -> Table:
    table = Table(title="Series")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Owner")
    table.add_column("Episodes", justify="right")
    table.add_column("Cover")
    for item in series:
        table.add_row(
            item.id,
            item.name,
            item.owner_handle,
            str(len(item.episodes)),
            _describe_media(item.cover_image),
        )
    return table


def _describe_media(ref: Optional[MediaRef]) -> str:
    if ref is None:
        return "-"
    if isinstance(ref, BlobMedia):
        return f"[magenta]upload[/magenta] {ref.path}"
    return ref.url


@cli.command()
@click.option('--write-config', type=click.Path(dir_okay=False, path_type=Path),
              help='Also save the effective configuration to this file')
@click.pass_obj
def init(config: CatalogConfig, write_config: Optional[Path]):
    """Create the data directory and an empty catalog."""
    async def run() -> int:
        service, _, _ = await _open(config)
        if write_config:
            save_config(config, write_config)
            console.print(f"Configuration written to {write_config}")
        console.print(f"[green]✓[/green] Catalog ready at {config.storage.catalog_path} "
                      f"({len(service.list_series())} series)")
        return 0

    _run(run())


@cli.command(name="list")
@click.option('--owner', help='Only series created by this user')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']), default='table',
              help='Output format (default: table)')
@click.pass_obj
def list_series(config: CatalogConfig, owner: Optional[str], output_format: str):
    """List every series in the catalog."""
    async def run() -> int:
        _, _, query_bus = await _open(config)
        result = await query_bus.dispatch(ListSeriesQuery(owner_handle=owner))
        if output_format == 'json':
            console.print_json(json.dumps([item.to_dict() for item in result.data]))
        elif not result.data:
            console.print("[dim]No series yet.[/dim]")
        else:
            console.print(_series_table(result.data))
        return 0

    _run(run())


@cli.command()
@click.argument('series_id')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']), default='table',
              help='Output format (default: table)')
@click.pass_obj
def show(config: CatalogConfig, series_id: str, output_format: str):
    """Show one series and its episodes."""
    async def run() -> int:
        _, _, query_bus = await _open(config)
        result = await query_bus.dispatch(GetSeriesQuery(series_id=series_id))
        if not result.success:
            err_console.print(f"[red]{result.error_type}:[/red] {'; '.join(result.errors)}")
            return 1

        series = result.data
        if output_format == 'json':
            console.print_json(json.dumps(series.to_dict()))
            return 0

        console.print(Panel(
            f"{series.description or '[dim]no description[/dim]'}\n\n"
            f"Owner: {series.owner_handle}\nCover: {_describe_media(series.cover_image)}",
            title=f"{series.name} ({series.id})",
        ))
        table = Table(show_header=True)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title")
        table.add_column("Media")
        table.add_column("Owner")
        for episode in series.episodes:
            table.add_row(episode.id, episode.title, _describe_media(episode.media), episode.owner_handle)
        console.print(table)
        return 0

    _run(run())


@cli.command()
@click.argument('name')
@click.option('--owner', required=True, help='User creating the series')
@click.option('--description', default='', help='Series description')
@click.option('--cover', help='Cover image: a local image file or a URL')
@click.option(
    '--episode', '-e', 'episodes',
    multiple=True,
    help='Episode as TITLE=SOURCE, where SOURCE is a local video file or a URL (repeatable, kept in order)'
)
@click.pass_obj
def create(config: CatalogConfig, name: str, owner: str, description: str,
           cover: Optional[str], episodes: Tuple[str, ...]):
    """Create a series NAME with its episodes."""
    async def run() -> int:
        service, command_bus, _ = await _open(config)
        videos = video_policy(config.uploads.max_file_size)

        specs: List[EpisodeSpec] = []
        uploads: Dict[str, BlobHandle] = {}
        pending = []
        missing: List[str] = []
        for index, value in enumerate(episodes):
            title, source = _parse_episode(value)
            path = Path(source).expanduser()
            if path.is_file():
                key = f"episode_{index}"
                specs.append(EpisodeSpec(title=title, upload_key=key))
                pending.append((key, path))
            elif source.strip() and not _is_url(source):
                missing.append(source)
            else:
                specs.append(EpisodeSpec(title=title, url=source))

        if missing:
            for source in missing:
                err_console.print(f"[red]No such file:[/red] {source}")
            return 1

        staged = await asyncio.gather(*(_stage_file(service, videos, path) for _, path in pending))
        for (key, path), result in zip(pending, staged):
            if result.is_success():
                uploads[key] = result.value()

        cover_image: Optional[MediaRef] = None
        cover_result: Result[MediaRef, Exception] = Success(None)
        if cover:
            cover_result = await _resolve_media(service, image_policy(config.uploads.max_image_size), cover)
            cover_image = cover_result.or_else(None)

        rejected = [(path.name, r.error()) for (_, path), r in zip(pending, staged) if r.is_failure()]
        if cover_result.is_failure():
            rejected.append((cover, cover_result.error()))
        if rejected:
            await service.blobs.discard_all(uploads.values())
            if isinstance(cover_image, BlobMedia):
                await service.blobs.discard(cover_image)
            for source, error in rejected:
                err_console.print(f"[red]Upload rejected:[/red] {source}: {error}")
            return 1

        result = await command_bus.dispatch(CreateSeriesCommand(
            name=name,
            description=description,
            owner_handle=owner,
            episodes=tuple(specs),
            uploads=uploads,
            cover_image=cover_image,
        ))
        if result.success:
            created = result.result_data["series"]
            console.print(f"Series id: [cyan]{created['id']}[/cyan]")
        return _report(result)

    _run(run())


@cli.command(name="add-episode")
@click.argument('series_id')
@click.argument('source')
@click.option('--title', default='', help='Episode title (default: "Episode N")')
@click.option('--owner', help='User adding the episode (default: the series owner)')
@click.pass_obj
def add_episode(config: CatalogConfig, series_id: str, source: str, title: str, owner: Optional[str]):
    """Append an episode from SOURCE (a local video file or a URL)."""
    async def run() -> int:
        service, command_bus, _ = await _open(config)
        media = await _resolve_media(service, video_policy(config.uploads.max_file_size), source)
        if media.is_failure():
            err_console.print(f"[red]Upload rejected:[/red] {media.error()}")
            return 1

        result = await command_bus.dispatch(AddEpisodeCommand(
            series_id=series_id, title=title, media=media.value(), owner_handle=owner
        ))
        return _report(result)

    _run(run())


@cli.command(name="set-cover")
@click.argument('series_id')
@click.argument('source', required=False)
@click.option('--clear', is_flag=True, help='Remove the cover image')
@click.pass_obj
def set_cover(config: CatalogConfig, series_id: str, source: Optional[str], clear: bool):
    """Replace the cover image of a series with SOURCE (image file or URL)."""
    if not source and not clear:
        raise click.UsageError("Give an image SOURCE or --clear")

    async def run() -> int:
        service, command_bus, _ = await _open(config)
        image: Optional[MediaRef] = None
        if source and not clear:
            resolved = await _resolve_media(service, image_policy(config.uploads.max_image_size), source)
            if resolved.is_failure():
                err_console.print(f"[red]Upload rejected:[/red] {resolved.error()}")
                return 1
            image = resolved.value()

        result = await command_bus.dispatch(UpdateCoverImageCommand(series_id=series_id, image=image))
        return _report(result)

    _run(run())


@cli.command(name="delete-episode")
@click.argument('series_id')
@click.argument('episode_id')
@click.option('--as', 'subject', required=True, help='User performing the deletion')
@click.pass_obj
def delete_episode(config: CatalogConfig, series_id: str, episode_id: str, subject: str):
    """Delete one episode and its uploaded file."""
    async def run() -> int:
        _, command_bus, _ = await _open(config)
        result = await command_bus.dispatch(DeleteEpisodeCommand(
            series_id=series_id, episode_id=episode_id, subject_handle=subject
        ))
        return _report(result)

    _run(run())


@cli.command(name="delete-series")
@click.argument('series_id')
@click.option('--as', 'subject', required=True, help='User performing the deletion')
@click.option('--yes', is_flag=True, help='Skip confirmation prompt')
@click.pass_obj
def delete_series(config: CatalogConfig, series_id: str, subject: str, yes: bool):
    """Delete a series, all of its episodes and their uploaded files."""
    if not yes:
        click.confirm(f"Delete series {series_id} and all of its episodes?", abort=True)

    async def run() -> int:
        _, command_bus, _ = await _open(config)
        result = await command_bus.dispatch(DeleteSeriesCommand(series_id=series_id, subject_handle=subject))
        return _report(result)

    _run(run())


@cli.command()
@click.option('--dry-run', is_flag=True, help='Show what would be removed without deleting')
@click.option('--grace', type=float, default=None,
              help='Ignore files younger than this many seconds (default from config)')
@click.pass_obj
def gc(config: CatalogConfig, dry_run: bool, grace: Optional[float]):
    """Remove uploaded files that no series references."""
    async def run() -> int:
        service, _, _ = await _open(config)
        grace_seconds = grace if grace is not None else config.uploads.orphan_grace_seconds
        removed = await service.collect_orphans(grace_seconds=grace_seconds, dry_run=dry_run)
        if not removed:
            console.print("[green]✓[/green] No orphaned files")
            return 0
        verb = "Would remove" if dry_run else "Removed"
        for name in removed:
            console.print(f"{verb} {name}")
        console.print(f"[green]✓[/green] {verb} {len(removed)} orphaned file(s)")
        return 0

    _run(run())


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
