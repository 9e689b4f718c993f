"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from beats_cli import __version__
from beats_cli.core.session import PlayerSession
from beats_cli.exceptions import BeatsCliError
from beats_cli.models.config import PlayerConfig
from beats_cli.models.track import TrackCatalog
from beats_cli.storage.catalog_loader import load_catalog
from beats_cli.storage.config_manager import ConfigManager

from .console_view import HELP_TEXT, ConsoleView, dispatch_command
from .formatters import (
    build_playlist_table,
    print_config,
    print_summary_panel,
    print_validation_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("beats_cli")

app = typer.Typer(
    name="beats-cli",
    help=(
        "A terminal playlist player that reads titles, artists and cover art from"
        " each track's embedded tags. Use 'beats-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "beats-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """beats-cli playlist player"""
    if version:
        console.print(f"[bold]beats-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("beats_cli").setLevel(log_level)

    if show_config:
        config = _load_config({})
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    catalog: Path | None = typer.Option(  # noqa: B008
        None, "--catalog", "-c", help="Default catalog file to play."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {}
    if catalog is not None:
        settings["catalog_path"] = str(catalog.expanduser().resolve())
    try:
        ConfigManager(CONFIG_FILE).save_new_config(settings)
    except BeatsCliError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    console.print(
        f"\n[bold green]✓ Configuration saved to '{escape(str(CONFIG_FILE))}'[/bold green]"
    )
    console.print("Ready to play! Try: [cyan]beats-cli play[/cyan]")


def _load_config(cli_options: dict) -> PlayerConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except BeatsCliError as e:
        console.print(f"[red]✗ Configuration is invalid: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _load_catalog(catalog_path: Path | None, config: PlayerConfig) -> TrackCatalog:
    path = catalog_path or (Path(config.catalog_path) if config.catalog_path else None)
    if path is None:
        log.info("[dim]No catalog given; using the built-in playlist.[/dim]")
        return TrackCatalog.default()
    try:
        return load_catalog(path)
    except BeatsCliError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _cli_options(**values) -> dict:
    return {key: value for key, value in values.items() if value is not None}


@app.command()
def enrich(
    catalog_path: Path | None = typer.Argument(  # noqa: B008
        None, help="JSON catalog of tracks. Defaults to the configured catalog."
    ),
    concurrent: int | None = typer.Option(
        None, "-j", "--concurrent", help="Number of tracks fetched at once."
    ),
    track_timeout: float | None = typer.Option(
        None, "--track-timeout", help="Seconds before a track falls back (0 = no limit)."
    ),
):
    """Load metadata and cover art for every track and show the playlist."""
    config = _load_config(
        _cli_options(max_concurrent=concurrent, track_timeout=track_timeout)
    )
    catalog = _load_catalog(catalog_path, config)

    async def _enrich_async():
        async with PlayerSession(catalog, config) as session:
            with console.status("[cyan]Reading embedded tags...[/cyan]"):
                tracks = await session.wait_enriched()
            view = ConsoleView(session.resources)
            console.print(build_playlist_table(tracks, cover_labels=view.cover_label))
            print_summary_panel(session.stats)

    asyncio.run(_enrich_async())


@app.command()
def play(
    catalog_path: Path | None = typer.Argument(  # noqa: B008
        None, help="JSON catalog of tracks. Defaults to the configured catalog."
    ),
    autoplay: bool | None = typer.Option(
        None, "--autoplay/--no-autoplay", help="Start playing once metadata is loaded."
    ),
):
    """Play a catalog interactively."""
    config = _load_config(_cli_options(autoplay=autoplay))
    catalog = _load_catalog(catalog_path, config)

    async def _play_async():
        async with PlayerSession(catalog, config) as session:
            view = ConsoleView(session.resources)
            with console.status("[cyan]Reading embedded tags...[/cyan]"):
                await session.wait_enriched()

            controller = session.controller
            if config.autoplay:
                await controller.play_pause()

            console.print(view.render(controller.view(), with_playlist=True))
            console.print(HELP_TEXT)
            while True:
                line = await asyncio.to_thread(console.input, "[bold]» [/bold]")
                if not await dispatch_command(controller, line):
                    break
                show_list = line.strip().lower() in ("l", "list", "h", "help", "?")
                console.print(view.render(controller.view(), with_playlist=show_list))
                if show_list:
                    console.print(HELP_TEXT)

        console.print("[dim]Bye.[/dim]")

    asyncio.run(_play_async())


@app.command()
def validate():
    """Validate the current configuration."""
    if not CONFIG_FILE.is_file():
        console.print(
            f"[yellow]⚠ No config file at '{escape(str(CONFIG_FILE))}'; "
            "showing defaults.[/yellow]"
        )
    config = _load_config({})
    print_validation_table(config)
