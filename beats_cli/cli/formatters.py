"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from beats_cli.models.config import PlayerConfig
from beats_cli.models.stats import EnrichmentStats
from beats_cli.models.track import Track
from beats_cli.utils.formatting import format_duration, format_size, format_time


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `beats-cli init --force` to write a fresh default config.",
        ],
        "CatalogError": [
            "• The catalog must be a JSON array of {id, title, artist, src} objects.",
            "• Track ids must be unique.",
            "• Relative `src` paths are resolved against the catalog's folder.",
        ],
        "FetchError": [
            "• Check that the track source exists and is reachable.",
            "• Try again with -vv to see each fetch attempt.",
        ],
        "PlaybackRejected": [
            "• The track may not have loaded yet; wait for metadata and retry.",
            "• Tracks with no readable length cannot be played.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• The server hosting the tracks might be temporarily unavailable.",
        ],
        "TimeoutError": [
            "• A fetch timed out.",
            "• Raise `fetch_timeout` or `track_timeout` in the config.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            escape(content),
            title=f"Configuration ([dim]{escape(str(config_path))}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: PlayerConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row(
        "Catalog:",
        f"[dim]{escape(config.catalog_path)}[/dim]"
        if config.catalog_path
        else "[dim]built-in[/dim]",
    )
    table.add_row("Max Concurrent:", str(config.max_concurrent))
    table.add_row("Fetch Attempts:", str(config.fetch_attempts))
    table.add_row("Fetch Timeout:", f"{config.fetch_timeout:g}s")
    table.add_row(
        "Track Timeout:",
        f"{config.track_timeout:g}s" if config.track_timeout else "✗ Disabled",
    )
    table.add_row("Default MIME Type:", config.default_mime_type)
    table.add_row("Autoplay:", "✓ Enabled" if config.autoplay else "✗ Disabled")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def build_playlist_table(
    tracks: Sequence[Track], current_index: int | None = None, cover_labels=None
) -> Table:
    """Builds the playlist table; `cover_labels` maps a cover reference to a label."""
    table = Table(title=f"Playlist ({len(tracks)} Tracks)", box=box.SIMPLE_HEAD)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Artist", style="cyan")
    table.add_column("Length", justify="right")
    table.add_column("Cover", style="magenta")

    for i, track in enumerate(tracks):
        is_active = i == current_index
        title = escape(track.title)
        if is_active:
            title = f"[green]▶ {title}[/green]"
        cover = cover_labels(track.cover) if cover_labels else track.cover
        table.add_row(
            str(i + 1),
            title,
            escape(track.artist),
            format_time(track.length) if track.length else "[dim]–[/dim]",
            cover,
        )
    return table


def print_summary_panel(stats: EnrichmentStats):
    """Displays a summary of the enrichment run."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Enriched:",
        f"[bold green]{stats.tracks_enriched}[/bold green] / {stats.tracks_total}",
    )
    if stats.tracks_fallback > 0:
        stats_table.add_row(
            "✗ Fallback:", f"[bold red]{stats.tracks_fallback}[/bold red]"
        )
    stats_table.add_row("Covers:", f"[magenta]{stats.covers_extracted}[/magenta]")
    if stats.covers_missing > 0:
        stats_table.add_row(
            "No Cover Art:", f"[yellow]{stats.covers_missing}[/yellow]"
        )

    stats_table.add_row("", "")
    stats_table.add_row(
        "Total Fetched:", f"[cyan]{format_size(stats.bytes_fetched)}[/cyan]"
    )
    stats_table.add_row(
        "Time Elapsed:", f"[blue]{format_duration(stats.elapsed_s)}[/blue]"
    )

    if stats.failures:
        stats_table.add_row("", "")
        for track_id, reason in stats.failures.items():
            stats_table.add_row(
                f"[red]{escape(track_id)}[/red]:", f"[dim]{escape(reason)}[/dim]"
            )

    if stats.cancelled:
        title = "⚠ [bold]Metadata Load Cancelled[/bold]"
        border_color = "yellow"
    elif stats.tracks_fallback:
        title = "🎵 [bold]Metadata Loaded (with fallbacks)[/bold]"
        border_color = "yellow"
    else:
        title = "🎵 [bold]Metadata Loaded![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
