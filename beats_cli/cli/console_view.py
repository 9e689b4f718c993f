"""
Terminal presentation of a player session: renders `PlayerView` snapshots
and turns typed commands into controller calls.
"""

import logging
import shlex

from rich.console import Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from beats_cli.core.controller import PlaybackController, PlayerView
from beats_cli.media.resources import ResourceLifecycleManager, is_resource_handle
from beats_cli.utils.formatting import format_size, format_time, progress_bar

from .formatters import build_playlist_table

log = logging.getLogger("beats_cli")

HELP_TEXT = (
    "[cyan]p[/] play/pause  [cyan]n[/] next  [cyan]b[/] prev  "
    "[cyan]s <sec>[/] seek  [cyan]<number>[/] select  "
    "[cyan]l[/] list  [cyan]q[/] quit"
)


class ConsoleView:
    """Renders player state; resolves cover handles to describe artwork."""

    def __init__(self, resources: ResourceLifecycleManager):
        self.resources = resources

    def cover_label(self, cover: str) -> str:
        if not is_resource_handle(cover):
            return "[dim]default[/dim]"
        resource = self.resources.resolve(cover)
        if resource is None:
            return "[red]released[/red]"
        return f"{resource.mime_type}, {format_size(resource.size)}"

    def now_playing(self, view: PlayerView) -> Panel:
        track = view.current_track
        if track is None:
            return Panel("[dim]Playlist is empty.[/dim]", title="Now Playing")

        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold cyan", justify="right")
        grid.add_column()
        grid.add_row("Track:", f"[bold]{escape(track.title)}[/bold]")
        grid.add_row("Artist:", escape(track.artist))
        grid.add_row("Cover:", self.cover_label(view.cover_src))
        grid.add_row(
            format_time(view.current_time),
            f"{progress_bar(view.progress)} {format_time(view.duration)}",
        )
        if view.rejection:
            grid.add_row("", f"[yellow]⚠ {escape(view.rejection)}[/yellow]")

        state = "[green]▶ Playing[/green]" if view.is_playing else "[yellow]⏸ Paused[/yellow]"
        return Panel(
            grid,
            title=f"Now Playing · {state}",
            subtitle=f"{view.current_index + 1}/{len(view.playlist)}",
            border_style="green" if view.is_playing else "cyan",
        )

    def render(self, view: PlayerView, with_playlist: bool = False):
        parts = [self.now_playing(view)]
        if with_playlist:
            parts.append(
                build_playlist_table(view.playlist, view.current_index, self.cover_label)
            )
        return Group(*parts)


async def dispatch_command(controller: PlaybackController, line: str) -> bool:
    """
    Runs one typed command against the controller.

    Returns False when the user asked to quit. Unknown or malformed input is
    reported and ignored.
    """
    try:
        words = shlex.split(line)
    except ValueError:
        words = line.split()
    if not words:
        return True

    command, args = words[0].lower(), words[1:]
    if command in ("q", "quit", "exit"):
        return False
    if command in ("p", "play", "pause"):
        await controller.play_pause()
    elif command in ("n", "next"):
        await controller.next()
    elif command in ("b", "prev", "back"):
        await controller.prev()
    elif command in ("s", "seek"):
        if len(args) != 1:
            log.warning("[yellow]Usage: s <seconds>[/yellow]")
            return True
        try:
            controller.seek(float(args[0]))
        except ValueError:
            log.warning(f"[yellow]Not a number: {escape(args[0])}[/yellow]")
    elif command.isdigit():
        index = int(command) - 1
        try:
            await controller.select_track(index)
        except IndexError:
            log.warning(f"[yellow]No track number {escape(command)}.[/yellow]")
    elif command in ("l", "list", "h", "help", "?"):
        pass
    else:
        log.warning(f"[yellow]Unknown command '{escape(command)}'.[/yellow]")
    return True
