"""
Playlist state and the transport/navigation commands that drive a media engine.
"""

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from rich.markup import escape

from beats_cli.exceptions import PlaybackRejected
from beats_cli.media.engine import EngineEvent, MediaEngine, Subscription
from beats_cli.models.track import DEFAULT_COVER, Track

log = logging.getLogger(__name__)


def _non_negative(value: float) -> float:
    """Clamps negatives (and NaN) to zero."""
    value = float(value)
    return value if value > 0 else 0.0


@dataclass
class PlaylistState:
    """Mutable playback state; only PlaybackController writes to it."""

    tracks: List[Track] = field(default_factory=list)
    current_index: int = 0
    is_playing: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    last_rejection: Optional[PlaybackRejected] = None

    @property
    def current_track(self) -> Optional[Track]:
        if not self.tracks:
            return None
        return self.tracks[self.current_index]


@dataclass(frozen=True)
class PlayerView:
    """Immutable snapshot handed to the presentation layer."""

    playlist: tuple[Track, ...]
    current_index: int
    is_playing: bool
    current_time: float
    duration: float
    cover_src: str
    rejection: Optional[str] = None

    @property
    def current_track(self) -> Optional[Track]:
        return self.playlist[self.current_index] if self.playlist else None

    @property
    def progress(self) -> float:
        """Playback progress in percent; 0 while the duration is unknown."""
        if not self.duration:
            return 0.0
        return min(100.0, self.current_time / self.duration * 100)


class PlaybackController:
    """
    Owns the playlist state and mediates every command to the media engine.

    Engine listeners are bound to the active track only, and are re-bound on
    every track change and released on `dispose()`.
    """

    def __init__(self, engine: MediaEngine, tracks: Sequence[Track] = ()):
        self._engine = engine
        self._state = PlaylistState(tracks=list(tracks))
        self._bindings: Optional[ExitStack] = None
        self._observers: List[Callable[[PlayerView], None]] = []
        self._disposed = False

    @property
    def state(self) -> PlaylistState:
        return self._state

    @property
    def engine(self) -> MediaEngine:
        return self._engine

    def view(self) -> PlayerView:
        state = self._state
        track = state.current_track
        return PlayerView(
            playlist=tuple(state.tracks),
            current_index=state.current_index,
            is_playing=state.is_playing,
            current_time=state.current_time,
            duration=state.duration,
            cover_src=(track.cover if track and track.cover else DEFAULT_COVER),
            rejection=str(state.last_rejection) if state.last_rejection else None,
        )

    def subscribe(self, observer: Callable[[PlayerView], None]) -> Subscription:
        """Registers a presentation observer called after every state change."""
        self._observers.append(observer)

        def _unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return Subscription(_unsubscribe)

    # ----------------------------
    # Lifecycle
    # ----------------------------

    def bind(self) -> None:
        """Loads the current track into the engine and subscribes its events."""
        self._bind_current_track()

    def reload(self) -> None:
        """
        Reloads the current track in place, e.g. after its length became
        known. The position is kept as far as the engine's duration allows.
        """
        position = self._state.current_time
        self._bind_current_track()
        self._state.duration = _non_negative(self._engine.duration)
        self.seek(position)

    def dispose(self) -> None:
        """Releases engine listeners and observers. The controller is unusable afterwards."""
        if self._disposed:
            return
        self._disposed = True
        if self._bindings is not None:
            self._bindings.close()
            self._bindings = None
        self._observers.clear()

    def set_playlist(self, tracks: Sequence[Track]) -> None:
        """
        Commits an enriched playlist in one update. The order and length must
        match the current playlist; index and position are kept.
        """
        tracks = list(tracks)
        current = self._state.tracks
        if [t.id for t in tracks] != [t.id for t in current]:
            raise ValueError("Enriched playlist must keep the catalog's tracks and order.")
        self._state.tracks = tracks
        self._notify()

    def _bind_current_track(self) -> None:
        if self._disposed:
            raise RuntimeError("PlaybackController has been disposed.")
        if self._bindings is not None:
            self._bindings.close()
            self._bindings = None

        track = self._state.current_track
        if track is None:
            return

        stack = ExitStack()
        stack.enter_context(
            self._engine.subscribe(EngineEvent.TIME_UPDATE, self.on_engine_time_update)
        )
        stack.enter_context(
            self._engine.subscribe(
                EngineEvent.LOADED_METADATA, self.on_engine_metadata_loaded
            )
        )
        stack.enter_context(
            self._engine.subscribe(EngineEvent.ENDED, self._handle_engine_ended)
        )
        self._bindings = stack
        self._engine.load(track.src)

    # ----------------------------
    # Commands
    # ----------------------------

    async def play_pause(self) -> bool:
        """
        Toggles playback. Returns whether the player is playing afterwards;
        a rejected play request leaves it paused and records the rejection.
        """
        if not self._state.tracks:
            return False
        if self._state.is_playing:
            self._engine.pause()
            self._state.is_playing = False
            self._notify()
            return False
        return await self._request_play()

    def seek(self, time: float) -> float:
        """Moves the position to `time`, clamped into [0, duration]."""
        clamped = min(_non_negative(time), self._state.duration)
        self._state.current_time = clamped
        self._engine.current_time = clamped
        self._notify()
        return clamped

    async def next(self) -> bool:
        if not self._state.tracks:
            return False
        index = (self._state.current_index + 1) % len(self._state.tracks)
        return await self._go_to(index)

    async def prev(self) -> bool:
        if not self._state.tracks:
            return False
        index = (self._state.current_index - 1) % len(self._state.tracks)
        return await self._go_to(index)

    async def select_track(self, index: int) -> bool:
        if not 0 <= index < len(self._state.tracks):
            raise IndexError(
                f"Track index {index} out of range (0-{len(self._state.tracks) - 1})."
            )
        return await self._go_to(index)

    # ----------------------------
    # Engine event handlers
    # ----------------------------

    async def on_engine_ended(self) -> bool:
        """End of track: advance like `next()`, wrapping after the last track."""
        log.debug("Track ended; advancing to the next track.")
        return await self.next()

    def on_engine_time_update(self, time: float) -> None:
        self._state.current_time = _non_negative(time)
        self._notify()

    def on_engine_metadata_loaded(self, duration: float) -> None:
        self._state.duration = _non_negative(duration)
        self._notify()

    async def _handle_engine_ended(self, _position: float) -> None:
        await self.on_engine_ended()

    # ----------------------------
    # Helpers
    # ----------------------------

    async def _go_to(self, index: int) -> bool:
        state = self._state
        state.current_index = index
        state.current_time = 0.0
        state.duration = 0.0
        state.is_playing = True
        self._bind_current_track()
        log.debug(
            f"Selected track {index + 1}/{len(state.tracks)}: {state.current_track.title}"
        )
        self._notify()
        return await self._request_play()

    async def _request_play(self) -> bool:
        try:
            await self._engine.play()
        except PlaybackRejected as e:
            log.warning(f"[yellow]Playback rejected:[/] {escape(str(e))}")
            self._state.is_playing = False
            self._state.last_rejection = e
            self._notify()
            return False

        self._state.is_playing = True
        self._state.last_rejection = None
        self._notify()
        return True

    def _notify(self) -> None:
        if not self._observers:
            return
        view = self.view()
        for observer in list(self._observers):
            observer(view)
