"""
The media engine boundary: the interface the playback controller drives, plus
`ClockEngine`, a headless engine that advances playback on the event loop clock.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

from beats_cli.exceptions import PlaybackRejected

log = logging.getLogger(__name__)


class EngineEvent(str, Enum):
    """Events a media engine emits; values match the DOM media event names."""

    TIME_UPDATE = "timeupdate"
    LOADED_METADATA = "loadedmetadata"
    ENDED = "ended"


EngineListener = Callable[[float], Optional[Awaitable[Any]]]


class Subscription:
    """Handle for one registered listener; closing it unregisters the listener."""

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.active = True

    def close(self) -> None:
        if self.active:
            self.active = False
            self._unsubscribe()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class MediaEngine(Protocol):
    """What the playback controller needs from an audio engine."""

    current_time: float

    @property
    def duration(self) -> float: ...

    def load(self, src: str) -> None: ...

    async def play(self) -> None:
        """Starts playback or raises PlaybackRejected."""

    def pause(self) -> None: ...

    def subscribe(self, event: EngineEvent, listener: EngineListener) -> Subscription: ...

    async def close(self) -> None: ...


class ListenerRegistry:
    """Listener bookkeeping shared by engine implementations."""

    def __init__(self):
        self._listeners: dict[EngineEvent, list[EngineListener]] = {
            event: [] for event in EngineEvent
        }

    def subscribe(self, event: EngineEvent, listener: EngineListener) -> Subscription:
        listeners = self._listeners[EngineEvent(event)]
        listeners.append(listener)

        def _unsubscribe():
            if listener in listeners:
                listeners.remove(listener)

        return Subscription(_unsubscribe)

    def listener_count(self, event: EngineEvent | None = None) -> int:
        if event is not None:
            return len(self._listeners[EngineEvent(event)])
        return sum(len(listeners) for listeners in self._listeners.values())

    async def dispatch(self, event: EngineEvent, value: float) -> None:
        """Calls every listener for `event`, awaiting coroutine listeners in order."""
        for listener in list(self._listeners[event]):
            try:
                result = listener(value)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                log.error(
                    f"Listener for '{event.value}' failed: {e}",
                    exc_info=log.getEffectiveLevel() == logging.DEBUG,
                )


class ClockEngine(ListenerRegistry):
    """
    A headless engine that "plays" a source by advancing a clock.

    Durations come from `duration_provider(src)`; sources with no known
    length cannot be played. Events are delivered asynchronously, like a
    browser media element does.
    """

    def __init__(
        self,
        duration_provider: Callable[[str], float] | None = None,
        tick_interval: float = 0.25,
    ):
        super().__init__()
        self._duration_provider = duration_provider or (lambda _src: 0.0)
        self.tick_interval = tick_interval
        self._src: str | None = None
        self._duration = 0.0
        self._position = 0.0
        self._playing = False
        self._generation = 0
        self._last_tick = 0.0
        self._ticker: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def src(self) -> str | None:
        return self._src

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def paused(self) -> bool:
        return not self._playing

    @property
    def current_time(self) -> float:
        return self._position

    @current_time.setter
    def current_time(self, value: float) -> None:
        value = max(0.0, float(value))
        self._position = min(value, self._duration) if self._duration else value
        self._last_tick = self._now()

    def load(self, src: str) -> None:
        self.pause()
        self._src = src
        self._position = 0.0
        self._duration = max(0.0, float(self._duration_provider(src) or 0.0))
        log.debug(f"Engine loaded '{src}' (duration {self._duration:.1f}s)")
        self._spawn(self.dispatch(EngineEvent.LOADED_METADATA, self._duration))

    async def play(self) -> None:
        if self._src is None:
            raise PlaybackRejected("No source is loaded.")
        if self._duration <= 0:
            raise PlaybackRejected(f"'{self._src}' has no playable length.")

        await asyncio.sleep(0)
        if self._position >= self._duration:
            self._position = 0.0
        if self._playing:
            return

        self._playing = True
        self._generation += 1
        self._last_tick = self._now()
        self._ticker = asyncio.create_task(self._run(self._generation))

    def pause(self) -> None:
        if self._playing:
            self._advance()
        self._playing = False
        self._generation += 1

    async def close(self) -> None:
        self.pause()
        tasks = [t for t in (self._ticker, *self._pending) if t and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for listeners in self._listeners.values():
            listeners.clear()

    def _now(self) -> float:
        try:
            return asyncio.get_running_loop().time()
        except RuntimeError:
            return 0.0

    def _advance(self) -> None:
        now = self._now()
        self._position = min(self._duration, self._position + (now - self._last_tick))
        self._last_tick = now

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run(self, generation: int) -> None:
        # pause() never cancels a ticker; superseded ones exit on their next wake-up.
        while True:
            await asyncio.sleep(self.tick_interval)
            if generation != self._generation or not self._playing:
                return
            self._advance()
            await self.dispatch(EngineEvent.TIME_UPDATE, self._position)
            if generation != self._generation:
                return
            if self._position >= self._duration:
                self._playing = False
                self._generation += 1
                self._spawn(self.dispatch(EngineEvent.ENDED, self._position))
                return
