"""Shared fixtures and test doubles"""

import asyncio

import pytest
from mutagen.id3 import APIC, ID3, TIT2, TPE1

from beats_cli.exceptions import PlaybackRejected
from beats_cli.media.engine import ListenerRegistry
from beats_cli.media.fetcher import FetchedPayload
from beats_cli.media.resources import ResourceLifecycleManager
from beats_cli.media.tag_parser import EmbeddedPicture, ParsedMetadata
from beats_cli.models.track import Track, TrackCatalog


class FakeFetcher:
    """Serves canned payloads (or raises canned errors) per source."""

    def __init__(self, responses=None, gates=None):
        self.responses = responses or {}
        self.gates = gates or {}
        self.started: list[str] = []

    async def fetch(self, src):
        self.started.append(src)
        if src in self.gates:
            await self.gates[src].wait()
        response = self.responses[src]
        if isinstance(response, BaseException):
            raise response
        return response


class FakeParser:
    """Maps payload bytes to parsed metadata (or an exception)."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls: list[tuple[bytes, str]] = []

    def parse(self, data, mime_hint):
        self.calls.append((data, mime_hint))
        result = self.results[data]
        if isinstance(result, BaseException):
            raise result
        return result


class FakeEngine(ListenerRegistry):
    """Records commands; `reject` makes the next play() calls fail."""

    def __init__(self):
        super().__init__()
        self.loaded: list[str] = []
        self.play_calls = 0
        self.pause_calls = 0
        self.current_time = 0.0
        self.duration = 0.0
        self.reject: PlaybackRejected | None = None
        self.closed = False

    def load(self, src):
        self.loaded.append(src)
        self.current_time = 0.0

    async def play(self):
        self.play_calls += 1
        await asyncio.sleep(0)
        if self.reject is not None:
            raise self.reject

    def pause(self):
        self.pause_calls += 1

    async def close(self):
        self.closed = True


def payload(data: bytes, mime: str | None = "audio/mpeg") -> FetchedPayload:
    return FetchedPayload(data, mime)


def metadata(title=None, artist=None, artists=None, pictures=None, length=0.0):
    return ParsedMetadata(
        title=title,
        artist=artist,
        artists=list(artists or []),
        pictures=list(pictures or []),
        length=length,
    )


def picture(data=b"\xff\xd8cover", fmt="image/jpeg"):
    return EmbeddedPicture(data, fmt)


@pytest.fixture
def catalog():
    return TrackCatalog.from_tracks(
        [
            Track("1", "Catalog One", "Artist One", "mem://one.mp3"),
            Track("2", "Catalog Two", "Artist Two", "mem://two.mp3"),
            Track("3", "Catalog Three", "Artist Three", "mem://three.mp3"),
        ]
    )


@pytest.fixture
def resources():
    return ResourceLifecycleManager()


@pytest.fixture
def engine():
    return FakeEngine()


# MPEG-1 Layer III, 128 kbps, 44.1 kHz, no padding: 417 bytes per frame.
MP3_FRAME = b"\xff\xfb\x90\x00" + b"\x00" * 413
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def write_mp3(path, frames=40, title=None, artists=None, cover=None):
    """Writes a silent, ID3-tagged MP3 file and returns its bytes."""
    path.write_bytes(MP3_FRAME * frames)
    tags = ID3()
    if title:
        tags.add(TIT2(encoding=3, text=title))
    if artists:
        tags.add(TPE1(encoding=3, text=artists))
    if cover:
        tags.add(APIC(encoding=3, mime="image/png", type=3, desc="Cover", data=cover))
    tags.save(str(path))
    return path.read_bytes()
