"""
Core player engine.

This package contains the primary logic. The `MetadataEnricher` derives
display metadata for every catalog track, the `PlaybackController` owns the
playlist state and drives the media engine, and `PlayerSession` wires the two
together for the lifetime of one player run.
"""

from .cancellation import CancellationToken
from .controller import PlaybackController, PlayerView, PlaylistState
from .enricher import MetadataEnricher
from .session import PlayerSession

__all__ = [
    "CancellationToken",
    "MetadataEnricher",
    "PlaybackController",
    "PlayerSession",
    "PlayerView",
    "PlaylistState",
]
