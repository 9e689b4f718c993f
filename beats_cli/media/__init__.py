"""
Media Layer.

This package is responsible for everything that touches audio data: fetching
track bytes, reading embedded tags, managing cover resources, and the media
engine boundary.
"""

from .engine import ClockEngine, EngineEvent, MediaEngine, Subscription
from .fetcher import FetchedPayload, TrackFetcher
from .resources import ImageResource, ResourceLifecycleManager
from .tag_parser import EmbeddedPicture, MutagenTagParser, ParsedMetadata, TagParser

__all__ = [
    "ClockEngine",
    "EmbeddedPicture",
    "EngineEvent",
    "FetchedPayload",
    "ImageResource",
    "MediaEngine",
    "MutagenTagParser",
    "ParsedMetadata",
    "ResourceLifecycleManager",
    "Subscription",
    "TagParser",
    "TrackFetcher",
]
