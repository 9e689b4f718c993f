"""
Data Models Layer.

This package contains the core data structures used throughout the
application: track descriptors, configuration and statistics.
"""

from .config import PlayerConfig
from .stats import EnrichmentStats
from .track import DEFAULT_COVER, Track, TrackCatalog

__all__ = ["DEFAULT_COVER", "EnrichmentStats", "PlayerConfig", "Track", "TrackCatalog"]
