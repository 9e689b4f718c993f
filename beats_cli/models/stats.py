"""
Dataclass for tracking metadata enrichment statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class EnrichmentStats:
    """Tracks the outcome of one enrichment run."""

    tracks_total: int = 0
    tracks_enriched: int = 0
    tracks_fallback: int = 0
    covers_extracted: int = 0
    covers_missing: int = 0
    bytes_fetched: int = 0
    cancelled: bool = False
    failures: dict[str, str] = field(default_factory=dict)

    _started_at: float = field(default=0.0, repr=False)
    _finished_at: float | None = field(default=None, repr=False)

    def __post_init__(self):
        self._started_at = time.monotonic()

    def record_success(self, size: int, has_cover: bool) -> None:
        self.tracks_enriched += 1
        self.bytes_fetched += size
        if has_cover:
            self.covers_extracted += 1
        else:
            self.covers_missing += 1

    def record_fallback(self, track_id: str, reason: str) -> None:
        self.tracks_fallback += 1
        self.failures[track_id] = reason

    def finish(self) -> None:
        self._finished_at = time.monotonic()

    @property
    def elapsed_s(self) -> float:
        end = self._finished_at if self._finished_at is not None else time.monotonic()
        return end - self._started_at
