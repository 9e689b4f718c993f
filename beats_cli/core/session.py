"""
Wires a catalog, the enrichment pipeline and the playback controller into one
player session, and owns its teardown.
"""

import asyncio
import logging
from contextlib import suppress
from typing import List, Optional

from beats_cli.media.engine import ClockEngine, MediaEngine
from beats_cli.media.fetcher import TrackFetcher, close_connection_pool
from beats_cli.media.resources import ResourceLifecycleManager, is_resource_handle
from beats_cli.media.tag_parser import MutagenTagParser, TagParser
from beats_cli.models.config import PlayerConfig
from beats_cli.models.stats import EnrichmentStats
from beats_cli.models.track import Track, TrackCatalog

from .cancellation import CancellationToken
from .controller import PlaybackController
from .enricher import MetadataEnricher

log = logging.getLogger(__name__)


class PlayerSession:
    """
    One playback session: the controller starts on catalog values, the
    enriched playlist is committed once enrichment settles, and `close()`
    cancels pending enrichment and revokes every cover resource.
    """

    def __init__(
        self,
        catalog: TrackCatalog,
        config: PlayerConfig,
        engine: Optional[MediaEngine] = None,
        fetcher: Optional[TrackFetcher] = None,
        parser: Optional[TagParser] = None,
    ):
        self.catalog = catalog
        self.config = config
        self.resources = ResourceLifecycleManager()
        self.enricher = MetadataEnricher(
            fetcher
            or TrackFetcher(
                max_attempts=config.fetch_attempts,
                max_connections=config.max_concurrent,
                timeout_s=config.fetch_timeout,
            ),
            parser or MutagenTagParser(),
            self.resources,
            max_concurrent=config.max_concurrent,
            track_timeout=config.track_timeout,
            default_mime_type=config.default_mime_type,
        )
        self.engine = engine or ClockEngine(
            duration_provider=self._track_length, tick_interval=config.tick_interval
        )
        self.controller = PlaybackController(self.engine, catalog.initial_playlist())
        self._token: Optional[CancellationToken] = None
        self._enrichment: Optional[asyncio.Task] = None
        self._closed = False

    async def __aenter__(self) -> "PlayerSession":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    @property
    def stats(self) -> EnrichmentStats:
        return self.enricher.stats

    @property
    def enriched(self) -> bool:
        return self._enrichment is not None and self._enrichment.done()

    def start(self) -> None:
        """Binds the controller and starts enrichment in the background."""
        self.controller.bind()
        self.refresh()

    def refresh(self) -> None:
        """
        (Re)starts enrichment. A still-running previous run is cancelled;
        covers from a previously committed playlist are revoked once the new
        playlist replaces it.
        """
        if self._closed:
            raise RuntimeError("Session is closed.")
        if self._token is not None:
            self._token.cancel()
        self._token = CancellationToken()
        self._enrichment = asyncio.create_task(
            self._enrich_and_commit(self._token), name="enrich-playlist"
        )

    async def wait_enriched(self) -> List[Track]:
        """Waits for the current enrichment run and returns the playlist."""
        task = self._enrichment
        if task is not None:
            await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()
        return list(self.controller.state.tracks)

    async def _enrich_and_commit(self, token: CancellationToken) -> None:
        playlist = await self.enricher.enrich(self.catalog, token)
        if playlist is None or token.cancelled:
            return

        superseded = {
            track.cover
            for track in self.controller.state.tracks
            if is_resource_handle(track.cover)
        }
        self.controller.set_playlist(playlist)
        if not self.controller.state.is_playing:
            # The engine only learns track lengths from the enriched playlist.
            self.controller.reload()
        superseded -= {track.cover for track in playlist}
        if superseded:
            self.resources.revoke_many(superseded)
            log.debug(f"Revoked {len(superseded)} superseded covers.")

        stats = self.enricher.stats
        log.info(
            f"Loaded metadata for {stats.tracks_enriched}/{stats.tracks_total} tracks "
            f"({stats.covers_extracted} covers) in {stats.elapsed_s:.2f}s."
        )

    async def close(self) -> None:
        """Tears the session down. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        if self._token is not None:
            self._token.cancel()
        if self._enrichment is not None and not self._enrichment.done():
            self._enrichment.cancel()
            with suppress(asyncio.CancelledError):
                await self._enrichment

        self.controller.dispose()
        await self.engine.close()
        revoked = self.resources.revoke_all()
        await close_connection_pool()
        log.debug(f"Session closed; released {revoked} cover resources.")

    def _track_length(self, src: str) -> float:
        for track in self.controller.state.tracks:
            if track.src == src:
                return track.length
        return 0.0
