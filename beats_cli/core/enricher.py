"""
Derives display metadata and cover art for every catalog track from the
tags embedded in its audio.
"""

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional

from rich.markup import escape

from beats_cli.media.fetcher import TrackFetcher
from beats_cli.media.resources import ImageResource, ResourceLifecycleManager
from beats_cli.media.tag_parser import ParsedMetadata, TagParser
from beats_cli.models.stats import EnrichmentStats
from beats_cli.models.track import DEFAULT_COVER, Track, TrackCatalog

from .cancellation import CancellationToken

log = logging.getLogger(__name__)

DEFAULT_AUDIO_MIME = "audio/mpeg"
DEFAULT_PICTURE_MIME = "image/jpeg"


def fallback_track(track: Track) -> Track:
    """Catalog values with a guaranteed cover."""
    return track if track.cover else replace(track, cover=DEFAULT_COVER)


def merge_metadata(track: Track, metadata: ParsedMetadata) -> Track:
    """Applies parsed tag values over catalog defaults; never leaves a field empty."""
    title = metadata.title or track.title
    artist = metadata.artist or (
        ", ".join(metadata.artists) if metadata.artists else track.artist
    )
    return replace(
        fallback_track(track),
        title=title,
        artist=artist,
        length=metadata.length or track.length,
    )


class MetadataEnricher:
    """
    Runs one enrichment task per catalog track and joins them into a single
    playlist.

    Per-track failures never escape: the affected track keeps its catalog
    values and the default cover.
    """

    def __init__(
        self,
        fetcher: TrackFetcher,
        parser: TagParser,
        resources: ResourceLifecycleManager,
        max_concurrent: int = 8,
        track_timeout: float = 0.0,
        default_mime_type: str = DEFAULT_AUDIO_MIME,
    ):
        """
        Args:
            fetcher: Byte source for track locators.
            parser: Tag-parsing capability.
            resources: Registry for the cover resources this enricher creates.
            max_concurrent: Maximum number of tracks fetched at once.
            track_timeout: Seconds before a single track falls back (0 = no limit).
            default_mime_type: MIME hint used when the transport gives none.
        """
        self.fetcher = fetcher
        self.parser = parser
        self.resources = resources
        self.track_timeout = track_timeout
        self.default_mime_type = default_mime_type
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.stats = EnrichmentStats()

    async def enrich(
        self, catalog: TrackCatalog, token: Optional[CancellationToken] = None
    ) -> Optional[List[Track]]:
        """
        Enriches every track concurrently and returns the playlist in catalog
        order once all of them have settled.

        Returns None when `token` was cancelled before the join completed. In
        that case, and when the calling task is cancelled, every resource
        created by this run is revoked.
        """
        token = token or CancellationToken()
        stats = EnrichmentStats(tracks_total=len(catalog))
        self.stats = stats
        created: List[ImageResource] = []

        if token.cancelled:
            stats.cancelled = True
            stats.finish()
            return None

        log.debug(f"Enriching metadata for {len(catalog)} tracks...")
        tasks = [
            asyncio.create_task(
                self._enrich_track(track, created, stats), name=f"enrich-{track.id}"
            )
            for track in catalog
        ]

        def _cancel_pending():
            for task in tasks:
                if not task.done():
                    task.cancel()

        unregister = token.on_cancel(_cancel_pending)
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        except asyncio.CancelledError:
            token.cancel()
            self._discard(created)
            raise
        finally:
            unregister()
            stats.finish()

        if token.cancelled:
            stats.cancelled = True
            discarded = self._discard(created)
            log.debug(
                f"Enrichment cancelled; discarded results and revoked {discarded} covers."
            )
            return None

        playlist = []
        for track, result in zip(catalog, results):
            if isinstance(result, Track):
                playlist.append(result)
            else:
                stats.record_fallback(track.id, repr(result))
                playlist.append(fallback_track(track))
        return playlist

    async def _enrich_track(
        self, track: Track, created: List[ImageResource], stats: EnrichmentStats
    ) -> Track:
        try:
            async with self.semaphore:
                if self.track_timeout:
                    return await asyncio.wait_for(
                        self._load_track(track, created, stats), self.track_timeout
                    )
                return await self._load_track(track, created, stats)
        except asyncio.TimeoutError:
            reason = f"timed out after {self.track_timeout:g}s"
        except Exception as e:
            reason = str(e) or type(e).__name__

        log.warning(
            f"[yellow]⚠ Metadata load failed for[/] [dim]{escape(track.src)}[/dim] "
            f"({escape(reason)}); using catalog values."
        )
        stats.record_fallback(track.id, reason)
        return fallback_track(track)

    async def _load_track(
        self, track: Track, created: List[ImageResource], stats: EnrichmentStats
    ) -> Track:
        payload = await self.fetcher.fetch(track.src)
        mime_hint = payload.mime_type or self.default_mime_type
        metadata = await asyncio.to_thread(self.parser.parse, payload.data, mime_hint)

        enriched = merge_metadata(track, metadata)
        picture = metadata.pictures[0] if metadata.pictures else None
        if picture is not None:
            resource = self.resources.create(
                picture.data, picture.format or DEFAULT_PICTURE_MIME
            )
            created.append(resource)
            enriched = replace(enriched, cover=resource.handle)
        else:
            log.warning(
                f"[yellow]No embedded cover art found for[/] [dim]{escape(track.src)}[/dim]"
            )

        stats.record_success(payload.size, has_cover=picture is not None)
        log.debug(f"Enriched '{enriched.title}' by '{enriched.artist}' from {track.src}")
        return enriched

    def _discard(self, created: List[ImageResource]) -> int:
        return self.resources.revoke_many(resource.handle for resource in created)
