"""Tests for the metadata enrichment pipeline"""

import asyncio
import logging

import pytest
from conftest import FakeFetcher, FakeParser, metadata, payload, picture

from beats_cli.core.cancellation import CancellationToken
from beats_cli.core.enricher import MetadataEnricher, merge_metadata
from beats_cli.exceptions import EmptyPayloadError, FetchError, ParseError
from beats_cli.models.track import DEFAULT_COVER, Track


def make_enricher(fetcher, parser, resources, **kwargs):
    return MetadataEnricher(fetcher, parser, resources, **kwargs)


async def test_failed_fetch_only_affects_that_track(catalog, resources):
    fetcher = FakeFetcher(
        {
            "mem://one.mp3": payload(b"one"),
            "mem://two.mp3": FetchError("mem://two.mp3", 404, "Not Found"),
            "mem://three.mp3": payload(b"three"),
        }
    )
    parser = FakeParser(
        {
            b"one": metadata("Parsed One", "Band One", pictures=[picture(b"img1")]),
            b"three": metadata(
                "Parsed Three", "Band Three", pictures=[picture(b"img3")]
            ),
        }
    )

    playlist = await make_enricher(fetcher, parser, resources).enrich(catalog)

    assert [t.title for t in playlist] == ["Parsed One", "Catalog Two", "Parsed Three"]
    assert [t.artist for t in playlist] == ["Band One", "Artist Two", "Band Three"]
    assert playlist[1].cover == DEFAULT_COVER
    assert playlist[0].cover in resources
    assert playlist[2].cover in resources
    assert len(resources) == 2


async def test_every_failure_kind_falls_back(catalog, resources):
    fetcher = FakeFetcher(
        {
            "mem://one.mp3": EmptyPayloadError("empty"),
            "mem://two.mp3": payload(b"bad"),
            "mem://three.mp3": RuntimeError("connection reset"),
        }
    )
    parser = FakeParser({b"bad": ParseError("garbage frames")})
    enricher = make_enricher(fetcher, parser, resources)

    playlist = await enricher.enrich(catalog)

    for original, result in zip(catalog, playlist):
        assert result.title == original.title
        assert result.artist == original.artist
        assert result.cover == DEFAULT_COVER
    assert enricher.stats.tracks_fallback == 3
    assert enricher.stats.tracks_enriched == 0
    assert len(resources) == 0


async def test_artist_falls_back_to_joined_artists_then_catalog(catalog, resources):
    fetcher = FakeFetcher({t.src: payload(t.id.encode()) for t in catalog})
    parser = FakeParser(
        {
            b"1": metadata(artists=["Alpha", "Beta"]),
            b"2": metadata(title="Only Title"),
            b"3": metadata(artist="Solo", artists=["Ignored", "Too"]),
        }
    )

    playlist = await make_enricher(fetcher, parser, resources).enrich(catalog)

    assert playlist[0].title == "Catalog One"
    assert playlist[0].artist == "Alpha, Beta"
    assert playlist[1].title == "Only Title"
    assert playlist[1].artist == "Artist Two"
    assert playlist[2].artist == "Solo"


async def test_first_picture_becomes_cover_with_default_format(catalog, resources):
    fetcher = FakeFetcher({t.src: payload(t.id.encode(), mime=None) for t in catalog})
    parser = FakeParser(
        {
            b"1": metadata(pictures=[picture(b"first", fmt=None), picture(b"second")]),
            b"2": metadata(pictures=[picture(b"png", fmt="image/png")]),
            b"3": metadata(),
        }
    )

    playlist = await make_enricher(
        fetcher, parser, resources, default_mime_type="audio/flac"
    ).enrich(catalog)

    first = resources.resolve(playlist[0].cover)
    assert first.data == b"first"
    assert first.mime_type == "image/jpeg"
    assert resources.resolve(playlist[1].cover).mime_type == "image/png"
    assert playlist[2].cover == DEFAULT_COVER
    assert {hint for _, hint in parser.calls} == {"audio/flac"}


async def test_missing_cover_is_a_warning_not_a_failure(catalog, resources, caplog):
    fetcher = FakeFetcher({t.src: payload(t.id.encode()) for t in catalog})
    parser = FakeParser({t.id.encode(): metadata(title=f"T{t.id}") for t in catalog})
    enricher = make_enricher(fetcher, parser, resources)

    with caplog.at_level(logging.WARNING, logger="beats_cli"):
        playlist = await enricher.enrich(catalog)

    assert [t.title for t in playlist] == ["T1", "T2", "T3"]
    assert enricher.stats.tracks_enriched == 3
    assert enricher.stats.covers_missing == 3
    assert sum("No embedded cover art" in r.getMessage() for r in caplog.records) == 3


async def test_tracks_are_fetched_concurrently(catalog, resources):
    gates = {t.src: asyncio.Event() for t in catalog}
    fetcher = FakeFetcher({t.src: payload(t.id.encode()) for t in catalog}, gates=gates)
    parser = FakeParser({t.id.encode(): metadata() for t in catalog})
    enricher = make_enricher(fetcher, parser, resources)
    task = asyncio.create_task(enricher.enrich(catalog))

    await asyncio.sleep(0.01)
    assert sorted(fetcher.started) == sorted(t.src for t in catalog)
    assert not task.done()

    # Completion order is irrelevant; the result keeps catalog order.
    for src in reversed(list(gates)):
        gates[src].set()
        await asyncio.sleep(0)
    playlist = await task
    assert [t.id for t in playlist] == ["1", "2", "3"]


async def test_cancellation_before_join_discards_results_and_revokes_covers(
    catalog, resources
):
    gates = {"mem://three.mp3": asyncio.Event()}
    fetcher = FakeFetcher({t.src: payload(t.id.encode()) for t in catalog}, gates=gates)
    parser = FakeParser(
        {t.id.encode(): metadata(pictures=[picture(t.id.encode())]) for t in catalog}
    )
    token = CancellationToken()
    enricher = make_enricher(fetcher, parser, resources)
    task = asyncio.create_task(enricher.enrich(catalog, token))

    for _ in range(50):
        await asyncio.sleep(0.01)
        if len(resources) == 2:
            break
    assert len(resources) == 2
    created = set(resources.handles)

    token.cancel()
    result = await task

    assert result is None
    assert len(resources) == 0
    assert all(resources.resolve(handle) is None for handle in created)
    assert enricher.stats.cancelled


async def test_cancelling_the_enrich_task_revokes_created_covers(catalog, resources):
    gates = {"mem://two.mp3": asyncio.Event()}
    fetcher = FakeFetcher({t.src: payload(t.id.encode()) for t in catalog}, gates=gates)
    parser = FakeParser(
        {t.id.encode(): metadata(pictures=[picture()]) for t in catalog}
    )
    token = CancellationToken()
    task = asyncio.create_task(
        make_enricher(fetcher, parser, resources).enrich(catalog, token)
    )

    for _ in range(50):
        await asyncio.sleep(0.01)
        if len(resources) == 2:
            break
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert token.cancelled
    assert len(resources) == 0


async def test_already_cancelled_token_does_no_work(catalog, resources):
    fetcher = FakeFetcher({})
    token = CancellationToken()
    token.cancel()

    enricher = make_enricher(fetcher, FakeParser(), resources)
    result = await enricher.enrich(catalog, token)

    assert result is None
    assert fetcher.started == []


async def test_stalled_track_falls_back_after_track_timeout(catalog, resources):
    gates = {"mem://two.mp3": asyncio.Event()}
    fetcher = FakeFetcher({t.src: payload(t.id.encode()) for t in catalog}, gates=gates)
    parser = FakeParser({t.id.encode(): metadata(title=f"T{t.id}") for t in catalog})
    enricher = make_enricher(fetcher, parser, resources, track_timeout=0.05)

    playlist = await enricher.enrich(catalog)

    assert [t.title for t in playlist] == ["T1", "Catalog Two", "T3"]
    assert "timed out" in enricher.stats.failures["2"]


async def test_empty_catalog_yields_empty_playlist(resources):
    from beats_cli.models.track import TrackCatalog

    playlist = await make_enricher(FakeFetcher(), FakeParser(), resources).enrich(
        TrackCatalog()
    )
    assert playlist == []


def test_merge_metadata_keeps_length_and_never_empties_fields():
    track = Track("9", "Default", "Someone", "x.mp3")

    merged = merge_metadata(track, metadata(title="", artist="", length=201.5))

    assert merged.title == "Default"
    assert merged.artist == "Someone"
    assert merged.length == 201.5
    assert merged.cover == DEFAULT_COVER
