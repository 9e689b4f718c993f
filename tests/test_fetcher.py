"""Tests for TrackFetcher"""

import pytest
from aiohttp import web
from aiohttp import test_utils

from beats_cli.exceptions import EmptyPayloadError, FetchError
from beats_cli.media.fetcher import (
    TrackFetcher,
    close_connection_pool,
    guess_mime_type,
    is_remote,
)


@pytest.fixture
def fetcher():
    return TrackFetcher(max_attempts=2, base_delay=0.01, timeout_s=5)


@pytest.fixture
async def server():
    async def track(request):
        return web.Response(body=b"ID3-audio-bytes", content_type="audio/mpeg")

    async def empty(request):
        return web.Response(body=b"", content_type="audio/mpeg")

    async def untyped(request):
        return web.Response(body=b"untyped-bytes")

    async def missing(request):
        return web.Response(status=404)

    app = web.Application()
    app.router.add_get("/song.mp3", track)
    app.router.add_get("/empty.mp3", empty)
    app.router.add_get("/missing.mp3", missing)
    app.router.add_get("/untyped.mp3", untyped)
    server = test_utils.TestServer(app)
    await server.start_server()
    yield server
    await close_connection_pool()
    await server.close()


async def test_reads_local_file(fetcher, tmp_path):
    path = tmp_path / "Yellow.mp3"
    path.write_bytes(b"\xff\xfb\x90\x00data")

    payload = await fetcher.fetch(str(path))

    assert payload.data == b"\xff\xfb\x90\x00data"
    assert payload.mime_type == "audio/mpeg"
    assert payload.size == 8


async def test_reads_file_url(fetcher, tmp_path):
    path = tmp_path / "Do I Wanna Know.mp3"
    path.write_bytes(b"abc")

    payload = await fetcher.fetch(path.as_uri())

    assert payload.data == b"abc"


async def test_missing_local_file_is_a_404(fetcher, tmp_path):
    with pytest.raises(FetchError) as exc_info:
        await fetcher.fetch(str(tmp_path / "nope.mp3"))

    assert exc_info.value.status == 404


async def test_empty_local_file_is_rejected(fetcher, tmp_path):
    path = tmp_path / "empty.mp3"
    path.write_bytes(b"")

    with pytest.raises(EmptyPayloadError):
        await fetcher.fetch(str(path))


async def test_fetches_remote_track(fetcher, server):
    payload = await fetcher.fetch(str(server.make_url("/song.mp3")))

    assert payload.data == b"ID3-audio-bytes"
    assert payload.mime_type == "audio/mpeg"


async def test_remote_error_status_raises_fetch_error(fetcher, server):
    with pytest.raises(FetchError) as exc_info:
        await fetcher.fetch(str(server.make_url("/missing.mp3")))

    assert exc_info.value.status == 404
    assert "404" in str(exc_info.value)


async def test_remote_empty_body_is_rejected(fetcher, server):
    with pytest.raises(EmptyPayloadError):
        await fetcher.fetch(str(server.make_url("/empty.mp3")))


async def test_untyped_response_falls_back_to_guessed_mime_type(fetcher, server):
    payload = await fetcher.fetch(str(server.make_url("/untyped.mp3")))

    assert payload.data == b"untyped-bytes"
    assert payload.mime_type == "audio/mpeg"


@pytest.mark.parametrize(
    "src, remote, mime",
    [
        ("https://cdn.example.com/a/Yellow.mp3", True, "audio/mpeg"),
        ("audio/Yellow.mp3", False, "audio/mpeg"),
        ("file:///music/Matter%20(Reprise).mp3", False, "audio/mpeg"),
    ],
)
def test_locator_helpers(src, remote, mime):
    assert is_remote(src) is remote
    assert guess_mime_type(src) == mime
