"""
Single-shot byte fetching for track sources, over HTTP or from local files.
"""

import asyncio
import logging
import mimetypes
import os
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

import aiofiles
import aiohttp

from beats_cli.exceptions import EmptyPayloadError, FetchError

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(
    max_connections: int = 8, timeout_s: float = 30.0
) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for track fetches.

    Only one connection pool is created for the lifetime of the application run.

    Args:
        max_connections: Maximum concurrent connections per host.
        timeout_s: Total timeout for a single request (0 disables it).
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_connections * 2,
            limit_per_host=max_connections,
            ttl_dns_cache=600,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(
            total=timeout_s or None, sock_connect=15, sock_read=timeout_s or None
        )
        _connection_pool = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            headers={"Accept-Encoding": "gzip, deflate, br"},
        )
        log.debug(f"Created fetch pool with limit_per_host={max_connections}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared fetch connection pool closed.")


@dataclass(frozen=True)
class FetchedPayload:
    """Raw bytes of a track and the MIME type reported (or guessed) for them."""

    data: bytes
    mime_type: str | None

    @property
    def size(self) -> int:
        return len(self.data)


def guess_mime_type(src: str) -> str | None:
    mime_type, _ = mimetypes.guess_type(urlparse(src).path or src)
    return mime_type


def is_remote(src: str) -> bool:
    return urlparse(src).scheme in ("http", "https")


def local_path(src: str) -> str:
    """Turns a `file://` URL or plain path into a filesystem path."""
    parsed = urlparse(src)
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return src


class TrackFetcher:
    """Fetches the raw bytes behind a track locator, retrying transient errors."""

    def __init__(
        self,
        max_attempts: int = 2,
        base_delay: float = 0.5,
        max_connections: int = 8,
        timeout_s: float = 30.0,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_connections = max_connections
        self.timeout_s = timeout_s

    async def fetch(self, src: str) -> FetchedPayload:
        """
        Fetches `src` in one shot.

        Raises:
            FetchError: The transport reported a non-success status.
            EmptyPayloadError: The source was reachable but contained no bytes.
        """
        if is_remote(src):
            payload = await self._fetch_remote(src)
        else:
            payload = await self._fetch_local(src)

        if not payload.size:
            raise EmptyPayloadError(f"Empty audio payload for '{src}'")
        return payload

    async def _fetch_remote(self, src: str) -> FetchedPayload:
        last_exception: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                session = await get_connection_pool(self.max_connections, self.timeout_s)
                async with session.get(src, allow_redirects=True) as response:
                    if response.status >= 400:
                        raise FetchError(src, response.status, response.reason or "")
                    data = await response.read()
                    mime_type = response.content_type
                    if (
                        "Content-Type" not in response.headers
                        or mime_type == "application/octet-stream"
                    ):
                        mime_type = guess_mime_type(src)
                    return FetchedPayload(data, mime_type)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e
                log.debug(
                    f"Fetch attempt {attempt}/{self.max_attempts} for "
                    f"'{os.path.basename(src)}' failed: {e}. Retrying..."
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))

        raise FetchError(src, reason=str(last_exception)) from last_exception

    async def _fetch_local(self, src: str) -> FetchedPayload:
        path = local_path(src)
        is_file = await asyncio.to_thread(os.path.isfile, path)
        if not is_file:
            raise FetchError(src, 404, "Not Found")
        try:
            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except OSError as e:
            raise FetchError(src, reason=str(e)) from e
        return FetchedPayload(data, guess_mime_type(path))
