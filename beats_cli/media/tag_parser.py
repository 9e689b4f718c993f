"""
Reads display metadata and embedded artwork from in-memory audio payloads.

The enrichment pipeline only depends on the `TagParser` protocol;
`MutagenTagParser` is the implementation used by the application.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

import mutagen
from mutagen.flac import FLAC, Picture
from mutagen.id3 import ID3
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4, MP4Cover
from mutagen.oggopus import OggOpus
from mutagen.oggvorbis import OggVorbis

from beats_cli.exceptions import ParseError

log = logging.getLogger(__name__)

# Containers to try explicitly when content sniffing fails.
MIME_FALLBACKS = {
    "audio/mpeg": MP3,
    "audio/mp3": MP3,
    "audio/flac": FLAC,
    "audio/x-flac": FLAC,
    "audio/mp4": MP4,
    "audio/aac": MP4,
    "audio/x-m4a": MP4,
    "audio/ogg": OggVorbis,
    "audio/opus": OggOpus,
}


@dataclass(frozen=True)
class EmbeddedPicture:
    data: bytes = field(repr=False)
    format: Optional[str] = None


@dataclass(frozen=True)
class ParsedMetadata:
    """Structured tag values; every field is optional."""

    title: Optional[str] = None
    artist: Optional[str] = None
    artists: List[str] = field(default_factory=list)
    pictures: List[EmbeddedPicture] = field(default_factory=list)
    length: float = 0.0


class TagParser(Protocol):
    """Narrow capability the enricher needs from a tag-decoding library."""

    def parse(self, data: bytes, mime_hint: str) -> ParsedMetadata: ...


def _clean(values: Any) -> List[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def _single(values: List[str]) -> Optional[str]:
    return values[0] if len(values) == 1 else None


class MutagenTagParser:
    """Tag parser backed by mutagen; handles ID3, FLAC, Ogg and MP4 tags."""

    def parse(self, data: bytes, mime_hint: str) -> ParsedMetadata:
        audio = self._open(data, mime_hint)
        tags = audio.tags

        if isinstance(tags, ID3):
            title, artists, pictures = self._read_id3(tags)
        elif isinstance(audio, MP4):
            title, artists, pictures = self._read_mp4(tags)
        else:
            title, artists, pictures = self._read_vorbis(audio, tags)

        length = float(audio.info.length) if getattr(audio, "info", None) else 0.0
        return ParsedMetadata(
            title=title,
            artist=_single(artists),
            artists=artists,
            pictures=pictures,
            length=max(0.0, length),
        )

    def _open(self, data: bytes, mime_hint: str):
        mime = (mime_hint or "").split(";")[0].strip().lower()
        try:
            audio = mutagen.File(io.BytesIO(data))
            if audio is None and (kind := MIME_FALLBACKS.get(mime)):
                log.debug(f"Content sniffing failed, retrying as {kind.__name__}")
                audio = kind(io.BytesIO(data))
        except mutagen.MutagenError as e:
            raise ParseError(f"Malformed tag data ({mime or 'unknown type'}): {e}") from e

        if audio is None:
            raise ParseError(f"Unsupported audio container ({mime or 'unknown type'})")
        return audio

    @staticmethod
    def _read_id3(tags: ID3):
        title_frame = tags.get("TIT2")
        artist_frame = tags.get("TPE1")
        title = _clean(title_frame.text if title_frame else None)
        artists = _clean(artist_frame.text if artist_frame else None)
        pictures = [
            EmbeddedPicture(frame.data, frame.mime or None)
            for frame in tags.getall("APIC")
            if frame.data
        ]
        return (title[0] if title else None), artists, pictures

    @staticmethod
    def _read_mp4(tags):
        if tags is None:
            return None, [], []
        title = _clean(tags.get("\xa9nam"))
        artists = _clean(tags.get("\xa9ART"))
        pictures = []
        for cover in tags.get("covr", []):
            fmt = "image/png" if cover.imageformat == MP4Cover.FORMAT_PNG else "image/jpeg"
            pictures.append(EmbeddedPicture(bytes(cover), fmt))
        return (title[0] if title else None), artists, pictures

    @staticmethod
    def _read_vorbis(audio, tags):
        if tags is None:
            return None, [], list(_flac_pictures(audio))
        title = _clean(tags.get("title"))
        artists = _clean(tags.get("artist"))
        pictures = list(_flac_pictures(audio))
        for encoded in tags.get("metadata_block_picture", []):
            try:
                picture = Picture(base64.b64decode(encoded))
            except (binascii.Error, mutagen.MutagenError) as e:
                log.debug(f"Skipping unreadable embedded picture: {e}")
                continue
            pictures.append(EmbeddedPicture(picture.data, picture.mime or None))
        return (title[0] if title else None), artists, pictures


def _flac_pictures(audio):
    for picture in getattr(audio, "pictures", None) or []:
        if picture.data:
            yield EmbeddedPicture(picture.data, picture.mime or None)
