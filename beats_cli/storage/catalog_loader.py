"""
Loads a track catalog from a JSON file.

The file holds an array of objects with `id`, `title`, `artist` and `src`
keys (and an optional `cover`). Relative `src` paths are resolved against the
catalog file's directory; URLs are kept as they are.
"""

import json
import logging
from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

from beats_cli.exceptions import CatalogError
from beats_cli.models.track import DEFAULT_COVER, Track, TrackCatalog

log = logging.getLogger(__name__)


class CatalogEntry(BaseModel):
    """One track descriptor as written in a catalog file."""

    id: str
    title: str
    artist: str
    src: str
    cover: str = DEFAULT_COVER

    class Config:
        str_strip_whitespace = True
        coerce_numbers_to_str = True

    @field_validator("id", "title", "artist", "src")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v


_entries_adapter = TypeAdapter(list[CatalogEntry])


def _resolve_src(src: str, base_dir: Path) -> str:
    if urlparse(src).scheme in ("http", "https", "file"):
        return src
    path = Path(src).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)


def parse_catalog(raw: object, base_dir: Path) -> TrackCatalog:
    """Validates decoded catalog JSON and builds the catalog."""
    try:
        entries = _entries_adapter.validate_python(raw)
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog:\n{e}") from e

    try:
        return TrackCatalog.from_tracks(
            Track(
                id=entry.id,
                title=entry.title,
                artist=entry.artist,
                src=_resolve_src(entry.src, base_dir),
                cover=entry.cover or DEFAULT_COVER,
            )
            for entry in entries
        )
    except ValueError as e:
        raise CatalogError(str(e)) from e


def load_catalog(path: Path | str) -> TrackCatalog:
    """
    Reads and validates a catalog file.

    Raises:
        CatalogError: If the file is missing, is not valid JSON, or fails validation.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise CatalogError(f"Catalog file not found at '{path}'.")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CatalogError(f"Could not read catalog '{path}': {e}") from e

    catalog = parse_catalog(raw, path.parent)
    log.debug(f"Loaded {len(catalog)} tracks from catalog '{path}'.")
    return catalog
