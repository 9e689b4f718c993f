"""
Track descriptors and the immutable catalog they are created from.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

# Placeholder artwork shown until (or instead of) an embedded cover.
DEFAULT_COVER = (
    "data:image/svg+xml;utf8,"
    "<svg xmlns='http://www.w3.org/2000/svg' width='64' height='64' viewBox='0 0 64 64'>"
    "<rect width='64' height='64' rx='10' fill='%231e293b'/>"
    "<path d='M26 44V22l20-4v22' fill='none' stroke='%2394a3b8' stroke-width='3'/>"
    "<circle cx='22' cy='44' r='5' fill='%2394a3b8'/>"
    "<circle cx='42' cy='40' r='5' fill='%2394a3b8'/>"
    "</svg>"
)


@dataclass(frozen=True)
class Track:
    """A playable item with its display metadata."""

    id: str
    title: str
    artist: str
    src: str
    cover: str = DEFAULT_COVER
    length: float = 0.0


@dataclass(frozen=True)
class TrackCatalog:
    """The fixed, ordered list of tracks a session starts from."""

    tracks: tuple[Track, ...] = field(default_factory=tuple)

    def __post_init__(self):
        seen: set[str] = set()
        for track in self.tracks:
            if track.id in seen:
                raise ValueError(f"Duplicate track id in catalog: {track.id!r}")
            seen.add(track.id)

    @classmethod
    def from_tracks(cls, tracks: Iterable[Track]) -> "TrackCatalog":
        return cls(tuple(tracks))

    @classmethod
    def default(cls, base_dir: str = "audio") -> "TrackCatalog":
        """The built-in three-track catalog, sourced from `base_dir`."""
        return cls.from_tracks(
            [
                Track("1", "Yellow", "Coldplay", f"{base_dir}/Yellow.mp3"),
                Track(
                    "2",
                    "Mind Over Matter (Reprise)",
                    "Young the Giant",
                    f"{base_dir}/Mind Over Matter (Reprise).mp3",
                ),
                Track(
                    "3",
                    "Do I Wanna Know",
                    "Artic Monkeys",
                    f"{base_dir}/Do I Wanna Know.mp3",
                ),
            ]
        )

    def initial_playlist(self) -> list[Track]:
        """Tracks as shown before enrichment: catalog values plus a cover."""
        return [
            track if track.cover else replace(track, cover=DEFAULT_COVER)
            for track in self.tracks
        ]

    def __iter__(self) -> Iterator[Track]:
        return iter(self.tracks)

    def __len__(self) -> int:
        return len(self.tracks)

    def __getitem__(self, index: int) -> Track:
        return self.tracks[index]
