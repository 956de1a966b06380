"""Media request value objects.

Pure value objects with no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

MediaType = Literal["movie", "show"]

MEDIA_TYPES: tuple[MediaType, ...] = ("movie", "show")


@dataclass(frozen=True)
class SeasonRef:
    """Season of a show, as known to the catalog."""

    number: int
    tmdb_id: str = ""
    title: str = ""


@dataclass(frozen=True)
class EpisodeRef:
    """Episode of a season, as known to the catalog."""

    number: int
    tmdb_id: str = ""
    title: str = ""


@dataclass(frozen=True)
class MediaRequest:
    """What the caller wants a stream for.

    Created once per resolution call from catalog data.  Shows carry a
    season and an episode (positive numbers); movies carry neither.
    """

    type: MediaType
    tmdb_id: str
    title: str = ""
    release_year: int | None = None
    imdb_id: str | None = None
    season: SeasonRef | None = None
    episode: EpisodeRef | None = None

    def __post_init__(self) -> None:
        if self.type not in MEDIA_TYPES:
            raise ValueError(f"Unknown media type: {self.type!r}")
        if not str(self.tmdb_id):
            raise ValueError("tmdb_id must not be empty")

        if self.type == "show":
            if self.season is None or self.episode is None:
                raise ValueError("show requests need a season and an episode")
            if self.season.number < 1 or self.episode.number < 1:
                raise ValueError("season and episode numbers must be positive")
        elif self.season is not None or self.episode is not None:
            raise ValueError("movie requests cannot carry season/episode")

    @classmethod
    def movie(
        cls,
        tmdb_id: str | int,
        *,
        title: str = "",
        release_year: int | None = None,
        imdb_id: str | None = None,
    ) -> MediaRequest:
        return cls(
            type="movie",
            tmdb_id=str(tmdb_id),
            title=title,
            release_year=release_year,
            imdb_id=imdb_id,
        )

    @classmethod
    def show(
        cls,
        tmdb_id: str | int,
        season: int,
        episode: int,
        *,
        title: str = "",
        release_year: int | None = None,
        imdb_id: str | None = None,
    ) -> MediaRequest:
        return cls(
            type="show",
            tmdb_id=str(tmdb_id),
            title=title,
            release_year=release_year,
            imdb_id=imdb_id,
            season=SeasonRef(number=season),
            episode=EpisodeRef(number=episode),
        )

    @property
    def is_show(self) -> bool:
        return self.type == "show"
