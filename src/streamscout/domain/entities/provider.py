"""Source and embed provider definitions.

A source turns a media request into streams or embed hand-offs; an embed
turns an opaque URL into streams.  Source capabilities are inferred once,
at construction, from which scrape callables were supplied.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Union

from .features import Flag, normalize_flags
from .media import MediaType
from .stream import EmbedOutput, SourceOutput

if TYPE_CHECKING:
    from .context import EmbedScrapeContext, MediaScrapeContext

SourceScrapeFn = Callable[["MediaScrapeContext"], Awaitable[SourceOutput]]
EmbedScrapeFn = Callable[["EmbedScrapeContext"], Awaitable[EmbedOutput]]

ProviderKind = Literal["source", "embed"]


@dataclass(frozen=True)
class Source:
    id: str
    name: str
    rank: int
    flags: frozenset[str] = field(default_factory=frozenset)
    disabled: bool = False
    external_source: bool = False
    scrape_movie: SourceScrapeFn | None = field(default=None, repr=False)
    scrape_show: SourceScrapeFn | None = field(default=None, repr=False)
    capabilities: frozenset[MediaType] = field(init=False)

    def __post_init__(self) -> None:
        caps: set[MediaType] = set()
        if self.scrape_movie is not None:
            caps.add("movie")
        if self.scrape_show is not None:
            caps.add("show")
        object.__setattr__(self, "flags", normalize_flags(self.flags))
        object.__setattr__(self, "capabilities", frozenset(caps))

    @property
    def kind(self) -> ProviderKind:
        return "source"

    def supports(self, media_type: MediaType) -> bool:
        return media_type in self.capabilities

    def scraper_for(self, media_type: MediaType) -> SourceScrapeFn:
        """Return the scrape callable for *media_type*.

        Raises ``LookupError`` when the source lacks that capability.
        """
        fn = self.scrape_movie if media_type == "movie" else self.scrape_show
        if fn is None or media_type not in self.capabilities:
            raise LookupError(f"Source '{self.id}' cannot scrape {media_type}")
        return fn


@dataclass(frozen=True)
class Embed:
    id: str
    name: str
    rank: int
    scrape: EmbedScrapeFn = field(repr=False)
    flags: frozenset[str] = field(default_factory=frozenset)
    disabled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "flags", normalize_flags(self.flags))

    @property
    def kind(self) -> ProviderKind:
        return "embed"

    @property
    def capabilities(self) -> frozenset[MediaType]:
        return frozenset()


Provider = Union[Source, Embed]


def make_source(
    *,
    id: str,
    name: str,
    rank: int,
    flags: Iterable[str | Flag] = (),
    disabled: bool = False,
    external_source: bool = False,
    scrape_movie: SourceScrapeFn | None = None,
    scrape_show: SourceScrapeFn | None = None,
) -> Source:
    return Source(
        id=id,
        name=name,
        rank=rank,
        flags=normalize_flags(flags),
        disabled=disabled,
        external_source=external_source,
        scrape_movie=scrape_movie,
        scrape_show=scrape_show,
    )


def make_embed(
    *,
    id: str,
    name: str,
    rank: int,
    scrape: EmbedScrapeFn,
    flags: Iterable[str | Flag] = (),
    disabled: bool = False,
) -> Embed:
    return Embed(
        id=id,
        name=name,
        rank=rank,
        scrape=scrape,
        flags=normalize_flags(flags),
        disabled=disabled,
    )


@dataclass(frozen=True)
class ProviderMeta:
    """Introspection view of a provider (no callables)."""

    kind: ProviderKind
    id: str
    name: str
    rank: int
    flags: tuple[str, ...]
    media_types: tuple[MediaType, ...] | None = None

    @classmethod
    def of(cls, provider: Provider) -> ProviderMeta:
        if isinstance(provider, Source):
            return cls(
                kind="source",
                id=provider.id,
                name=provider.name,
                rank=provider.rank,
                flags=tuple(sorted(provider.flags)),
                media_types=tuple(
                    t for t in ("movie", "show") if t in provider.capabilities
                ),
            )
        return cls(
            kind="embed",
            id=provider.id,
            name=provider.name,
            rank=provider.rank,
            flags=tuple(sorted(provider.flags)),
        )

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "type": self.kind,
            "id": self.id,
            "name": self.name,
            "rank": self.rank,
            "flags": list(self.flags),
        }
        if self.media_types is not None:
            out["mediaTypes"] = list(self.media_types)
        return out


@dataclass(frozen=True)
class ProviderSelection:
    """Providers usable by a run, rank-descending."""

    sources: tuple[Source, ...]
    embeds: tuple[Embed, ...]

    def get_embed(self, embed_id: str) -> Embed | None:
        return next((e for e in self.embeds if e.id == embed_id), None)

    def get_source(self, source_id: str) -> Source | None:
        return next((s for s in self.sources if s.id == source_id), None)
