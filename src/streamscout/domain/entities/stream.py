"""Stream descriptors produced by providers.

Two stream types:
  - HLS: m3u8 playlist URL
  - File: direct URL(s) keyed by quality label

Streams are transient: produced per resolution attempt, never persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal, Union

from .features import Flag, normalize_flags

CaptionType = Literal["srt", "vtt"]
Quality = Literal["unknown", "360", "480", "720", "1080", "4k"]

QUALITIES: tuple[Quality, ...] = ("unknown", "360", "480", "720", "1080", "4k")


def caption_type_from_url(url: str) -> CaptionType | None:
    """Guess the caption format from the URL's extension."""
    path = url.split("?", 1)[0].split("#", 1)[0].lower()
    if path.endswith(".srt"):
        return "srt"
    if path.endswith(".vtt"):
        return "vtt"
    return None


@dataclass(frozen=True)
class Caption:
    id: str
    url: str
    language: str  # ISO 639-1 code, e.g. "en"
    type: CaptionType = "srt"
    has_cors_restrictions: bool = False


@dataclass(frozen=True)
class StreamFile:
    url: str
    type: Literal["mp4"] = "mp4"


@dataclass(frozen=True)
class HlsStream:
    id: str
    playlist: str
    flags: frozenset[str] = field(default_factory=frozenset)
    headers: Mapping[str, str] = field(default_factory=dict)
    captions: tuple[Caption, ...] = ()
    # Sent on validation probes only, never required for playback
    preferred_headers: Mapping[str, str] = field(default_factory=dict)
    proxy_depth: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "flags", normalize_flags(self.flags))
        object.__setattr__(self, "captions", tuple(self.captions))

    @property
    def kind(self) -> Literal["hls"]:
        return "hls"

    @property
    def is_cors_allowed(self) -> bool:
        return Flag.CORS_ALLOWED.value in self.flags


@dataclass(frozen=True)
class FileStream:
    id: str
    qualities: Mapping[str, StreamFile]
    flags: frozenset[str] = field(default_factory=frozenset)
    headers: Mapping[str, str] = field(default_factory=dict)
    captions: tuple[Caption, ...] = ()
    preferred_headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "flags", normalize_flags(self.flags))
        object.__setattr__(self, "captions", tuple(self.captions))

    @property
    def kind(self) -> Literal["file"]:
        return "file"

    @property
    def is_cors_allowed(self) -> bool:
        return Flag.CORS_ALLOWED.value in self.flags


Stream = Union[HlsStream, FileStream]


def is_valid_stream(stream: Stream) -> bool:
    """Structural check: does the stream point anywhere at all?"""
    if isinstance(stream, HlsStream):
        return bool(stream.playlist)
    if isinstance(stream, FileStream):
        return any(
            label in QUALITIES and f.url for label, f in stream.qualities.items()
        )
    return False


def stream_to_dict(stream: Stream) -> dict[str, object]:
    """JSON-serializable view of a stream (for APIs and logs)."""
    out: dict[str, object] = {
        "id": stream.id,
        "type": stream.kind,
        "flags": sorted(stream.flags),
        "captions": [
            {
                "id": c.id,
                "url": c.url,
                "language": c.language,
                "type": c.type,
                "hasCorsRestrictions": c.has_cors_restrictions,
            }
            for c in stream.captions
        ],
    }
    if stream.headers:
        out["headers"] = dict(stream.headers)
    if isinstance(stream, HlsStream):
        out["playlist"] = stream.playlist
    else:
        out["qualities"] = {
            label: {"type": f.type, "url": f.url}
            for label, f in stream.qualities.items()
        }
    return out


@dataclass(frozen=True)
class EmbedReference:
    """Hand-off from a source to an embed scraper."""

    embed_id: str  # must match a registered embed id
    url: str


@dataclass(frozen=True)
class SourceOutput:
    """What a source scrape returns: direct streams and/or embed hand-offs."""

    streams: tuple[Stream, ...] = ()
    embeds: tuple[EmbedReference, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "streams", tuple(self.streams))
        object.__setattr__(self, "embeds", tuple(self.embeds))

    @property
    def is_empty(self) -> bool:
        return not self.streams and not self.embeds


@dataclass(frozen=True)
class EmbedOutput:
    streams: tuple[Stream, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "streams", tuple(self.streams))
