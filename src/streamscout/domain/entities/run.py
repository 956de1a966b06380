"""Run inputs and outputs: overrides, proxy settings, outcome."""

from __future__ import annotations

from dataclasses import dataclass

from .stream import Stream, stream_to_dict


@dataclass(frozen=True)
class ProxyConfig:
    """Where header-bearing or CORS-restricted streams get routed.

    Owned by the caller and carried on each run's context; two runs
    with different endpoints never share state.  ``base_url=None``
    disables stream proxying entirely.
    """

    base_url: str | None = None
    m3u8_proxy_url: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


@dataclass(frozen=True)
class RunOverrides:
    """Per-call ordering and budget overrides.

    Ids named in ``source_order``/``embed_order`` are tried first, in the
    listed order; the rest follow in rank order.
    """

    source_order: tuple[str, ...] = ()
    embed_order: tuple[str, ...] = ()
    timeout_ms: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_order", tuple(self.source_order))
        object.__setattr__(self, "embed_order", tuple(self.embed_order))
        if self.timeout_ms is not None and self.timeout_ms < 0:
            raise ValueError("timeout_ms must be >= 0")


@dataclass(frozen=True)
class RunOutcome:
    """A validated stream plus where it came from."""

    source_id: str
    stream: Stream
    embed_id: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "sourceId": self.source_id,
            "embedId": self.embed_id,
            "stream": stream_to_dict(self.stream),
        }
