"""Contexts handed to the runner, to providers and to the validator."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .features import FeatureSet
from .media import MediaRequest
from .run import ProxyConfig

if TYPE_CHECKING:
    from streamscout.domain.ports.event_sink import EventSinkPort
    from streamscout.domain.ports.fetcher import FetcherPort

ProgressFn = Callable[[float], None]


def _ignore_progress(_: float) -> None:
    return None


@dataclass(frozen=True)
class RunContext:
    """Everything one resolution call needs besides the registry.

    Lifetime = one resolution call.
    """

    fetcher: FetcherPort
    proxied_fetcher: FetcherPort
    features: FeatureSet
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    events: EventSinkPort | None = None


@dataclass(frozen=True)
class ScrapeContext:
    """Base context every provider scrape receives.

    ``proxy`` is the run's proxy endpoint config, for providers that
    build m3u8-proxy URLs themselves.
    """

    fetcher: FetcherPort
    proxied_fetcher: FetcherPort
    features: FeatureSet
    progress: ProgressFn = _ignore_progress
    proxy: ProxyConfig = field(default_factory=ProxyConfig)


@dataclass(frozen=True)
class MediaScrapeContext(ScrapeContext):
    """Context for ``scrape_movie`` / ``scrape_show``."""

    media: MediaRequest | None = None


@dataclass(frozen=True)
class EmbedScrapeContext(ScrapeContext):
    """Context for an embed's ``scrape``."""

    url: str = ""


MovieScrapeContext = MediaScrapeContext
ShowScrapeContext = MediaScrapeContext


@dataclass(frozen=True)
class ValidationContext:
    """What a stream validator may use to probe a stream."""

    fetcher: FetcherPort
    proxied_fetcher: FetcherPort
    provider_id: str
    timeout: float | None = None
