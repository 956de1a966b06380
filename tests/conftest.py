"""Shared test fixtures for the streamscout test suite."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from streamscout.domain.entities import (
    FeatureSet,
    FetchResponse,
    HlsStream,
    MediaRequest,
    RunContext,
    get_target_features,
)
from streamscout.domain.entities.run import ProxyConfig
from streamscout.infrastructure.events import RecordingEventSink
from streamscout.infrastructure.validation.http_stream_validator import (
    AcceptAllValidator,
)

ScrapeFn = Callable[[Any], Awaitable[Any]]

PROXY_BASE = "https://proxy.test/"

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def movie_request() -> MediaRequest:
    """Movie request with catalog metadata."""
    return MediaRequest.movie("42", title="Example Movie", release_year=2020)


@pytest.fixture()
def show_request() -> MediaRequest:
    """Episode request (season 1, episode 2)."""
    return MediaRequest.show("7", 1, 2, title="Example Show")


@pytest.fixture()
def native_features() -> FeatureSet:
    """Feature set of a native player without stream proxying."""
    return get_target_features("native")


@pytest.fixture()
def hls_stream() -> HlsStream:
    """CORS-allowed HLS stream that needs no proxy."""
    return HlsStream(
        id="primary",
        playlist="https://cdn.test/master.m3u8",
        flags={"cors-allowed"},
    )


# ---------------------------------------------------------------------------
# Scrape function helpers
# ---------------------------------------------------------------------------


def _returning(output: Any) -> ScrapeFn:
    async def scrape(ctx: Any) -> Any:
        return output

    return scrape


def _raising(exc: BaseException) -> ScrapeFn:
    async def scrape(ctx: Any) -> Any:
        raise exc

    return scrape


@pytest.fixture()
def returning() -> Callable[[Any], ScrapeFn]:
    """Build a scrape callable that returns a fixed output."""
    return _returning


@pytest.fixture()
def raising() -> Callable[[BaseException], ScrapeFn]:
    """Build a scrape callable that raises the given exception."""
    return _raising


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_fetcher() -> AsyncMock:
    """Mock FetcherPort answering every request with HTTP 200."""
    fetcher = AsyncMock()
    fetcher.fetch = AsyncMock(return_value="")
    fetcher.full = AsyncMock(
        return_value=FetchResponse(status=200, body="", final_url="https://cdn.test/")
    )
    return fetcher


@pytest.fixture()
def recording_sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture()
def accept_all() -> AcceptAllValidator:
    return AcceptAllValidator()


@pytest.fixture()
def run_context(
    mock_fetcher: AsyncMock,
    native_features: FeatureSet,
    recording_sink: RecordingEventSink,
) -> RunContext:
    """Run context without proxying, recording every event."""
    return RunContext(
        fetcher=mock_fetcher,
        proxied_fetcher=mock_fetcher,
        features=native_features,
        events=recording_sink,
    )


@pytest.fixture()
def proxied_run_context(
    mock_fetcher: AsyncMock,
    recording_sink: RecordingEventSink,
) -> RunContext:
    """Run context that routes header-bearing streams through a proxy."""
    return RunContext(
        fetcher=mock_fetcher,
        proxied_fetcher=mock_fetcher,
        features=get_target_features("native", proxy_streams=True),
        proxy=ProxyConfig(base_url=PROXY_BASE),
        events=recording_sink,
    )
