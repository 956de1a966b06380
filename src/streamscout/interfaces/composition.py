"""Composition root: wires config into a ready ProviderControls."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from streamscout.application.controls import ProviderControls, build_providers
from streamscout.domain.ports.event_sink import EventSinkPort
from streamscout.domain.ports.fetcher import FetcherPort
from streamscout.domain.ports.stream_validator import StreamValidatorPort
from streamscout.infrastructure.config.schema import AppConfig
from streamscout.infrastructure.events import LoggingEventSink
from streamscout.infrastructure.fetchers import (
    DEFAULT_USER_AGENT,
    HttpxFetcher,
    SimpleProxyFetcher,
)
from streamscout.infrastructure.metrics import ResolutionMetrics
from streamscout.infrastructure.providers import load_providers
from streamscout.infrastructure.validation.http_stream_validator import (
    AcceptAllValidator,
    HttpStreamValidator,
)
from streamscout.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def create_http_client(config: AppConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent or DEFAULT_USER_AGENT},
        follow_redirects=config.http_follow_redirects,
    )


def _create_validator(config: AppConfig) -> StreamValidatorPort:
    if not config.validation.enabled:
        log.info("stream_validation_disabled")
        return AcceptAllValidator()
    return HttpStreamValidator(
        skip_ids=config.validation.skip_ids,
        timeout_seconds=config.validation.timeout_seconds,
    )


def build_controls(
    config: AppConfig,
    http_client: httpx.AsyncClient,
    *,
    metrics: ResolutionMetrics | None = None,
    events: EventSinkPort | None = None,
) -> ProviderControls:
    """Load providers from ``config.provider_dir`` and build the controls.

    Raises:
        ProviderLoadError: a provider module failed to import.
        ProviderConfigError: duplicate provider ids or ranks.
    """
    loaded = load_providers(config.provider_dir)

    fetcher: FetcherPort = HttpxFetcher(
        http_client, default_timeout=config.http_timeout_seconds
    )
    proxied_fetcher: FetcherPort = fetcher
    if config.fetch_proxy_url:
        proxied_fetcher = SimpleProxyFetcher(
            config.fetch_proxy_url,
            http_client,
            default_timeout=config.http_timeout_seconds,
        )

    return build_providers(
        sources=loaded.sources,
        embeds=loaded.embeds,
        target=config.target,
        fetcher=fetcher,
        proxied_fetcher=proxied_fetcher,
        validator=_create_validator(config),
        consistent_ip=config.consistent_ip,
        proxy=config.proxy.to_proxy_config(),
        events=events if events is not None else LoggingEventSink(),
        external_sources=config.external_sources,
        provider_timeout_seconds=config.runner.provider_timeout_seconds,
        metrics=metrics,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Metrics (recorded into by the runner)
        2. HTTP client (shared by both fetchers and the validator)
        3. Providers (fail fast on load/config errors)
    """
    state = cast(AppState, app.state)
    config = state.config

    state.metrics = ResolutionMetrics()

    state.http_client = create_http_client(config)
    log.info(
        "http_client_initialized",
        timeout_seconds=config.http_timeout_seconds,
        fetch_proxy=bool(config.fetch_proxy_url),
    )

    try:
        state.controls = build_controls(
            config, state.http_client, metrics=state.metrics
        )
        state.default_overrides = config.runner.to_overrides()
        log.info(
            "app_ready",
            target=config.target,
            sources=len(state.controls.selection.sources),
            embeds=len(state.controls.selection.embeds),
            proxy_streams=config.proxy.base_url is not None,
        )
        yield
    finally:
        await state.http_client.aclose()
        log.info("http_client_closed")
