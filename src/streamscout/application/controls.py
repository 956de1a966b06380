"""Public entry point: a built provider set plus the calls you make on it."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

import structlog

from streamscout.application.use_cases.resolve_stream import (
    MetricsRecorder,
    ProviderRunner,
)
from streamscout.application.use_cases.scrape_individual import (
    scrape_embed,
    scrape_source,
)
from streamscout.domain.entities.context import RunContext
from streamscout.domain.entities.features import (
    FeatureSet,
    Target,
    get_target_features,
)
from streamscout.domain.entities.media import MediaRequest
from streamscout.domain.entities.provider import (
    Embed,
    ProviderMeta,
    ProviderSelection,
    Source,
)
from streamscout.domain.entities.run import ProxyConfig, RunOutcome, RunOverrides
from streamscout.domain.entities.stream import EmbedOutput, SourceOutput
from streamscout.domain.ports.event_sink import EventSinkPort
from streamscout.domain.ports.fetcher import FetcherPort
from streamscout.domain.ports.stream_validator import StreamValidatorPort
from streamscout.infrastructure.providers.registry import (
    ExternalSources,
    ProviderRegistry,
)

log = structlog.get_logger(__name__)


class ProviderControls:
    """Runs and introspects the providers selected for one target.

    The selection is computed once; every call below works on it and
    never mutates it, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        context: RunContext,
        runner: ProviderRunner,
    ) -> None:
        self.registry = registry
        self.context = context
        self.runner = runner
        self.selection: ProviderSelection = registry.select(context.features)

    @property
    def features(self) -> FeatureSet:
        return self.context.features

    def _context(self, events: EventSinkPort | None) -> RunContext:
        if events is None:
            return self.context
        return replace(self.context, events=events)

    async def run_all(
        self,
        request: MediaRequest,
        overrides: RunOverrides | None = None,
        *,
        events: EventSinkPort | None = None,
    ) -> RunOutcome | None:
        """Resolve *request* through every selected provider.

        *events* replaces the default event sink for this call only.
        """
        return await self.runner.resolve(
            self.selection, request, self._context(events), overrides
        )

    async def run_source_scraper(
        self,
        source_id: str,
        request: MediaRequest,
        *,
        timeout_ms: int | None = None,
        events: EventSinkPort | None = None,
    ) -> SourceOutput:
        return await scrape_source(
            self.selection,
            source_id,
            request,
            self._context(events),
            self.runner.validator,
            timeout_ms=timeout_ms,
        )

    async def run_embed_scraper(
        self,
        embed_id: str,
        url: str,
        *,
        timeout_ms: int | None = None,
        events: EventSinkPort | None = None,
    ) -> EmbedOutput:
        return await scrape_embed(
            self.selection,
            embed_id,
            url,
            self._context(events),
            self.runner.validator,
            timeout_ms=timeout_ms,
        )

    def get_metadata(self, provider_id: str) -> ProviderMeta | None:
        source = self.selection.get_source(provider_id)
        if source is not None:
            return ProviderMeta.of(source)
        embed = self.selection.get_embed(provider_id)
        if embed is not None:
            return ProviderMeta.of(embed)
        return None

    def list_sources(self) -> list[ProviderMeta]:
        """Selected sources, descending rank."""
        return [ProviderMeta.of(s) for s in self.selection.sources]

    def list_embeds(self) -> list[ProviderMeta]:
        """Selected embeds, descending rank."""
        return [ProviderMeta.of(e) for e in self.selection.embeds]


def build_providers(
    *,
    sources: Iterable[Source],
    embeds: Iterable[Embed],
    target: Target,
    fetcher: FetcherPort,
    validator: StreamValidatorPort,
    proxied_fetcher: FetcherPort | None = None,
    consistent_ip: bool = False,
    proxy: ProxyConfig | None = None,
    events: EventSinkPort | None = None,
    external_sources: ExternalSources = None,
    provider_timeout_seconds: float | None = None,
    metrics: MetricsRecorder | None = None,
) -> ProviderControls:
    """Validate the provider set and wire it up for *target*.

    Without a proxied fetcher, the plain fetcher is used for both.

    Raises:
        ProviderConfigError: duplicate provider ids or ranks.
        ValueError: unknown *target*.
    """
    proxy = proxy or ProxyConfig()
    features = get_target_features(
        target, consistent_ip=consistent_ip, proxy_streams=proxy.enabled
    )
    registry = ProviderRegistry.build(
        sources, embeds, external_sources=external_sources
    )
    context = RunContext(
        fetcher=fetcher,
        proxied_fetcher=proxied_fetcher or fetcher,
        features=features,
        proxy=proxy,
        events=events,
    )
    runner = ProviderRunner(
        validator,
        provider_timeout_seconds=provider_timeout_seconds,
        metrics=metrics,
    )
    controls = ProviderControls(registry, context, runner)
    log.info(
        "providers_built",
        target=target,
        consistent_ip=consistent_ip,
        proxy_streams=proxy.enabled,
        sources=len(controls.selection.sources),
        embeds=len(controls.selection.embeds),
    )
    return controls
