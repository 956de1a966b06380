"""Run a single source or embed directly, outside the fallback chain.

Unlike the runner, errors propagate: callers asked for one specific
provider and get its ``NotFoundError`` (or failure) as-is.
"""

from __future__ import annotations

import structlog

from streamscout.application.deadline import Deadline, DeadlineFetcher
from streamscout.domain.entities.context import (
    EmbedScrapeContext,
    MediaScrapeContext,
    RunContext,
    ValidationContext,
)
from streamscout.domain.entities.media import MediaRequest
from streamscout.domain.entities.provider import ProviderSelection
from streamscout.domain.entities.stream import EmbedOutput, SourceOutput, Stream
from streamscout.domain.exceptions import NotFoundError, ProviderNotFoundError
from streamscout.domain.ports.stream_validator import StreamValidatorPort
from streamscout.infrastructure.proxy.planner import ProxyPlanner

from .resolve_stream import EventEmitter, prepare_streams

log = structlog.get_logger(__name__)


async def _first_playable(
    streams: list[Stream],
    provider_id: str,
    validator: StreamValidatorPort,
    fetcher: DeadlineFetcher,
    proxied_fetcher: DeadlineFetcher,
    deadline: Deadline,
) -> tuple[Stream, ...]:
    if not streams:
        return ()
    ctx = ValidationContext(
        fetcher=fetcher,
        proxied_fetcher=proxied_fetcher,
        provider_id=provider_id,
        timeout=deadline.remaining(),
    )
    playable = await deadline.run(lambda: validator.validate(streams[0], ctx))
    if playable is None:
        raise NotFoundError("No playable streams found")
    return (playable,)


async def scrape_source(
    selection: ProviderSelection,
    source_id: str,
    request: MediaRequest,
    context: RunContext,
    validator: StreamValidatorPort,
    *,
    timeout_ms: int | None = None,
) -> SourceOutput:
    """Scrape one source.

    Returns its output with streams filtered, proxied and the first one
    validated, and with embed hand-offs narrowed to known embeds.

    Raises:
        ProviderNotFoundError: *source_id* is not in the selection.
        NotFoundError: the source has nothing (playable) for *request*.
    """
    source = selection.get_source(source_id)
    if source is None:
        raise ProviderNotFoundError(f"Source not found: {source_id}")
    if not source.supports(request.type):
        raise NotFoundError(f"Source does not support {request.type}s")

    deadline = Deadline.from_timeout_ms(timeout_ms)
    events = EventEmitter(context.events)
    fetcher = DeadlineFetcher(context.fetcher, deadline)
    proxied_fetcher = DeadlineFetcher(context.proxied_fetcher, deadline)
    ctx = MediaScrapeContext(
        fetcher=fetcher,
        proxied_fetcher=proxied_fetcher,
        features=context.features,
        progress=lambda pct: events.progress(source.id, pct),
        proxy=context.proxy,
        media=request,
    )

    log.info("individual_source_start", source=source.id, media_type=request.type)
    scrape = source.scraper_for(request.type)
    output = await deadline.run(lambda: scrape(ctx))

    streams = prepare_streams(
        output.streams, context.features, ProxyPlanner(context.proxy)
    )
    embeds = tuple(
        ref for ref in output.embeds if selection.get_embed(ref.embed_id) is not None
    )
    if not streams and not embeds:
        raise NotFoundError("No streams found")

    playable = await _first_playable(
        streams, source.id, validator, fetcher, proxied_fetcher, deadline
    )
    return SourceOutput(streams=playable, embeds=embeds)


async def scrape_embed(
    selection: ProviderSelection,
    embed_id: str,
    url: str,
    context: RunContext,
    validator: StreamValidatorPort,
    *,
    timeout_ms: int | None = None,
) -> EmbedOutput:
    """Scrape one embed on *url*, returning its first playable stream.

    Raises:
        ProviderNotFoundError: *embed_id* is not in the selection.
        NotFoundError: no (playable) stream came back.
    """
    embed = selection.get_embed(embed_id)
    if embed is None:
        raise ProviderNotFoundError(f"Embed not found: {embed_id}")

    deadline = Deadline.from_timeout_ms(timeout_ms)
    events = EventEmitter(context.events)
    fetcher = DeadlineFetcher(context.fetcher, deadline)
    proxied_fetcher = DeadlineFetcher(context.proxied_fetcher, deadline)
    ctx = EmbedScrapeContext(
        fetcher=fetcher,
        proxied_fetcher=proxied_fetcher,
        features=context.features,
        progress=lambda pct: events.progress(embed.id, pct),
        proxy=context.proxy,
        url=url,
    )

    log.info("individual_embed_start", embed=embed.id, url=url)
    output = await deadline.run(lambda: embed.scrape(ctx))

    streams = prepare_streams(
        output.streams, context.features, ProxyPlanner(context.proxy)
    )
    if not streams:
        raise NotFoundError("No streams found")

    playable = await _first_playable(
        streams, embed.id, validator, fetcher, proxied_fetcher, deadline
    )
    return EmbedOutput(streams=playable)
