"""Resolution runner: walk sources and embeds until one stream validates.

Flow per source (in override-then-rank order):
    1. start(source) and scrape it for the request's media type
    2. drop malformed/incompatible streams, proxy the rest where needed
    3. validate the first stream -> done on success
    4. otherwise follow the source's embed hand-offs, one at a time
    5. classify failures (notfound / failure) and move on

Attempts never raise; only configuration problems do, and those are
caught long before a run starts.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar, Union

import structlog

from streamscout.application.deadline import Deadline, DeadlineFetcher
from streamscout.domain.entities.context import (
    EmbedScrapeContext,
    MediaScrapeContext,
    RunContext,
    ValidationContext,
)
from streamscout.domain.entities.events import (
    DiscoveredEmbed,
    DiscoverEmbedsEvent,
    InitEvent,
    UpdateEvent,
)
from streamscout.domain.entities.features import FeatureSet, is_compatible
from streamscout.domain.entities.media import MediaRequest
from streamscout.domain.entities.provider import (
    Embed,
    ProviderSelection,
    Source,
)
from streamscout.domain.entities.run import RunOutcome, RunOverrides
from streamscout.domain.entities.stream import (
    EmbedReference,
    Stream,
    is_valid_stream,
)
from streamscout.domain.exceptions import (
    DeadlineExceededError,
    NotFoundError,
    StreamRejectedError,
)
from streamscout.domain.ports.event_sink import EventSinkPort
from streamscout.domain.ports.stream_validator import StreamValidatorPort
from streamscout.infrastructure.proxy.planner import ProxyPlanner

log = structlog.get_logger(__name__)

_T = TypeVar("_T", Source, Embed)


def reorder_on_id_list(order: Sequence[str], items: Iterable[_T]) -> list[_T]:
    """Put ids named in *order* first (in that order), keep the rest as-is.

    Unknown ids in *order* are ignored; unnamed items keep their relative
    (rank) order after the named ones.
    """
    position: dict[str, int] = {}
    for i, provider_id in enumerate(order):
        position.setdefault(provider_id, i)
    pool = list(items)
    named = sorted((p for p in pool if p.id in position), key=lambda p: position[p.id])
    rest = [p for p in pool if p.id not in position]
    return [*named, *rest]


def prepare_streams(
    streams: Iterable[Stream], features: FeatureSet, planner: ProxyPlanner
) -> list[Stream]:
    """Drop malformed or incompatible streams, proxy the rest where needed."""
    return [
        planner.plan(stream)
        for stream in streams
        if is_valid_stream(stream) and is_compatible(stream.flags, features)
    ]


# ---------------------------------------------------------------------------
# Attempt results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttemptSuccess:
    stream: Stream


@dataclass(frozen=True)
class AttemptNotFound:
    reason: str
    embeds: tuple[EmbedReference, ...] = ()


@dataclass(frozen=True)
class AttemptFailure:
    error: BaseException
    embeds: tuple[EmbedReference, ...] = ()


AttemptResult = Union[AttemptSuccess, AttemptNotFound, AttemptFailure]


class MetricsRecorder(Protocol):
    """Records per-attempt and per-resolution outcomes."""

    def record_attempt(
        self, provider_id: str, kind: str, status: str, duration_ns: int
    ) -> None: ...

    def record_resolution(self, duration_ns: int, *, resolved: bool) -> None: ...


def _status(result: AttemptResult) -> str:
    if isinstance(result, AttemptSuccess):
        return "success"
    if isinstance(result, AttemptNotFound):
        return "notfound"
    return "failure"


# ---------------------------------------------------------------------------
# Event emission
# ---------------------------------------------------------------------------


class EventEmitter:
    """Forwards run events to an optional sink.

    Missing sink, or a sink that only implements some hooks, is fine. A
    hook that raises is logged and skipped; it never aborts the run.
    """

    def __init__(self, sink: EventSinkPort | None) -> None:
        self._sink = sink

    def _emit(self, name: str, payload: object) -> None:
        if self._sink is None:
            return
        hook: Callable[[object], None] | None = getattr(self._sink, name, None)
        if hook is None:
            return
        try:
            hook(payload)
        except Exception:  # noqa: BLE001
            log.warning("event_sink_failed", hook=name, exc_info=True)

    def init(self, source_ids: Sequence[str]) -> None:
        self._emit("init", InitEvent(source_ids=tuple(source_ids)))

    def start(self, attempt_id: str) -> None:
        self._emit("start", attempt_id)

    def update(self, event: UpdateEvent) -> None:
        self._emit("update", event)

    def progress(self, attempt_id: str, percentage: float) -> None:
        self.update(
            UpdateEvent(id=attempt_id, percentage=percentage, status="pending")
        )

    def result(self, attempt_id: str, result: AttemptNotFound | AttemptFailure) -> None:
        if isinstance(result, AttemptNotFound):
            self.update(
                UpdateEvent(
                    id=attempt_id,
                    percentage=100,
                    status="notfound",
                    reason=result.reason,
                )
            )
        else:
            self.update(
                UpdateEvent(
                    id=attempt_id,
                    percentage=100,
                    status="failure",
                    error=result.error,
                )
            )

    def discover_embeds(
        self, source_id: str, refs: Sequence[EmbedReference]
    ) -> None:
        self._emit(
            "discover_embeds",
            DiscoverEmbedsEvent(
                source_id=source_id,
                embeds=tuple(
                    DiscoveredEmbed(id=f"{source_id}-{i}", embed_scraper_id=ref.embed_id)
                    for i, ref in enumerate(refs)
                ),
            ),
        )


# ---------------------------------------------------------------------------
# Per-run state
# ---------------------------------------------------------------------------


@dataclass
class _Run:
    request: MediaRequest
    context: RunContext
    deadline: Deadline
    planner: ProxyPlanner
    events: EventEmitter
    fetcher: DeadlineFetcher
    proxied_fetcher: DeadlineFetcher
    embeds: list[Embed]

    @classmethod
    def open(
        cls,
        request: MediaRequest,
        context: RunContext,
        deadline: Deadline,
        embeds: list[Embed],
    ) -> _Run:
        return cls(
            request=request,
            context=context,
            deadline=deadline,
            planner=ProxyPlanner(context.proxy),
            events=EventEmitter(context.events),
            fetcher=DeadlineFetcher(context.fetcher, deadline),
            proxied_fetcher=DeadlineFetcher(context.proxied_fetcher, deadline),
            embeds=embeds,
        )

    def progress_for(self, attempt_id: str) -> Callable[[float], None]:
        return functools.partial(self.events.progress, attempt_id)

    def sort_refs(self, refs: Iterable[EmbedReference]) -> list[EmbedReference]:
        """Keep hand-offs to known embeds, ordered by the run's embed order."""
        position = {e.id: i for i, e in enumerate(self.embeds)}
        known = [ref for ref in refs if ref.embed_id in position]
        return sorted(known, key=lambda ref: position[ref.embed_id])

    def embed(self, embed_id: str) -> Embed:
        return next(e for e in self.embeds if e.id == embed_id)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class ProviderRunner:
    """Sequential, first-success-wins resolution over a provider selection.

    Args:
        validator: Playability probe applied to the first surviving stream.
        provider_timeout_seconds: Optional cap for a single attempt, on top
            of the run's overall deadline.
        metrics: Optional recorder for attempt and resolution outcomes.
    """

    def __init__(
        self,
        validator: StreamValidatorPort,
        *,
        provider_timeout_seconds: float | None = None,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        self.validator = validator
        self.provider_timeout = provider_timeout_seconds
        self._metrics = metrics

    async def resolve(
        self,
        selection: ProviderSelection,
        request: MediaRequest,
        context: RunContext,
        overrides: RunOverrides | None = None,
    ) -> RunOutcome | None:
        """Resolve *request* to a validated stream, or ``None`` if exhausted."""
        overrides = overrides or RunOverrides()
        deadline = Deadline.from_timeout_ms(overrides.timeout_ms)

        sources = [
            s
            for s in reorder_on_id_list(overrides.source_order, selection.sources)
            if s.supports(request.type)
        ]
        embeds = reorder_on_id_list(overrides.embed_order, selection.embeds)
        run = _Run.open(request, context, deadline, embeds)

        run.events.init([s.id for s in sources])
        log.info(
            "resolution_started",
            media_type=request.type,
            tmdb_id=request.tmdb_id,
            sources=[s.id for s in sources],
            timeout_ms=overrides.timeout_ms,
        )

        t0 = time.perf_counter_ns()
        outcome = await self._walk(sources, run)
        if self._metrics is not None:
            self._metrics.record_resolution(
                time.perf_counter_ns() - t0, resolved=outcome is not None
            )
        return outcome

    async def _walk(self, sources: Sequence[Source], run: _Run) -> RunOutcome | None:
        deadline = run.deadline
        for source in sources:
            if deadline.expired:
                log.warning("resolution_deadline_exceeded", source=source.id)
                return None

            run.events.start(source.id)
            log.debug("source_start", source=source.id)
            t0 = time.perf_counter_ns()
            result = await self._attempt_source(source, run)
            self._record(source.id, "source", result, t0)

            if isinstance(result, AttemptSuccess):
                return self._resolved(source.id, None, result.stream)

            if deadline.expired:
                self._report(source.id, result, run, kind="source")
                log.warning("resolution_deadline_exceeded", source=source.id)
                return None

            refs = run.sort_refs(result.embeds)
            if not refs:
                self._report(source.id, result, run, kind="source")
                continue

            run.events.discover_embeds(source.id, refs)
            outcome = await self._run_embeds(source, refs, run)
            if outcome is not None:
                return outcome

        log.info(
            "resolution_exhausted",
            media_type=run.request.type,
            tmdb_id=run.request.tmdb_id,
            tried=len(sources),
        )
        return None

    async def _run_embeds(
        self,
        source: Source,
        refs: Sequence[EmbedReference],
        run: _Run,
    ) -> RunOutcome | None:
        for index, ref in enumerate(refs):
            if run.deadline.expired:
                log.warning("resolution_deadline_exceeded", source=source.id)
                return None

            attempt_id = f"{source.id}-{index}"
            embed = run.embed(ref.embed_id)
            run.events.start(attempt_id)
            log.debug("embed_start", source=source.id, embed=embed.id, id=attempt_id)

            t0 = time.perf_counter_ns()
            result = await self._attempt_embed(embed, ref.url, attempt_id, run)
            self._record(embed.id, "embed", result, t0)
            if isinstance(result, AttemptSuccess):
                return self._resolved(source.id, embed.id, result.stream)
            self._report(attempt_id, result, run, kind="embed")
        return None

    # -- attempts ------------------------------------------------------

    async def _attempt_source(self, source: Source, run: _Run) -> AttemptResult:
        ctx = MediaScrapeContext(
            fetcher=run.fetcher,
            proxied_fetcher=run.proxied_fetcher,
            features=run.context.features,
            progress=run.progress_for(source.id),
            proxy=run.context.proxy,
            media=run.request,
        )
        scrape = source.scraper_for(run.request.type)
        embeds: tuple[EmbedReference, ...] = ()
        try:
            output = await run.deadline.run(
                lambda: scrape(ctx), limit=self.provider_timeout
            )
            embeds = output.embeds
            streams = prepare_streams(
                output.streams, run.context.features, run.planner
            )
            if not streams and not embeds:
                raise NotFoundError("No streams found")
            if streams:
                stream = await self._validate(streams[0], source.id, run)
                return AttemptSuccess(stream)
            return AttemptNotFound("No streams found", embeds=embeds)
        except NotFoundError as e:
            return AttemptNotFound(e.reason, embeds=embeds)
        except Exception as e:  # noqa: BLE001
            return AttemptFailure(e, embeds=embeds)

    async def _attempt_embed(
        self, embed: Embed, url: str, attempt_id: str, run: _Run
    ) -> AttemptResult:
        ctx = EmbedScrapeContext(
            fetcher=run.fetcher,
            proxied_fetcher=run.proxied_fetcher,
            features=run.context.features,
            progress=run.progress_for(attempt_id),
            proxy=run.context.proxy,
            url=url,
        )
        try:
            output = await run.deadline.run(
                lambda: embed.scrape(ctx), limit=self.provider_timeout
            )
            streams = prepare_streams(
                output.streams, run.context.features, run.planner
            )
            if not streams:
                raise NotFoundError("No streams found")
            return AttemptSuccess(await self._validate(streams[0], embed.id, run))
        except NotFoundError as e:
            return AttemptNotFound(e.reason)
        except Exception as e:  # noqa: BLE001
            return AttemptFailure(e)

    async def _validate(self, stream: Stream, provider_id: str, run: _Run) -> Stream:
        ctx = ValidationContext(
            fetcher=run.fetcher,
            proxied_fetcher=run.proxied_fetcher,
            provider_id=provider_id,
            timeout=run.deadline.remaining(),
        )
        validated = await run.deadline.run(
            lambda: self.validator.validate(stream, ctx), limit=self.provider_timeout
        )
        if validated is None:
            log.info("stream_rejected", provider=provider_id, stream_id=stream.id)
            raise StreamRejectedError(stream.id, provider_id)
        log.debug("stream_validated", provider=provider_id, stream_id=stream.id)
        return validated

    # -- reporting -----------------------------------------------------

    def _record(
        self, provider_id: str, kind: str, result: AttemptResult, t0: int
    ) -> None:
        if self._metrics is not None:
            self._metrics.record_attempt(
                provider_id, kind, _status(result), time.perf_counter_ns() - t0
            )

    def _report(
        self,
        attempt_id: str,
        result: AttemptNotFound | AttemptFailure,
        run: _Run,
        *,
        kind: str,
    ) -> None:
        if isinstance(result, AttemptNotFound):
            log.info(f"{kind}_not_found", id=attempt_id, reason=result.reason)
        elif isinstance(result.error, DeadlineExceededError):
            log.warning(f"{kind}_timed_out", id=attempt_id, error=str(result.error))
        else:
            log.warning(
                f"{kind}_failed",
                id=attempt_id,
                error_type=type(result.error).__name__,
                error=str(result.error),
                exc_info=result.error,
            )
        run.events.result(attempt_id, result)

    @staticmethod
    def _resolved(source_id: str, embed_id: str | None, stream: Stream) -> RunOutcome:
        log.info(
            "resolution_resolved",
            source=source_id,
            embed=embed_id,
            stream_id=stream.id,
            type=stream.kind,
        )
        return RunOutcome(source_id=source_id, stream=stream, embed_id=embed_id)

