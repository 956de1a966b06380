"""Event sinks for runner progress."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from streamscout.domain.entities.events import (
    DiscoverEmbedsEvent,
    InitEvent,
    RunEvent,
    StartEvent,
    UpdateEvent,
)
from streamscout.domain.ports.event_sink import EventSinkPort

log = structlog.get_logger(__name__)


class LoggingEventSink:
    """Writes every run event to the structured log at debug level."""

    def init(self, event: InitEvent) -> None:
        log.debug("run_init", source_ids=list(event.source_ids))

    def start(self, id: str) -> None:
        log.debug("run_start", id=id)

    def update(self, event: UpdateEvent) -> None:
        log.debug(
            "run_update",
            id=event.id,
            percentage=event.percentage,
            status=event.status,
            reason=event.reason,
            error=str(event.error) if event.error is not None else None,
        )

    def discover_embeds(self, event: DiscoverEmbedsEvent) -> None:
        log.debug(
            "run_discover_embeds",
            source_id=event.source_id,
            embeds=[e.embed_scraper_id for e in event.embeds],
        )


@dataclass
class RecordingEventSink:
    """Keeps every event in order (CLI verbose output, debugging)."""

    events: list[RunEvent] = field(default_factory=list)

    def init(self, event: InitEvent) -> None:
        self.events.append(event)

    def start(self, id: str) -> None:
        self.events.append(StartEvent(id=id))

    def update(self, event: UpdateEvent) -> None:
        self.events.append(event)

    def discover_embeds(self, event: DiscoverEmbedsEvent) -> None:
        self.events.append(event)


class CompositeEventSink:
    """Fans each event out to several sinks, in order."""

    def __init__(self, sinks: Iterable[EventSinkPort]) -> None:
        self.sinks = list(sinks)

    def init(self, event: InitEvent) -> None:
        for sink in self.sinks:
            sink.init(event)

    def start(self, id: str) -> None:
        for sink in self.sinks:
            sink.start(id)

    def update(self, event: UpdateEvent) -> None:
        for sink in self.sinks:
            sink.update(event)

    def discover_embeds(self, event: DiscoverEmbedsEvent) -> None:
        for sink in self.sinks:
            sink.discover_embeds(event)
