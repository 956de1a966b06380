"""Port for consumers of runner progress events."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from streamscout.domain.entities.events import (
    DiscoverEmbedsEvent,
    InitEvent,
    UpdateEvent,
)


@runtime_checkable
class EventSinkPort(Protocol):
    """Receives progress notifications from a resolution run.

    Sinks are optional; a run without one behaves identically.
    """

    def init(self, event: InitEvent) -> None: ...

    def start(self, id: str) -> None: ...

    def update(self, event: UpdateEvent) -> None: ...

    def discover_embeds(self, event: DiscoverEmbedsEvent) -> None: ...
