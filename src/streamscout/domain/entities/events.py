"""Progress events emitted by the runner.

Emitted in a fixed order: ``init`` once, then per provider attempt a
``start`` followed by zero or more ``update`` events, with a
``discover_embeds`` after a source hands off to embeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

UpdateStatus = Literal["pending", "notfound", "failure"]


@dataclass(frozen=True)
class InitEvent:
    source_ids: tuple[str, ...]


@dataclass(frozen=True)
class StartEvent:
    id: str  # source id, or "<source id>-<index>" for embed attempts


@dataclass(frozen=True)
class UpdateEvent:
    id: str
    percentage: float
    status: UpdateStatus
    reason: str | None = None
    error: BaseException | None = None


@dataclass(frozen=True)
class DiscoveredEmbed:
    id: str  # composite "<source id>-<index>"
    embed_scraper_id: str


@dataclass(frozen=True)
class DiscoverEmbedsEvent:
    source_id: str
    embeds: tuple[DiscoveredEmbed, ...]


RunEvent = Union[InitEvent, StartEvent, UpdateEvent, DiscoverEmbedsEvent]
