"""Provider registry: validated, rank-ordered sources and embeds."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Sequence
from typing import Literal, TypeVar, Union

import structlog

from streamscout.domain.entities.features import FeatureSet, is_compatible
from streamscout.domain.entities.provider import (
    Embed,
    ProviderMeta,
    ProviderSelection,
    Source,
)
from streamscout.domain.exceptions import DuplicateGroup, ProviderConfigError

log = structlog.get_logger(__name__)

_P = TypeVar("_P", Source, Embed)

ExternalSources = Union[Literal["all"], Iterable[str], None]


def _find_duplicates(
    items: Sequence[_P], key_fn: Callable[[_P], Hashable]
) -> list[tuple[Hashable, list[_P]]]:
    groups: dict[Hashable, list[_P]] = {}
    for item in items:
        groups.setdefault(key_fn(item), []).append(item)
    return [(key, members) for key, members in groups.items() if len(members) > 1]


def _by_rank(items: Iterable[_P]) -> tuple[_P, ...]:
    return tuple(sorted(items, key=lambda p: p.rank, reverse=True))


def _filter_external(sources: Iterable[Source], external: ExternalSources) -> list[Source]:
    if external == "all":
        return list(sources)
    opted_in = set(external or ())
    return [s for s in sources if not s.external_source or s.id in opted_in]


class ProviderRegistry:
    """Read-only set of providers, checked once at build time.

    build():
      - fails fast with ProviderConfigError on any id/rank conflict

    select()/describe()/list_*():
      - pure reads, safe to share between concurrent runs
    """

    def __init__(self, sources: Sequence[Source], embeds: Sequence[Embed]) -> None:
        # Use build(); the constructor performs no validation.
        self._sources: tuple[Source, ...] = _by_rank(sources)
        self._embeds: tuple[Embed, ...] = _by_rank(embeds)

    @classmethod
    def build(
        cls,
        sources: Iterable[Source],
        embeds: Iterable[Embed],
        *,
        external_sources: ExternalSources = None,
    ) -> ProviderRegistry:
        """Validate and freeze a provider set.

        Sources flagged ``external_source`` are dropped unless opted in
        via *external_sources* (``"all"`` or an id list).

        Raises:
            ProviderConfigError: listing every duplicate id group and
                every duplicate rank group among enabled providers.
        """
        source_list = _filter_external(sources, external_sources)
        embed_list = list(embeds)

        duplicates: list[DuplicateGroup] = []

        combined: list[Source | Embed] = [*source_list, *embed_list]
        for _, members in _find_duplicates(combined, lambda p: p.id):
            duplicates.append(
                DuplicateGroup(
                    kind="Sources/embeds",
                    key_name="ID",
                    key=members[0].id,
                    provider_ids=tuple(p.id for p in members),
                    provider_names=tuple(p.name for p in members),
                )
            )

        enabled_sources = [s for s in source_list if not s.disabled]
        for _, members in _find_duplicates(enabled_sources, lambda p: p.rank):
            duplicates.append(
                DuplicateGroup(
                    kind="Sources",
                    key_name="rank",
                    key=members[0].rank,
                    provider_ids=tuple(p.id for p in members),
                    provider_names=tuple(p.name for p in members),
                )
            )

        enabled_embeds = [e for e in embed_list if not e.disabled]
        for _, members in _find_duplicates(enabled_embeds, lambda p: p.rank):
            duplicates.append(
                DuplicateGroup(
                    kind="Embeds",
                    key_name="rank",
                    key=members[0].rank,
                    provider_ids=tuple(p.id for p in members),
                    provider_names=tuple(p.name for p in members),
                )
            )

        if duplicates:
            log.error(
                "provider_registry_invalid",
                conflicts=len(duplicates),
                groups=[f"{d.kind}:{d.key_name}:{d.key}" for d in duplicates],
            )
            raise ProviderConfigError(duplicates)

        registry = cls(source_list, embed_list)
        log.info(
            "provider_registry_built",
            sources=len(registry._sources),
            embeds=len(registry._embeds),
        )
        return registry

    @property
    def sources(self) -> tuple[Source, ...]:
        return self._sources

    @property
    def embeds(self) -> tuple[Embed, ...]:
        return self._embeds

    def select(self, features: FeatureSet) -> ProviderSelection:
        """Enabled providers whose flags *features* can honour."""
        selection = ProviderSelection(
            sources=tuple(
                s
                for s in self._sources
                if not s.disabled and is_compatible(s.flags, features)
            ),
            embeds=tuple(
                e
                for e in self._embeds
                if not e.disabled and is_compatible(e.flags, features)
            ),
        )
        log.debug(
            "providers_selected",
            features=sorted(features.allowed),
            sources=[s.id for s in selection.sources],
            embeds=[e.id for e in selection.embeds],
        )
        return selection

    def describe(self, provider_id: str) -> ProviderMeta | None:
        for source in self._sources:
            if source.id == provider_id:
                return ProviderMeta.of(source)
        for embed in self._embeds:
            if embed.id == provider_id:
                return ProviderMeta.of(embed)
        return None

    def list_sources(self) -> list[ProviderMeta]:
        return [ProviderMeta.of(s) for s in self._sources]

    def list_embeds(self) -> list[ProviderMeta]:
        return [ProviderMeta.of(e) for e in self._embeds]

    def list_sorted(self) -> list[ProviderMeta]:
        """All providers, descending rank (sources before embeds on ties)."""
        metas = [*self.list_sources(), *self.list_embeds()]
        return sorted(metas, key=lambda m: m.rank, reverse=True)
