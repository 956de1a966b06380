"""Tests for ProviderRegistry build-time checks and selection."""

from __future__ import annotations

import pytest

from streamscout.domain.entities import (
    EmbedOutput,
    FeatureSet,
    SourceOutput,
    make_embed,
    make_source,
)
from streamscout.domain.exceptions import ProviderConfigError
from streamscout.infrastructure.providers.registry import ProviderRegistry


async def _scrape(ctx: object) -> SourceOutput:
    return SourceOutput()


async def _embed_scrape(ctx: object) -> EmbedOutput:
    return EmbedOutput()


def _source(id: str, rank: int, **kw: object):
    return make_source(id=id, name=id.upper(), rank=rank, scrape_movie=_scrape, **kw)


def _embed(id: str, rank: int, **kw: object):
    return make_embed(id=id, name=id.upper(), rank=rank, scrape=_embed_scrape, **kw)


class TestBuild:
    def test_sorts_by_rank_descending(self) -> None:
        registry = ProviderRegistry.build(
            [_source("low", 1), _source("high", 30), _source("mid", 10)],
            [_embed("e1", 5), _embed("e2", 50)],
        )
        assert [s.id for s in registry.sources] == ["high", "mid", "low"]
        assert [e.id for e in registry.embeds] == ["e2", "e1"]

    def test_duplicate_id_across_kinds_fails(self) -> None:
        with pytest.raises(ProviderConfigError) as exc:
            ProviderRegistry.build([_source("x", 1)], [_embed("x", 2)])
        assert "Sources/embeds have duplicate IDs" in str(exc.value)
        assert "ID x: X (x), X (x)" in str(exc.value)

    def test_same_named_rank_clash_names_the_ids(self) -> None:
        twin_a = make_source(id="twin-a", name="Twin", rank=7, scrape_movie=_scrape)
        twin_b = make_source(id="twin-b", name="Twin", rank=7, scrape_movie=_scrape)
        with pytest.raises(ProviderConfigError) as exc:
            ProviderRegistry.build([twin_a, twin_b], [])
        (group,) = exc.value.duplicates
        assert group.provider_ids == ("twin-a", "twin-b")
        assert "rank 7: Twin (twin-a), Twin (twin-b)" in str(exc.value)

    def test_every_conflict_is_reported_at_once(self) -> None:
        with pytest.raises(ProviderConfigError) as exc:
            ProviderRegistry.build(
                [_source("a", 1), _source("b", 1), _source("a2", 4), _source("a2", 5)],
                [_embed("e1", 3), _embed("e2", 3)],
            )
        kinds = {(d.kind, d.key_name) for d in exc.value.duplicates}
        assert kinds == {
            ("Sources/embeds", "ID"),
            ("Sources", "rank"),
            ("Embeds", "rank"),
        }

    def test_disabled_providers_may_share_ranks(self) -> None:
        registry = ProviderRegistry.build(
            [_source("a", 1), _source("b", 1, disabled=True)], []
        )
        assert len(registry.sources) == 2

    def test_disabled_providers_still_need_unique_ids(self) -> None:
        with pytest.raises(ProviderConfigError):
            ProviderRegistry.build(
                [_source("a", 1), _source("a", 2, disabled=True)], []
            )

    def test_external_sources_dropped_unless_opted_in(self) -> None:
        sources = [_source("own", 2), _source("ext", 1, external_source=True)]
        assert [s.id for s in ProviderRegistry.build(sources, []).sources] == ["own"]
        assert [
            s.id
            for s in ProviderRegistry.build(
                sources, [], external_sources=["ext"]
            ).sources
        ] == ["own", "ext"]
        assert len(ProviderRegistry.build(sources, [], external_sources="all").sources) == 2


class TestSelect:
    def test_filters_disabled_and_incompatible(self) -> None:
        registry = ProviderRegistry.build(
            [
                _source("plain", 3),
                _source("locked", 2, flags=["ip-locked"]),
                _source("off", 1, disabled=True),
            ],
            [_embed("e", 1, flags=["cors-allowed"])],
        )
        selection = registry.select(FeatureSet.of("cors-allowed"))
        assert [s.id for s in selection.sources] == ["plain"]
        assert [e.id for e in selection.embeds] == ["e"]

    def test_selection_grows_with_features(self) -> None:
        registry = ProviderRegistry.build(
            [_source("plain", 3), _source("locked", 2, flags=["ip-locked"])], []
        )
        small = registry.select(FeatureSet.of("cors-allowed"))
        large = registry.select(FeatureSet.of("cors-allowed", "ip-locked"))
        assert {s.id for s in small.sources} <= {s.id for s in large.sources}
        assert [s.id for s in large.sources] == ["plain", "locked"]

    def test_selection_lookup(self) -> None:
        registry = ProviderRegistry.build([_source("s", 1)], [_embed("e", 1)])
        selection = registry.select(FeatureSet())
        assert selection.get_source("s") is not None
        assert selection.get_embed("e") is not None
        assert selection.get_source("e") is None


class TestIntrospection:
    def test_describe(self) -> None:
        registry = ProviderRegistry.build([_source("s", 1)], [_embed("e", 2)])
        assert registry.describe("s").kind == "source"  # type: ignore[union-attr]
        assert registry.describe("e").kind == "embed"  # type: ignore[union-attr]
        assert registry.describe("missing") is None

    def test_list_sorted_mixes_kinds_by_rank(self) -> None:
        registry = ProviderRegistry.build(
            [_source("s1", 10), _source("s2", 1)], [_embed("e", 5)]
        )
        assert [m.id for m in registry.list_sorted()] == ["s1", "e", "s2"]
