"""Tests for loading provider modules from a directory."""

from __future__ import annotations

import textwrap
from pathlib import Path
from unittest.mock import ANY, AsyncMock

import pytest

from streamscout.domain.entities import (
    MediaRequest,
    MediaScrapeContext,
    get_target_features,
)
from streamscout.domain.entities.run import ProxyConfig
from streamscout.domain.exceptions import ProviderLoadError
from streamscout.infrastructure.providers.loader import (
    load_provider_module,
    load_providers,
)

_TEMPLATE = Path(__file__).resolve().parents[3] / "providers" / "_template.py"

_SOURCE_MODULE = textwrap.dedent(
    """
    from streamscout.domain.entities import SourceOutput, make_source

    async def scrape_movie(ctx):
        return SourceOutput()

    source = make_source(id="{id}", name="{id}", rank={rank}, scrape_movie=scrape_movie)
    """
)

_EMBEDS_MODULE = textwrap.dedent(
    """
    from streamscout.domain.entities import EmbedOutput, make_embed

    async def scrape(ctx):
        return EmbedOutput()

    embeds = [
        make_embed(id="e1", name="E1", rank=2, scrape=scrape),
        make_embed(id="e2", name="E2", rank=1, scrape=scrape),
    ]
    """
)


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadProviderModule:
    def test_single_source(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "alpha.py", _SOURCE_MODULE.format(id="alpha", rank=5))
        loaded = load_provider_module(path)
        assert [s.id for s in loaded.sources] == ["alpha"]
        assert loaded.embeds == []

    def test_embed_list(self, tmp_path: Path) -> None:
        loaded = load_provider_module(_write(tmp_path / "players.py", _EMBEDS_MODULE))
        assert [e.id for e in loaded.embeds] == ["e1", "e2"]

    def test_module_without_exports_fails(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "empty.py", "x = 1\n")
        with pytest.raises(ProviderLoadError, match="must export"):
            load_provider_module(path)

    def test_wrong_export_type_fails(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "bad.py", "source = 'not a source'\n")
        with pytest.raises(ProviderLoadError, match="Source objects"):
            load_provider_module(path)

    def test_syntax_error_wrapped(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "broken.py", "def oops(:\n")
        with pytest.raises(ProviderLoadError, match="SyntaxError"):
            load_provider_module(path)

    def test_import_error_wrapped(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "missing.py", "import does_not_exist_anywhere\n")
        with pytest.raises(ProviderLoadError, match="Error while importing"):
            load_provider_module(path)

    def test_bundled_template_loads(self) -> None:
        loaded = load_provider_module(_TEMPLATE)
        assert [s.id for s in loaded.sources] == ["template"]
        assert [e.id for e in loaded.embeds] == ["template-player"]
        assert loaded.sources[0].capabilities == frozenset({"movie", "show"})

    async def test_template_routes_header_playlists_through_m3u8_proxy(self) -> None:
        source = load_provider_module(_TEMPLATE).sources[0]
        fetcher = AsyncMock()
        fetcher.fetch.return_value = {
            "available": True,
            "playlist": "https://cdn.test/master.m3u8",
            "headers": {"Referer": "https://site.test/"},
        }
        ctx = MediaScrapeContext(
            fetcher=fetcher,
            proxied_fetcher=fetcher,
            features=get_target_features("native"),
            proxy=ProxyConfig(m3u8_proxy_url="https://m3u8.test"),
            media=MediaRequest.movie("42"),
        )
        output = await source.scraper_for("movie")(ctx)
        (stream,) = output.streams
        assert stream.playlist.startswith(
            "https://m3u8.test/m3u8-proxy?url=https%3A%2F%2Fcdn.test%2Fmaster.m3u8&headers="
        )
        fetcher.fetch.assert_awaited_once_with("/movie/42", base_url=ANY)


class TestLoadProviders:
    def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        loaded = load_providers(tmp_path / "nope")
        assert loaded.sources == [] and loaded.embeds == []

    def test_loads_sorted_and_skips_private(self, tmp_path: Path) -> None:
        _write(tmp_path / "b_source.py", _SOURCE_MODULE.format(id="b", rank=1))
        _write(tmp_path / "a_source.py", _SOURCE_MODULE.format(id="a", rank=2))
        _write(tmp_path / "_helper.py", "raise RuntimeError('never imported')\n")
        _write(tmp_path / "notes.txt", "ignored")
        (tmp_path / "subdir").mkdir()

        loaded = load_providers(tmp_path)
        assert [s.id for s in loaded.sources] == ["a", "b"]

    def test_broken_module_aborts(self, tmp_path: Path) -> None:
        _write(tmp_path / "ok.py", _SOURCE_MODULE.format(id="ok", rank=1))
        _write(tmp_path / "zz_broken.py", "raise RuntimeError('boom')\n")
        with pytest.raises(ProviderLoadError):
            load_providers(tmp_path)
