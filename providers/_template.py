"""Template provider module.

Copy this file to a name without the leading underscore (files starting
with ``_`` are skipped by the loader) and point ``_API_BASE`` at a real
site.  A module exports ``source``/``sources`` and/or ``embed``/``embeds``.

The source looks the title up in a JSON API and either returns a direct
HLS stream or hands the player page off to the embed below.  Direct
playlists that need headers are routed through the run's m3u8 proxy.
"""

from __future__ import annotations

from streamscout.domain.entities import (
    EmbedOutput,
    EmbedReference,
    EmbedScrapeContext,
    Flag,
    HlsStream,
    MediaScrapeContext,
    SourceOutput,
    make_embed,
    make_source,
)
from streamscout.domain.exceptions import NotFoundError
from streamscout.infrastructure.proxy.planner import ProxyPlanner

# ---------------------------------------------------------------------------
# Configurable settings
# ---------------------------------------------------------------------------
_API_BASE = "https://api.example.invalid"
_PLAYER_BASE = "https://player.example.invalid"


async def _lookup(ctx: MediaScrapeContext, path: str) -> SourceOutput:
    data = await ctx.fetcher.fetch(path, base_url=_API_BASE)
    ctx.progress(50)
    if not isinstance(data, dict) or not data.get("available"):
        raise NotFoundError("Title not listed")

    if data.get("playlist"):
        playlist = ProxyPlanner(ctx.proxy).m3u8_proxy_url(
            data["playlist"], ctx.features, data.get("headers")
        )
        return SourceOutput(
            streams=[
                HlsStream(
                    id="primary",
                    playlist=playlist,
                    flags={Flag.CORS_ALLOWED},
                )
            ]
        )
    return SourceOutput(
        embeds=[
            EmbedReference(
                embed_id="template-player", url=f"{_PLAYER_BASE}/e/{data['key']}"
            )
        ]
    )


async def scrape_movie(ctx: MediaScrapeContext) -> SourceOutput:
    assert ctx.media is not None
    return await _lookup(ctx, f"/movie/{ctx.media.tmdb_id}")


async def scrape_show(ctx: MediaScrapeContext) -> SourceOutput:
    media = ctx.media
    assert media is not None and media.season and media.episode
    return await _lookup(
        ctx, f"/tv/{media.tmdb_id}/{media.season.number}/{media.episode.number}"
    )


async def scrape_player(ctx: EmbedScrapeContext) -> EmbedOutput:
    page = await ctx.proxied_fetcher.fetch(ctx.url)
    marker = 'file:"'
    start = page.find(marker) if isinstance(page, str) else -1
    if start < 0:
        raise NotFoundError("No playlist on player page")
    playlist = page[start + len(marker) : page.index('"', start + len(marker))]
    return EmbedOutput(
        streams=[
            HlsStream(
                id="primary",
                playlist=playlist,
                headers={"Referer": f"{_PLAYER_BASE}/"},
            )
        ]
    )


source = make_source(
    id="template",
    name="Template",
    rank=100,
    flags=[Flag.CORS_ALLOWED],
    scrape_movie=scrape_movie,
    scrape_show=scrape_show,
)

embed = make_embed(
    id="template-player",
    name="Template Player",
    rank=90,
    scrape=scrape_player,
)
