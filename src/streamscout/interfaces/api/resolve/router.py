"""Stream resolution endpoints."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from streamscout.domain.entities.media import MediaRequest
from streamscout.domain.entities.run import RunOverrides
from streamscout.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/resolve", tags=["resolve"])

_NO_STREAM = {"error": "no stream available"}


def _split_ids(raw: str | None) -> tuple[str, ...] | None:
    if raw is None:
        return None
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _merge_overrides(
    defaults: RunOverrides,
    source_order: str | None,
    embed_order: str | None,
    timeout_ms: int | None,
) -> RunOverrides:
    """Query parameters win over the configured runner defaults."""
    sources = _split_ids(source_order)
    embeds = _split_ids(embed_order)
    return RunOverrides(
        source_order=sources if sources is not None else defaults.source_order,
        embed_order=embeds if embeds is not None else defaults.embed_order,
        timeout_ms=timeout_ms if timeout_ms is not None else defaults.timeout_ms,
    )


async def _resolve(
    request: Request,
    media: MediaRequest,
    source_order: str | None,
    embed_order: str | None,
    timeout_ms: int | None,
) -> JSONResponse:
    state = cast(AppState, request.app.state)
    overrides = _merge_overrides(
        state.default_overrides, source_order, embed_order, timeout_ms
    )
    outcome = await state.controls.run_all(media, overrides)
    if outcome is None:
        return JSONResponse(status_code=404, content=_NO_STREAM)
    return JSONResponse(content=outcome.to_dict())


@router.get("/movie/{tmdb_id}")
async def resolve_movie(
    request: Request,
    tmdb_id: str,
    title: str = Query(default=""),
    year: int | None = Query(default=None),
    imdb_id: str | None = Query(default=None),
    source_order: str | None = Query(default=None, description="Comma-separated ids."),
    embed_order: str | None = Query(default=None, description="Comma-separated ids."),
    timeout_ms: int | None = Query(default=None, ge=0),
) -> JSONResponse:
    media = MediaRequest.movie(
        tmdb_id, title=title, release_year=year, imdb_id=imdb_id
    )
    return await _resolve(request, media, source_order, embed_order, timeout_ms)


@router.get("/show/{tmdb_id}/{season}/{episode}")
async def resolve_show(
    request: Request,
    tmdb_id: str,
    season: int,
    episode: int,
    title: str = Query(default=""),
    year: int | None = Query(default=None),
    imdb_id: str | None = Query(default=None),
    source_order: str | None = Query(default=None, description="Comma-separated ids."),
    embed_order: str | None = Query(default=None, description="Comma-separated ids."),
    timeout_ms: int | None = Query(default=None, ge=0),
) -> JSONResponse:
    try:
        media = MediaRequest.show(
            tmdb_id,
            season,
            episode,
            title=title,
            release_year=year,
            imdb_id=imdb_id,
        )
    except ValueError as e:
        log.info("resolve_bad_request", tmdb_id=tmdb_id, error=str(e))
        return JSONResponse(status_code=400, content={"error": str(e)})
    return await _resolve(request, media, source_order, embed_order, timeout_ms)
