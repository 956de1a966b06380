"""Provider introspection endpoints."""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from streamscout.interfaces.app_state import AppState

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("")
async def list_providers(request: Request) -> JSONResponse:
    """Selected sources and embeds, each in descending rank order."""
    state = cast(AppState, request.app.state)
    controls = state.controls
    return JSONResponse(
        content={
            "target": state.config.target,
            "features": sorted(controls.features.allowed),
            "sources": [m.to_dict() for m in controls.list_sources()],
            "embeds": [m.to_dict() for m in controls.list_embeds()],
        }
    )


@router.get("/{provider_id}")
async def get_provider(request: Request, provider_id: str) -> JSONResponse:
    state = cast(AppState, request.app.state)
    meta = state.controls.get_metadata(provider_id)
    if meta is None:
        return JSONResponse(
            status_code=404,
            content={"error": f"unknown provider: {provider_id}"},
        )
    return JSONResponse(content=meta.to_dict())
