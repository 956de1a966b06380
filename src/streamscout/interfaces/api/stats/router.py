"""Runtime metrics endpoint."""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from streamscout.interfaces.app_state import AppState

router = APIRouter(tags=["stats"])


@router.get("/stats")
async def stats(request: Request) -> JSONResponse:
    """Return in-memory resolution metrics (per provider and overall)."""
    state = cast(AppState, request.app.state)
    m = getattr(state, "metrics", None)
    if m is None:
        return JSONResponse(status_code=503, content={"error": "metrics_unavailable"})
    return JSONResponse(content=m.snapshot())
