from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request

from streamscout.infrastructure.config import AppConfig
from streamscout.interfaces.app_state import AppState
from streamscout.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def build_app(config: AppConfig) -> FastAPI:
    """Build the FastAPI app: configuration only, no resources.

    The HTTP client, providers and metrics are created in lifespan().
    """
    app = FastAPI(
        title="Streamscout",
        description="Resolve movies and episodes to playable streams",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from streamscout.interfaces.api.providers.router import router as providers_router
    from streamscout.interfaces.api.resolve.router import router as resolve_router
    from streamscout.interfaces.api.stats.router import router as stats_router

    app.include_router(providers_router)
    app.include_router(resolve_router)
    app.include_router(stats_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=str(request.url.query),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
