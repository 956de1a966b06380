"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from streamscout.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from streamscout.application.controls import ProviderControls
    from streamscout.domain.entities.run import RunOverrides
    from streamscout.infrastructure.metrics import ResolutionMetrics


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig
    default_overrides: RunOverrides

    # Infrastructure
    http_client: httpx.AsyncClient

    # Built provider set (registry + runner + run context)
    controls: ProviderControls

    # Metrics (in-memory counters)
    metrics: ResolutionMetrics
