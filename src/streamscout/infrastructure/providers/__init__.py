"""Provider discovery and the validated provider registry."""

from __future__ import annotations

from .loader import LoadedProviders, load_provider_module, load_providers
from .registry import ProviderRegistry, ProviderSelection

__all__ = [
    "LoadedProviders",
    "ProviderRegistry",
    "ProviderSelection",
    "load_provider_module",
    "load_providers",
]
