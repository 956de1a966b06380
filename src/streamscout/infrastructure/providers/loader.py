from __future__ import annotations

import importlib.util
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog

from streamscout.domain.entities.provider import Embed, Source
from streamscout.domain.exceptions import ProviderLoadError

log = structlog.get_logger(__name__)


@dataclass
class LoadedProviders:
    sources: list[Source] = field(default_factory=list)
    embeds: list[Embed] = field(default_factory=list)

    def extend(self, other: LoadedProviders) -> None:
        self.sources.extend(other.sources)
        self.embeds.extend(other.embeds)


def _import_module_from_path(path: Path) -> ModuleType:
    module_name = f"streamscout_dynamic_provider_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, str(path))
    if spec is None or spec.loader is None:
        raise ProviderLoadError(f"Could not create import spec for {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)  # type: ignore[union-attr]
    except SyntaxError as e:
        tb = traceback.format_exc()
        raise ProviderLoadError(f"SyntaxError while importing {path}:\n{tb}") from e
    except Exception as e:
        tb = traceback.format_exc()
        raise ProviderLoadError(f"Error while importing {path}:\n{tb}") from e

    return module


def _collect(module: ModuleType, single: str, plural: str, kind: type) -> list[Any]:
    found: list[Any] = []
    if hasattr(module, single):
        found.append(getattr(module, single))
    found.extend(getattr(module, plural, None) or [])
    for item in found:
        if not isinstance(item, kind):
            raise ProviderLoadError(
                f"'{single}'/'{plural}' must hold {kind.__name__} objects, "
                f"got {type(item).__name__}"
            )
    return found


def load_provider_module(path: Path) -> LoadedProviders:
    """Import one provider file.

    A provider module exports any of ``source``, ``sources``, ``embed``
    or ``embeds`` (built with ``make_source``/``make_embed``).
    """
    try:
        module = _import_module_from_path(path)
        loaded = LoadedProviders(
            sources=_collect(module, "source", "sources", Source),
            embeds=_collect(module, "embed", "embeds", Embed),
        )
        if not loaded.sources and not loaded.embeds:
            raise ProviderLoadError(
                "Provider module must export 'source', 'sources', 'embed' or 'embeds'"
            )
        return loaded
    except ProviderLoadError as e:
        log.error(
            "provider_load_failed",
            provider_file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise


def load_providers(directory: Path) -> LoadedProviders:
    """Import every ``*.py`` provider module in *directory* (sorted by name).

    Files starting with ``_`` are skipped.  A missing directory yields an
    empty result; a broken module raises ``ProviderLoadError``.
    """
    loaded = LoadedProviders()

    if not directory.is_dir():
        log.warning("provider_directory_not_found", directory=str(directory))
        return loaded

    for path in sorted(directory.iterdir(), key=lambda p: p.name):
        if path.is_dir() or path.suffix.lower() != ".py":
            continue
        if path.name.startswith("_"):
            continue
        loaded.extend(load_provider_module(path))

    log.info(
        "providers_discovered",
        sources=len(loaded.sources),
        embeds=len(loaded.embeds),
        directory=str(directory),
    )
    return loaded
