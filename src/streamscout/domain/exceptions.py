"""Error taxonomy for provider resolution."""

from __future__ import annotations

from dataclasses import dataclass


class StreamscoutError(Exception):
    """Base class for all streamscout errors."""


class NotFoundError(StreamscoutError):
    """Raised by a provider when the requested title is not available there.

    Benign: the runner logs it and moves on to the next provider.
    """

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or "not found"
        super().__init__(f"Couldn't find a stream: {self.reason}")


class FetchError(StreamscoutError):
    """Raised by fetchers when a request fails or answers non-2xx."""

    def __init__(self, message: str, *, url: str, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class StreamRejectedError(StreamscoutError):
    """Raised when a well-formed stream fails the playability probe."""

    def __init__(self, stream_id: str, provider_id: str) -> None:
        self.stream_id = stream_id
        self.provider_id = provider_id
        super().__init__(f"Stream {stream_id!r} from {provider_id!r} failed validation")


class DeadlineExceededError(StreamscoutError, TimeoutError):
    """Raised when a resolution's time budget runs out mid-attempt."""


class ConfigError(StreamscoutError):
    """Fatal configuration problem, detected before any run starts."""


@dataclass(frozen=True)
class DuplicateGroup:
    """One set of providers sharing a key that must be unique."""

    kind: str  # "Sources/embeds", "Sources", "Embeds"
    key_name: str  # "ID" or "rank"
    key: str | int
    provider_ids: tuple[str, ...]
    provider_names: tuple[str, ...] = ()  # parallel to provider_ids when known

    def labels(self) -> list[str]:
        """``name (id)`` per provider, or the bare id when it has no distinct name."""
        names = self.provider_names or self.provider_ids
        return [
            f"{name} ({provider_id})" if name and name != provider_id else provider_id
            for provider_id, name in zip(self.provider_ids, names)
        ]

    def describe(self) -> str:
        return f"  {self.key_name} {self.key}: {', '.join(self.labels())}"


class ProviderConfigError(ConfigError):
    """Raised when the provider set violates an id/rank uniqueness rule.

    The message lists every offending group so all conflicts can be
    fixed in one pass.
    """

    def __init__(self, duplicates: list[DuplicateGroup]) -> None:
        self.duplicates = duplicates
        sections: list[str] = []
        for kind, key_name in (
            ("Sources/embeds", "ID"),
            ("Sources", "rank"),
            ("Embeds", "rank"),
        ):
            groups = [
                d for d in duplicates if d.kind == kind and d.key_name == key_name
            ]
            if groups:
                lines = "\n".join(g.describe() for g in groups)
                sections.append(f"{kind} have duplicate {key_name}s:\n{lines}")
        super().__init__("\n".join(sections))


class ProviderLoadError(ConfigError):
    """Raised when a provider module fails to import or exports nothing usable."""


class ProviderNotFoundError(ConfigError):
    """Raised when a provider id is not known to the registry."""
