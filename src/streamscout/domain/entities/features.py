"""Provider/stream flags and runtime feature negotiation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


class Flag(str, Enum):
    """Capability tags carried by providers and streams."""

    CORS_ALLOWED = "cors-allowed"
    IP_LOCKED = "ip-locked"
    CF_BLOCKED = "cf-blocked"
    PROXY_BLOCKED = "proxy-blocked"


Target = Literal["browser", "browser-extension", "native", "any"]

TARGETS: tuple[Target, ...] = ("browser", "browser-extension", "native", "any")


def normalize_flags(flags: Iterable[str | Flag]) -> frozenset[str]:
    """Coerce a mix of ``Flag`` members and plain strings to string values."""
    return frozenset(f.value if isinstance(f, Flag) else str(f) for f in flags)


@dataclass(frozen=True)
class FeatureSet:
    """The flags a runtime can honour.

    A provider or stream is usable only when every flag it declares is
    in ``allowed``.  ``requires`` lists flags the runtime cannot do
    without, e.g. a browser needs ``cors-allowed`` media.
    """

    allowed: frozenset[str] = field(default_factory=frozenset)
    requires: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, *flags: str | Flag) -> FeatureSet:
        return cls(allowed=normalize_flags(flags))

    def __contains__(self, flag: object) -> bool:
        if isinstance(flag, Flag):
            flag = flag.value
        return flag in self.allowed

    def union(self, other: FeatureSet) -> FeatureSet:
        return FeatureSet(
            allowed=self.allowed | other.allowed,
            requires=self.requires | other.requires,
        )

    @property
    def cors_restricted(self) -> bool:
        return Flag.CORS_ALLOWED.value in self.requires


def is_compatible(flags: Iterable[str | Flag], features: FeatureSet) -> bool:
    """Return True if *features* honours every flag in *flags*."""
    return normalize_flags(flags) <= features.allowed


_TARGET_BASE: dict[Target, frozenset[str]] = {
    "browser": frozenset({Flag.CORS_ALLOWED.value}),
    "browser-extension": frozenset({Flag.CORS_ALLOWED.value, Flag.CF_BLOCKED.value}),
    "native": frozenset({Flag.CORS_ALLOWED.value, Flag.CF_BLOCKED.value}),
    "any": frozenset({Flag.CORS_ALLOWED.value, Flag.CF_BLOCKED.value}),
}

_TARGET_REQUIRES: dict[Target, frozenset[str]] = {
    "browser": frozenset({Flag.CORS_ALLOWED.value}),
}


def get_target_features(
    target: Target,
    *,
    consistent_ip: bool = False,
    proxy_streams: bool = False,
) -> FeatureSet:
    """Derive the feature set for a playback target.

    ``ip-locked`` streams only play when every request leaves from the
    same IP.  ``proxy-blocked`` streams break once routed through a
    proxy, so they are excluded when streams are going to be proxied.
    """
    try:
        allowed = set(_TARGET_BASE[target])
    except KeyError:
        raise ValueError(f"Unknown target: {target!r}") from None

    if consistent_ip:
        allowed.add(Flag.IP_LOCKED.value)
    if not proxy_streams:
        allowed.add(Flag.PROXY_BLOCKED.value)
    return FeatureSet(
        allowed=frozenset(allowed),
        requires=_TARGET_REQUIRES.get(target, frozenset()),
    )
