"""In-memory resolution metrics.

Counters are plain integers mutated on the single-threaded event loop,
so no locking is needed.  Timing uses ``time.perf_counter_ns()``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class ProviderStats:
    """Accumulated attempt statistics for a single provider."""

    kind: str
    attempts: int = 0
    successes: int = 0
    not_found: int = 0
    failures: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable summary."""
        avg_ms = (
            round(self.total_duration_ns / self.attempts / 1_000_000, 1)
            if self.attempts
            else 0.0
        )
        return {
            "kind": self.kind,
            "attempts": self.attempts,
            "successes": self.successes,
            "not_found": self.not_found,
            "failures": self.failures,
            "avg_duration_ms": avg_ms,
        }


@dataclass
class ResolutionStats:
    """Accumulated statistics over whole resolutions."""

    runs: int = 0
    resolved: int = 0
    exhausted: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        avg_ms = (
            round(self.total_duration_ns / self.runs / 1_000_000, 1)
            if self.runs
            else 0.0
        )
        return {
            "runs": self.runs,
            "resolved": self.resolved,
            "exhausted": self.exhausted,
            "avg_duration_ms": avg_ms,
        }


@dataclass
class ResolutionMetrics:
    """Central in-memory metrics collector for the runner.

    Splits failures from not-found per provider, which tells flaky
    providers apart from ones that simply lack the title.
    """

    _providers: dict[str, ProviderStats] = field(default_factory=dict)
    _resolutions: ResolutionStats = field(default_factory=ResolutionStats)
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_attempt(
        self, provider_id: str, kind: str, status: str, duration_ns: int
    ) -> None:
        """Record one source or embed attempt."""
        stats = self._providers.get(provider_id)
        if stats is None:
            stats = ProviderStats(kind=kind)
            self._providers[provider_id] = stats

        stats.attempts += 1
        stats.total_duration_ns += duration_ns

        if status == "success":
            stats.successes += 1
        elif status == "notfound":
            stats.not_found += 1
        else:
            stats.failures += 1

    def record_resolution(self, duration_ns: int, *, resolved: bool) -> None:
        """Record one full resolution."""
        self._resolutions.runs += 1
        self._resolutions.total_duration_ns += duration_ns
        if resolved:
            self._resolutions.resolved += 1
        else:
            self._resolutions.exhausted += 1

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def provider(self, provider_id: str) -> ProviderStats | None:
        return self._providers.get(provider_id)

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_ns = time.perf_counter_ns() - self._start_ns
        uptime_s = round(uptime_ns / 1_000_000_000, 1)

        return {
            "uptime_seconds": uptime_s,
            "resolutions": self._resolutions.snapshot(),
            "providers": {
                name: stats.snapshot()
                for name, stats in sorted(self._providers.items())
            },
        }
