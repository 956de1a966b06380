"""Time budget for one resolution and fetchers that respect it."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from streamscout.domain.entities.fetch import FetchResponse, HttpMethod
from streamscout.domain.exceptions import DeadlineExceededError
from streamscout.domain.ports.fetcher import FetcherPort

T = TypeVar("T")

Clock = Callable[[], float]


class Deadline:
    """Absolute expiry on a monotonic clock; ``None`` means unbounded."""

    __slots__ = ("_expires_at", "_clock")

    def __init__(self, expires_at: float | None, clock: Clock = time.monotonic) -> None:
        self._expires_at = expires_at
        self._clock = clock

    @classmethod
    def from_timeout_ms(
        cls, timeout_ms: int | None, clock: Clock = time.monotonic
    ) -> Deadline:
        if timeout_ms is None:
            return cls(None, clock)
        return cls(clock() + timeout_ms / 1000.0, clock)

    @classmethod
    def unbounded(cls) -> Deadline:
        return cls(None)

    @property
    def bounded(self) -> bool:
        return self._expires_at is not None

    def remaining(self) -> float | None:
        """Seconds left (never negative), or ``None`` when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def check(self) -> None:
        if self.expired:
            raise DeadlineExceededError("Resolution deadline exceeded")

    def cap(self, timeout: float | None) -> float | None:
        """The smaller of *timeout* and the remaining budget."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)

    async def run(
        self, factory: Callable[[], Awaitable[T]], *, limit: float | None = None
    ) -> T:
        """Await ``factory()`` within the remaining budget (and *limit*).

        The budget is checked before the awaitable is created.

        Raises:
            DeadlineExceededError: budget already spent, or ran out (or
                *limit* elapsed) while waiting.
        """
        self.check()
        timeout = self.cap(limit)
        if timeout is None:
            return await factory()
        try:
            return await asyncio.wait_for(_tag_inner_timeouts(factory()), timeout=timeout)
        except _InnerTimeout as e:
            # The awaited work timed out on its own; not ours to relabel.
            raise e.error from None
        except asyncio.TimeoutError as e:
            if limit is None or limit > timeout or self.expired:
                raise DeadlineExceededError("Resolution deadline exceeded") from e
            raise DeadlineExceededError(
                f"Attempt exceeded its {limit:.1f}s limit"
            ) from e


class _InnerTimeout(Exception):
    def __init__(self, error: BaseException) -> None:
        super().__init__(str(error))
        self.error = error


async def _tag_inner_timeouts(awaitable: Awaitable[T]) -> T:
    try:
        return await awaitable
    except asyncio.TimeoutError as e:
        raise _InnerTimeout(e) from e


class DeadlineFetcher:
    """Wraps a fetcher so no call starts after, or outlives, the deadline."""

    def __init__(self, inner: FetcherPort, deadline: Deadline) -> None:
        self._inner = inner
        self._deadline = deadline

    async def fetch(
        self,
        url: str,
        *,
        method: HttpMethod = "GET",
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
        query: Mapping[str, str] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> Any:
        self._deadline.check()
        return await self._inner.fetch(
            url,
            method=method,
            base_url=base_url,
            headers=headers,
            query=query,
            body=body,
            timeout=self._deadline.cap(timeout),
        )

    async def full(
        self,
        url: str,
        *,
        method: HttpMethod = "GET",
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
        query: Mapping[str, str] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> FetchResponse:
        self._deadline.check()
        return await self._inner.full(
            url,
            method=method,
            base_url=base_url,
            headers=headers,
            query=query,
            body=body,
            timeout=self._deadline.cap(timeout),
        )
