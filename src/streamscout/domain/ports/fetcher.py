"""Port for the HTTP fetchers handed to providers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from streamscout.domain.entities.fetch import FetchResponse, HttpMethod


@runtime_checkable
class FetcherPort(Protocol):
    """Capability-scoped HTTP callable.

    Two instances exist per run: a plain fetcher and a proxied fetcher
    (requests routed through a CORS-stripping proxy).  Providers pick
    whichever the target site needs; the runner never calls either
    directly except through the stream validator.
    """

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
        """Return the decoded body (JSON or text).

        Raises ``FetchError`` on transport failures and non-2xx answers.
        """
        ...

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
        """Return status, headers, final URL and decoded body.

        Non-2xx answers are returned, not raised.
        """
        ...
