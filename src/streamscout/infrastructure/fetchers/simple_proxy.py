"""Fetcher that tunnels requests through a CORS-stripping "simple proxy".

The proxy receives the real target in the ``destination`` query
parameter.  Headers a browser would refuse to set are sent with an
``X-`` prefix and re-applied by the proxy; the URL the proxy finally
landed on comes back in ``X-Final-Destination``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import httpx

from streamscout.domain.entities.fetch import FetchResponse, HttpMethod
from streamscout.domain.exceptions import FetchError

from .standard import HttpxFetcher, build_url

FORBIDDEN_HEADERS = ("cookie", "referer", "origin", "user-agent")


def disguise_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Prefix browser-forbidden headers with ``X-``; keep the rest as-is."""
    out: dict[str, str] = {}
    for key, value in (headers or {}).items():
        if key.lower() in FORBIDDEN_HEADERS:
            out[f"X-{key}"] = value
        else:
            out[key] = value
    return out


def destination_url(url: str, query: Mapping[str, str] | None) -> str:
    if not query:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{urlencode(dict(query))}"


class SimpleProxyFetcher:
    """Routes every request through ``proxy_url``."""

    def __init__(
        self,
        proxy_url: str,
        http_client: httpx.AsyncClient,
        *,
        default_timeout: float = 15.0,
    ) -> None:
        self.proxy_url = proxy_url
        self._inner = HttpxFetcher(http_client, default_timeout=default_timeout)

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
        response = await self.full(
            url,
            method=method,
            base_url=base_url,
            headers=headers,
            query=query,
            body=body,
            timeout=timeout,
        )
        if not response.ok:
            raise FetchError(
                f"HTTP {response.status} for {response.final_url}",
                url=response.final_url,
                status=response.status,
            )
        return response.body

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
        target = destination_url(build_url(url, base_url), query)
        response = await self._inner.full(
            self.proxy_url,
            method=method,
            headers=disguise_headers(headers),
            query={"destination": target},
            body=body,
            timeout=timeout,
        )
        final_url = response.headers.get("x-final-destination") or target
        return FetchResponse(
            status=response.status,
            body=response.body,
            final_url=final_url,
            headers=response.headers,
        )
