"""httpx-backed fetcher handed to providers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin

import httpx
import structlog

from streamscout.domain.entities.fetch import FetchResponse, HttpMethod
from streamscout.domain.exceptions import FetchError

log = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


def build_url(url: str, base_url: str | None = None) -> str:
    """Resolve *url* against *base_url* (if given).

    >>> build_url("/api/movie/1", "https://example.com/")
    'https://example.com/api/movie/1'
    """
    if not base_url:
        return url
    if not base_url.endswith("/") and not url.startswith("/"):
        base_url = f"{base_url}/"
    return urljoin(base_url, url)


class FormBody:
    """Marker for ``application/x-www-form-urlencoded`` request bodies."""

    __slots__ = ("fields",)

    def __init__(self, fields: Mapping[str, str]) -> None:
        self.fields = fields


def serialize_body(body: Any) -> dict[str, Any]:
    """Map a provider-supplied body onto httpx request kwargs.

    Strings and bytes go out verbatim, mappings of plain strings are
    form-encoded only when wrapped in ``FormBody``; everything else is
    sent as JSON.
    """
    if body is None:
        return {}
    if isinstance(body, (str, bytes)):
        return {"content": body}
    if isinstance(body, FormBody):
        return {"data": dict(body.fields)}
    return {"json": body}


def decode_body(response: httpx.Response) -> Any:
    """JSON for JSON responses, text otherwise."""
    content_type = response.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return response.text
    return response.text


class HttpxFetcher:
    """Fetcher port implementation on top of a shared ``httpx.AsyncClient``.

    The client is injected and owned by the composition root.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        default_timeout: float = 15.0,
    ) -> None:
        self.http_client = http_client
        self.default_timeout = default_timeout

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
        full_url = build_url(url, base_url)
        try:
            response = await self.http_client.request(
                method,
                full_url,
                headers=dict(headers or {}),
                params=dict(query) if query else None,
                timeout=timeout if timeout is not None else self.default_timeout,
                **serialize_body(body),
            )
        except httpx.TimeoutException as exc:
            log.debug("fetch_timeout", url=full_url, method=method)
            raise FetchError(f"Timeout fetching {full_url}", url=full_url) from exc
        except httpx.HTTPError as exc:
            log.debug("fetch_http_error", url=full_url, method=method, error=str(exc))
            raise FetchError(
                f"Error fetching {full_url}: {exc}", url=full_url
            ) from exc

        return FetchResponse(
            status=response.status_code,
            body=decode_body(response) if method != "HEAD" else "",
            final_url=str(response.url),
            headers=dict(response.headers),
        )
