"""Proxy planning: decide which streams need a rewriting proxy and rewrite them.

Players cannot attach arbitrary headers to media requests and browsers
refuse CORS-restricted media, so such streams are routed through a proxy
endpoint.  The original URL, headers and HLS rewrite depth travel in an
opaque ``payload`` query parameter (base64url-encoded JSON), e.g.::

    https://proxy.example.com/?payload=eyJ1cmwiOiAi...

The planner only builds URLs; serving them is the proxy's job.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from collections.abc import Mapping
from dataclasses import replace
from typing import Any
from urllib.parse import parse_qs, quote, urlencode

import structlog

from streamscout.domain.entities.features import FeatureSet, Flag
from streamscout.domain.entities.run import ProxyConfig
from streamscout.domain.entities.stream import FileStream, HlsStream, Stream

log = structlog.get_logger(__name__)

_PAYLOAD_PARAM = "payload"
_M3U8_PROXY_PATH = "/m3u8-proxy"
_M3U8_PROXY_RE = re.compile(r"https?://[^/]+/m3u8-proxy")

_PROXIED_FLAGS = frozenset({Flag.CORS_ALLOWED.value})


def encode_payload(payload: Mapping[str, Any]) -> str:
    """Encode a payload dict as unpadded base64url JSON."""
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def decode_payload_value(value: str) -> dict[str, Any] | None:
    """Inverse of :func:`encode_payload`; ``None`` for anything malformed."""
    padded = value + "=" * (-len(value) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError):
        return None
    if not isinstance(data, dict) or not isinstance(data.get("url"), str):
        return None
    return data


def _split_proxy_url(url: str) -> tuple[str, str] | None:
    """Return ``(base, encoded_payload)`` for a proxied URL, else ``None``."""
    if "?" not in url:
        return None
    base, query = url.split("?", 1)
    values = parse_qs(query).get(_PAYLOAD_PARAM)
    if not values or decode_payload_value(values[0]) is None:
        return None
    return base, values[0]


class ProxyPlanner:
    """Routes streams through the proxy configured in a ``ProxyConfig``.

    Stateless apart from the (immutable) config, so one planner per run
    context is cheap and runs never interfere with each other.
    """

    def __init__(self, config: ProxyConfig) -> None:
        self._config = config

    @property
    def config(self) -> ProxyConfig:
        return self._config

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    @staticmethod
    def needs_proxy(stream: Stream) -> bool:
        """True for CORS-restricted streams and for any header-bearing stream."""
        return not stream.is_cors_allowed or bool(stream.headers)

    def plan(self, stream: Stream) -> Stream:
        """Wrap *stream* if proxying is enabled and the stream needs it."""
        if not self._config.enabled or not self.needs_proxy(stream):
            return stream
        return self.wrap(stream)

    # ------------------------------------------------------------------
    # Rewriting
    # ------------------------------------------------------------------

    def wrap(self, stream: Stream, proxy_base_url: str | None = None) -> Stream:
        """Return a self-contained, CORS-safe copy of *stream*.

        Already-proxied URLs are not nested; only their proxy host is
        moved to the current base URL.
        """
        base = proxy_base_url or self._config.base_url
        if not base:
            raise ValueError("No proxy base URL configured")

        headers = dict(stream.headers) or None

        if isinstance(stream, HlsStream):
            playlist = self._wrap_url(
                stream.playlist,
                base,
                {
                    "type": "hls",
                    "url": stream.playlist,
                    "headers": headers,
                    "options": {"depth": stream.proxy_depth},
                },
            )
            wrapped: Stream = replace(
                stream, playlist=playlist, headers={}, flags=_PROXIED_FLAGS
            )
        elif isinstance(stream, FileStream):
            qualities = {
                label: replace(
                    f,
                    url=self._wrap_url(
                        f.url,
                        base,
                        {
                            "type": "mp4",
                            "url": f.url,
                            "headers": headers,
                            "options": {},
                        },
                    ),
                )
                for label, f in stream.qualities.items()
            }
            wrapped = replace(
                stream, qualities=qualities, headers={}, flags=_PROXIED_FLAGS
            )
        else:
            raise TypeError(f"Unsupported stream type: {type(stream).__name__}")

        log.debug("stream_proxied", stream_id=stream.id, type=stream.kind)
        return wrapped

    def _wrap_url(self, url: str, base: str, payload: dict[str, Any]) -> str:
        if _split_proxy_url(url) is not None:
            return self.rehost(url, base)
        if payload.get("headers") is None:
            payload.pop("headers")
        return f"{base}?{urlencode({_PAYLOAD_PARAM: encode_payload(payload)})}"

    def is_wrapped(self, url: str) -> bool:
        return _split_proxy_url(url) is not None

    def decode_payload(self, url: str) -> dict[str, Any] | None:
        """Recover the payload (original URL, headers, options) from a proxied URL."""
        parts = _split_proxy_url(url)
        if parts is None:
            return None
        return decode_payload_value(parts[1])

    def rehost(self, url: str, proxy_base_url: str | None = None) -> str:
        """Point an already-proxied URL at the current proxy base URL.

        Non-proxied URLs are returned untouched.
        """
        base = proxy_base_url or self._config.base_url
        parts = _split_proxy_url(url)
        if parts is None or not base:
            return url
        old_base, encoded = parts
        if old_base != base:
            log.info("proxy_url_rehosted", old_base=old_base, new_base=base)
        return f"{base}?{urlencode({_PAYLOAD_PARAM: encoded})}"

    # ------------------------------------------------------------------
    # m3u8-proxy helpers (for providers that build HLS proxy URLs themselves)
    # ------------------------------------------------------------------

    def _m3u8_base(self) -> str | None:
        base = self._config.m3u8_proxy_url or self._config.base_url
        return base.rstrip("/") if base else None

    def m3u8_proxy_url(
        self,
        url: str,
        features: FeatureSet | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Build an ``/m3u8-proxy`` URL for *url*.

        Without headers, a runtime that is not CORS-restricted (per
        *features*) gets the raw URL back; unknown *features* count as
        restricted.  Without a configured proxy the raw URL is returned.
        """
        base = self._m3u8_base()
        if base is None:
            return url

        encoded_url = quote(url, safe="")
        if headers:
            encoded_headers = quote(json.dumps(dict(headers)), safe="")
            return (
                f"{base}{_M3U8_PROXY_PATH}?url={encoded_url}"
                f"&headers={encoded_headers}&depth=1"
            )
        if features is not None and not features.cors_restricted:
            return url
        return f"{base}{_M3U8_PROXY_PATH}?url={encoded_url}&depth=1"

    def update_m3u8_proxy_url(self, url: str) -> str:
        """Move an existing ``/m3u8-proxy`` URL onto the configured proxy host."""
        base = self._m3u8_base()
        if base is None or f"{_M3U8_PROXY_PATH}?url=" not in url:
            return url
        return _M3U8_PROXY_RE.sub(
            lambda _: f"{base}{_M3U8_PROXY_PATH}", url, count=1
        )

