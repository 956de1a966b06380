"""HTTP playability probe for resolved streams.

HLS streams are checked by fetching the playlist; file streams by a
two-byte ranged GET per quality.  Dead qualities are dropped, and a
stream with no live quality left is rejected.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace

import structlog

from streamscout.domain.entities.context import ValidationContext
from streamscout.domain.entities.stream import FileStream, HlsStream, Stream
from streamscout.domain.exceptions import FetchError

log = structlog.get_logger(__name__)

_RANGE_HEADERS = {"Range": "bytes=0-1"}
_FILE_OK_STATUSES = frozenset({200, 206})


class HttpStreamValidator:
    """Validates streams through the run's proxied fetcher.

    Args:
        skip_ids: Provider ids whose streams are trusted without probing.
        timeout_seconds: Max time per probe request (default: 10s).
    """

    def __init__(
        self,
        skip_ids: Iterable[str] = (),
        timeout_seconds: float = 10.0,
    ) -> None:
        self.skip_ids = frozenset(skip_ids)
        self.timeout = timeout_seconds

    def _probe_timeout(self, context: ValidationContext) -> float:
        if context.timeout is None:
            return self.timeout
        return min(self.timeout, context.timeout)

    async def validate(
        self, stream: Stream, context: ValidationContext
    ) -> Stream | None:
        if context.provider_id in self.skip_ids:
            log.debug("stream_validation_skipped", provider=context.provider_id)
            return stream

        if isinstance(stream, HlsStream):
            if stream.playlist.startswith("data:"):
                return stream
            return stream if await self._check_hls(stream, context) else None

        if isinstance(stream, FileStream):
            return await self._check_file(stream, context)

        return None

    async def _check_hls(self, stream: HlsStream, context: ValidationContext) -> bool:
        headers = {**stream.preferred_headers, **stream.headers}
        status = await self._status(stream.playlist, headers, context)
        is_valid = status == 200
        log.debug(
            "hls_probe_result",
            provider=context.provider_id,
            url=stream.playlist,
            status_code=status,
            valid=is_valid,
        )
        return is_valid

    async def _check_file(
        self, stream: FileStream, context: ValidationContext
    ) -> FileStream | None:
        headers = {**stream.preferred_headers, **stream.headers, **_RANGE_HEADERS}
        alive = {}
        for label, file in stream.qualities.items():
            status = await self._status(file.url, headers, context)
            if status in _FILE_OK_STATUSES:
                alive[label] = file
            else:
                log.debug(
                    "file_quality_dead",
                    provider=context.provider_id,
                    quality=label,
                    status_code=status,
                )

        if not alive:
            return None
        if len(alive) == len(stream.qualities):
            return stream
        return replace(stream, qualities=alive)

    async def _status(
        self,
        url: str,
        headers: Mapping[str, str],
        context: ValidationContext,
    ) -> int | None:
        """HTTP status of a GET on *url*, or ``None`` if it could not be fetched."""
        try:
            response = await context.proxied_fetcher.full(
                url,
                method="GET",
                headers=headers,
                timeout=self._probe_timeout(context),
            )
        except FetchError as e:
            log.warning(
                "stream_probe_failed",
                provider=context.provider_id,
                url=url,
                error=str(e),
            )
            return None
        return response.status


class AcceptAllValidator:
    """Validator that trusts every stream (offline use and tests)."""

    async def validate(
        self, stream: Stream, context: ValidationContext
    ) -> Stream | None:
        return stream
