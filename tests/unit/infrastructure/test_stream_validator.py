"""Tests for HttpStreamValidator playability probes."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from streamscout.domain.entities import (
    FetchResponse,
    FileStream,
    HlsStream,
    StreamFile,
    ValidationContext,
)
from streamscout.domain.exceptions import FetchError
from streamscout.infrastructure.validation.http_stream_validator import (
    AcceptAllValidator,
    HttpStreamValidator,
)


def _response(status: int) -> FetchResponse:
    return FetchResponse(status=status, body="", final_url="https://cdn.test/")


def _context(
    proxied: AsyncMock, *, provider_id: str = "src", timeout: float | None = None
) -> ValidationContext:
    return ValidationContext(
        fetcher=AsyncMock(),
        proxied_fetcher=proxied,
        provider_id=provider_id,
        timeout=timeout,
    )


def _file_stream() -> FileStream:
    return FileStream(
        id="f",
        qualities={
            "720": StreamFile(url="https://cdn.test/720.mp4"),
            "1080": StreamFile(url="https://cdn.test/1080.mp4"),
        },
        headers={"Referer": "https://site.test/"},
    )


class TestHls:
    async def test_status_200_is_valid(self, hls_stream: HlsStream) -> None:
        proxied = AsyncMock()
        proxied.full.return_value = _response(200)
        validator = HttpStreamValidator()
        assert await validator.validate(hls_stream, _context(proxied)) is hls_stream
        proxied.full.assert_awaited_once()
        assert proxied.full.await_args.args == (hls_stream.playlist,)

    @pytest.mark.parametrize("status", [403, 404, 500])
    async def test_non_200_is_rejected(self, hls_stream: HlsStream, status: int) -> None:
        proxied = AsyncMock()
        proxied.full.return_value = _response(status)
        assert await HttpStreamValidator().validate(hls_stream, _context(proxied)) is None

    async def test_fetch_error_is_rejected(self, hls_stream: HlsStream) -> None:
        proxied = AsyncMock()
        proxied.full.side_effect = FetchError("boom", url=hls_stream.playlist)
        assert await HttpStreamValidator().validate(hls_stream, _context(proxied)) is None

    async def test_data_playlist_skips_probe(self) -> None:
        stream = HlsStream(id="d", playlist="data:application/vnd.apple.mpegurl;base64,AA")
        proxied = AsyncMock()
        assert await HttpStreamValidator().validate(stream, _context(proxied)) is stream
        proxied.full.assert_not_awaited()

    async def test_headers_sent_with_probe(self) -> None:
        stream = HlsStream(
            id="h",
            playlist="https://cdn.test/a.m3u8",
            headers={"Referer": "https://site.test/"},
            preferred_headers={"Origin": "https://site.test"},
        )
        proxied = AsyncMock()
        proxied.full.return_value = _response(200)
        await HttpStreamValidator().validate(stream, _context(proxied))
        assert proxied.full.await_args.kwargs["headers"] == {
            "Origin": "https://site.test",
            "Referer": "https://site.test/",
        }


class TestFile:
    async def test_all_qualities_alive(self) -> None:
        stream = _file_stream()
        proxied = AsyncMock()
        proxied.full.return_value = _response(206)
        assert await HttpStreamValidator().validate(stream, _context(proxied)) is stream
        headers = proxied.full.await_args.kwargs["headers"]
        assert headers["Range"] == "bytes=0-1"
        assert headers["Referer"] == "https://site.test/"

    async def test_dead_quality_dropped(self) -> None:
        stream = _file_stream()
        proxied = AsyncMock()
        proxied.full.side_effect = [_response(200), _response(404)]
        result = await HttpStreamValidator().validate(stream, _context(proxied))
        assert isinstance(result, FileStream)
        assert list(result.qualities) == ["720"]
        assert list(stream.qualities) == ["720", "1080"]

    async def test_all_dead_rejected(self) -> None:
        proxied = AsyncMock()
        proxied.full.side_effect = [_response(500), FetchError("x", url="u")]
        assert await HttpStreamValidator().validate(_file_stream(), _context(proxied)) is None


class TestSkipAndTimeouts:
    async def test_skip_ids_trusted(self, hls_stream: HlsStream) -> None:
        proxied = AsyncMock()
        validator = HttpStreamValidator(skip_ids=["trusted"])
        ctx = _context(proxied, provider_id="trusted")
        assert await validator.validate(hls_stream, ctx) is hls_stream
        proxied.full.assert_not_awaited()

    async def test_probe_timeout_capped_by_context(self, hls_stream: HlsStream) -> None:
        proxied = AsyncMock()
        proxied.full.return_value = _response(200)
        validator = HttpStreamValidator(timeout_seconds=10.0)
        await validator.validate(hls_stream, _context(proxied, timeout=2.5))
        assert proxied.full.await_args.kwargs["timeout"] == 2.5

    async def test_accept_all(self, hls_stream: HlsStream) -> None:
        ctx = _context(AsyncMock())
        assert await AcceptAllValidator().validate(hls_stream, ctx) is hls_stream
