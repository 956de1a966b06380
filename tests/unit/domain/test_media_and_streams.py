"""Tests for media requests, stream descriptors and run values."""

from __future__ import annotations

import pytest

from streamscout.domain.entities import (
    Caption,
    FileStream,
    HlsStream,
    MediaRequest,
    RunOutcome,
    RunOverrides,
    SourceOutput,
    StreamFile,
    is_valid_stream,
)
from streamscout.domain.entities.media import EpisodeRef, SeasonRef
from streamscout.domain.entities.stream import caption_type_from_url, stream_to_dict


class TestMediaRequest:
    def test_movie_factory(self) -> None:
        media = MediaRequest.movie(42, title="X", release_year=1999)
        assert media.type == "movie"
        assert media.tmdb_id == "42"
        assert media.is_show is False

    def test_show_factory(self) -> None:
        media = MediaRequest.show("7", 1, 2)
        assert media.is_show is True
        assert media.season == SeasonRef(number=1)
        assert media.episode == EpisodeRef(number=2)

    def test_show_requires_season_and_episode(self) -> None:
        with pytest.raises(ValueError, match="season and an episode"):
            MediaRequest(type="show", tmdb_id="7", season=SeasonRef(number=1))

    def test_show_rejects_zero_episode(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            MediaRequest.show("7", 1, 0)

    def test_movie_rejects_season(self) -> None:
        with pytest.raises(ValueError, match="movie"):
            MediaRequest(type="movie", tmdb_id="1", season=SeasonRef(number=1))

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown media type"):
            MediaRequest(type="anime", tmdb_id="1")  # type: ignore[arg-type]

    def test_empty_tmdb_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="tmdb_id"):
            MediaRequest.movie("")


class TestIsValidStream:
    def test_hls_with_playlist(self) -> None:
        assert is_valid_stream(HlsStream(id="a", playlist="https://x/m.m3u8"))

    def test_hls_without_playlist(self) -> None:
        assert not is_valid_stream(HlsStream(id="a", playlist=""))

    def test_file_with_known_quality(self) -> None:
        stream = FileStream(id="f", qualities={"720": StreamFile(url="https://x/a.mp4")})
        assert is_valid_stream(stream)

    def test_file_with_only_unknown_labels(self) -> None:
        stream = FileStream(id="f", qualities={"8k": StreamFile(url="https://x/a.mp4")})
        assert not is_valid_stream(stream)

    def test_file_with_empty_url(self) -> None:
        stream = FileStream(id="f", qualities={"1080": StreamFile(url="")})
        assert not is_valid_stream(stream)


class TestStreamValues:
    def test_flags_are_normalized(self) -> None:
        from streamscout.domain.entities import Flag

        stream = HlsStream(id="a", playlist="p", flags=[Flag.CORS_ALLOWED])
        assert stream.flags == frozenset({"cors-allowed"})
        assert stream.is_cors_allowed

    def test_caption_type_from_url(self) -> None:
        assert caption_type_from_url("https://x/en.vtt?token=1") == "vtt"
        assert caption_type_from_url("https://x/en.SRT") == "srt"
        assert caption_type_from_url("https://x/en.ass") is None

    def test_stream_to_dict_for_file(self) -> None:
        stream = FileStream(
            id="f",
            qualities={"1080": StreamFile(url="https://x/a.mp4")},
            headers={"Referer": "https://x/"},
            captions=[Caption(id="c1", url="https://x/en.srt", language="en")],
        )
        data = stream_to_dict(stream)
        assert data["type"] == "file"
        assert data["qualities"] == {"1080": {"type": "mp4", "url": "https://x/a.mp4"}}
        assert data["headers"] == {"Referer": "https://x/"}
        assert data["captions"][0]["language"] == "en"  # type: ignore[index]

    def test_outcome_to_dict(self, hls_stream: HlsStream) -> None:
        outcome = RunOutcome(source_id="s", stream=hls_stream, embed_id="e")
        data = outcome.to_dict()
        assert data["sourceId"] == "s"
        assert data["embedId"] == "e"
        assert data["stream"]["playlist"] == hls_stream.playlist  # type: ignore[index]

    def test_source_output_is_empty(self) -> None:
        assert SourceOutput().is_empty
        assert not SourceOutput(streams=[HlsStream(id="a", playlist="p")]).is_empty


class TestRunOverrides:
    def test_lists_become_tuples(self) -> None:
        overrides = RunOverrides(source_order=["a", "b"])  # type: ignore[arg-type]
        assert overrides.source_order == ("a", "b")

    def test_negative_timeout_rejected(self) -> None:
        with pytest.raises(ValueError):
            RunOverrides(timeout_ms=-1)
