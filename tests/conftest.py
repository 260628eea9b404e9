"""Shared test fixtures for the video transcode orchestrator."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from vto.config.loader import clear_config_cache
from vto.domain.models import (
    AudioStreamInfo,
    StreamProbe,
    SubtitleStreamInfo,
    VideoStreamInfo,
)
from vto.engine.stub import StubEngine
from vto.toolbox import TranscodeToolbox


def make_probe(
    container: str | None = "mp4",
    video_codec: str | None = "h264",
    audio_codec: str | None = "aac",
    width: int = 1920,
    height: int = 1080,
    duration: float | None = 60.0,
) -> StreamProbe:
    """Build a probe with at most one video and one audio stream."""
    video = (
        (VideoStreamInfo(index=0, codec=video_codec, width=width, height=height, fps=30.0),)
        if video_codec
        else ()
    )
    audio_index = 1 if video else 0
    audio = (
        (AudioStreamInfo(index=audio_index, codec=audio_codec, channels=2, is_default=True),)
        if audio_codec
        else ()
    )
    return StreamProbe(
        container=container,
        format_name=container,
        duration_seconds=duration,
        size_bytes=1_000_000,
        video_streams=video,
        audio_streams=audio,
    )


@pytest.fixture
def probe_factory() -> Callable[..., StreamProbe]:
    """The make_probe builder, for tests that need custom probes."""
    return make_probe


@pytest.fixture
def mp4_probe() -> StreamProbe:
    """H.264/AAC 1080p MP4, 60 seconds."""
    return make_probe()


@pytest.fixture
def mkv_probe() -> StreamProbe:
    """HEVC/Opus MKV with a subtitle track, 90 seconds."""
    return StreamProbe(
        container="mkv",
        format_name="matroska,webm",
        duration_seconds=90.0,
        video_streams=(VideoStreamInfo(index=0, codec="hevc", width=1280, height=720),),
        audio_streams=(
            AudioStreamInfo(index=1, codec="opus", language="jpn"),
            AudioStreamInfo(index=2, codec="aac", language="eng", is_default=True),
        ),
        subtitle_streams=(SubtitleStreamInfo(index=3, codec="subrip", language="eng"),),
    )


@pytest.fixture
def audio_only_probe() -> StreamProbe:
    """MP4 with only an AAC track."""
    return make_probe(video_codec=None)


@pytest.fixture
def video_only_probe() -> StreamProbe:
    """MP4 with only an H.264 track."""
    return make_probe(audio_codec=None)


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    """A placeholder source file the stub engine can mount."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00" * 64)
    return path


@pytest.fixture
def stub_engine(mp4_probe: StreamProbe) -> StubEngine:
    return StubEngine(probe=mp4_probe)


@pytest.fixture
def engine_factory(stub_engine: StubEngine) -> Callable[[], StubEngine]:
    """Factory returning the shared stub engine; records every call."""
    calls: list[StubEngine] = []

    def factory() -> StubEngine:
        calls.append(stub_engine)
        return stub_engine

    factory.calls = calls  # type: ignore[attr-defined]
    return factory


@pytest.fixture
def toolbox(engine_factory: Callable[[], StubEngine]) -> TranscodeToolbox:
    """Toolbox backed by the stub engine."""
    tb = TranscodeToolbox(engine_factory)
    yield tb
    tb.close()


@pytest.fixture(autouse=True)
def _clear_config_cache():
    """Config files are cached by path; keep tests isolated."""
    clear_config_cache()
    yield
    clear_config_cache()
