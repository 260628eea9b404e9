"""Transcoding engine adapters.

Modules:
- interface: TranscodeEngine protocol and factory type
- ffmpeg: FFmpegEngine (subprocess-backed)
- stub: StubEngine (scripted, in-memory)
- parsers: ffprobe JSON -> StreamProbe
- progress: FFmpeg stderr progress parsing
- formatters: human/JSON probe output
"""

from vto.engine.ffmpeg import FFmpegEngine
from vto.engine.interface import EngineFactory, TranscodeEngine
from vto.engine.stub import StubEngine

__all__ = [
    "EngineFactory",
    "FFmpegEngine",
    "StubEngine",
    "TranscodeEngine",
]
