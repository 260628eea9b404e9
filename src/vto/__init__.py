"""Video Transcode Orchestrator.

Turns declarative convert, compress, trim and audio-extraction requests into
FFmpeg invocations, tracks their progress, supports cooperative cancellation
and recovers the engine after a crash.
"""

__version__ = "0.1.0"
