"""Core utilities shared across the orchestrator.

Modules:
- codecs: codec families, encoders, container matrix and resolver
- resolutions: named resolutions and downscale candidates
- timecode: timestamp parsing and duration formatting
- subprocess_utils: external tool lookup and invocation
"""

from vto.core.codecs import (
    COMPATIBILITY_MATRIX,
    ContainerProfile,
    ResolvedCodecs,
    codec_family_matches,
    get_compatible_codecs,
    get_encoder,
    is_codec_compatible,
    normalize_codec,
    resolve,
)
from vto.core.resolutions import compatible_resolutions, parse_resolution
from vto.core.timecode import format_eta, format_timestamp, parse_timestamp

__all__ = [
    # Codecs
    "COMPATIBILITY_MATRIX",
    "ContainerProfile",
    "ResolvedCodecs",
    "codec_family_matches",
    "get_compatible_codecs",
    "get_encoder",
    "is_codec_compatible",
    "normalize_codec",
    "resolve",
    # Resolutions
    "compatible_resolutions",
    "parse_resolution",
    # Time
    "format_eta",
    "format_timestamp",
    "parse_timestamp",
]
