"""Pydantic models for operation requests.

This module contains the validated request shapes accepted by the executors:
- DownscaleSpec: Optional resize applied during convert
- ConvertRequest: Container/codec conversion
- CompressRequest: Quality-driven re-encode in the source container
- TrimRequest: Time-range cut exported as original, GIF or WebP
- ExtractAudioRequest: Audio-only export
- OperationRequest: Tagged union of the above, discriminated on "operation"

All models forbid unknown fields, so a misspelled option is rejected before
any engine work happens.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from vto.core.codecs import AUDIO_OUTPUT_FORMATS, normalize_container
from vto.core.resolutions import parse_resolution
from vto.core.timecode import parse_timestamp, quick_range
from vto.domain.enums import Preset
from vto.exceptions import ValidationError

VALID_PRESETS = frozenset(p.value for p in Preset)

DEFAULT_PRESET = Preset.MEDIUM.value
DEFAULT_COMPRESS_QUALITY = 23

# -1 means "derive from the other dimension"
DERIVED_DIMENSION = -1


def _validate_preset(value: str) -> str:
    folded = value.casefold()
    if folded not in VALID_PRESETS:
        raise ValueError(
            f"Invalid preset '{value}'. "
            f"Must be one of: {', '.join(p.value for p in Preset)}"
        )
    return folded


class DownscaleSpec(BaseModel):
    """Target size for a downscaling convert.

    Either a resolution ("720p", "1280x720") or explicit width/height. A
    dimension of -1 is derived from the source aspect ratio.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    resolution: str | None = None
    width: int | None = None
    height: int | None = None
    maintain_aspect_ratio: bool = True

    @field_validator("width", "height")
    @classmethod
    def validate_dimension(cls, v: int | None) -> int | None:
        if v is not None and v != DERIVED_DIMENSION and v <= 0:
            raise ValueError("Dimensions must be positive or -1 (derived)")
        return v

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, v: str | None) -> str | None:
        if v is not None:
            parse_resolution(v)
        return v

    @model_validator(mode="after")
    def validate_target(self) -> DownscaleSpec:
        if self.resolution is not None:
            if self.width is not None or self.height is not None:
                raise ValueError("Give either resolution or width/height, not both")
            return self
        if self.width is None and self.height is None:
            raise ValueError("Downscale needs a resolution or width/height")
        if self.width in (None, DERIVED_DIMENSION) and self.height in (
            None,
            DERIVED_DIMENSION,
        ):
            raise ValueError("At least one dimension must be explicit")
        return self

    def dimensions(self) -> tuple[int, int]:
        """Return (width, height) with -1 for derived dimensions."""
        if self.resolution is not None:
            return parse_resolution(self.resolution)
        width = self.width if self.width is not None else DERIVED_DIMENSION
        height = self.height if self.height is not None else DERIVED_DIMENSION
        return width, height


class ConvertRequest(BaseModel):
    """Convert to another container, optionally changing codecs and size."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    operation: Literal["convert"] = "convert"
    target_container: str
    video_codec: str | None = None
    audio_codec: str | None = None
    preset: str = DEFAULT_PRESET
    downscale: DownscaleSpec | None = None

    @field_validator("target_container")
    @classmethod
    def validate_container(cls, v: str) -> str:
        key = normalize_container(v)
        if key is None:
            raise ValueError(f"Unsupported container '{v}'")
        return key

    @field_validator("preset")
    @classmethod
    def validate_preset(cls, v: str) -> str:
        return _validate_preset(v)


class CompressRequest(BaseModel):
    """Re-encode at a quality level, keeping the source container."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    operation: Literal["compress"] = "compress"
    quality: int = Field(default=DEFAULT_COMPRESS_QUALITY, ge=0, le=51)
    preset: str = DEFAULT_PRESET

    @field_validator("preset")
    @classmethod
    def validate_preset(cls, v: str) -> str:
        return _validate_preset(v)


class TrimRequest(BaseModel):
    """Cut a time range from the source."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    operation: Literal["trim"] = "trim"
    start: float
    end: float
    export_format: Literal["original", "gif", "webp"] = "original"
    loop: bool = True

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_time(cls, v: Any) -> float:
        if isinstance(v, (str, int, float)):
            return parse_timestamp(v)
        raise ValueError(f"Invalid timestamp: {v!r}")

    @model_validator(mode="after")
    def validate_range(self) -> TrimRequest:
        if self.end <= self.start:
            raise ValueError("Trim end must be after start")
        return self

    @classmethod
    def first_seconds(cls, duration: float, seconds: float, **kwargs: Any) -> TrimRequest:
        """Build a request covering the first N seconds of a file."""
        start, end = quick_range(duration, first=seconds)
        return cls(start=start, end=end, **kwargs)

    @classmethod
    def last_seconds(cls, duration: float, seconds: float, **kwargs: Any) -> TrimRequest:
        """Build a request covering the last N seconds of a file."""
        start, end = quick_range(duration, last=seconds)
        return cls(start=start, end=end, **kwargs)


class ExtractAudioRequest(BaseModel):
    """Export the primary audio track."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    operation: Literal["extract_audio"] = "extract_audio"
    audio_format: str = "mp3"

    @field_validator("audio_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        folded = v.casefold()
        if folded not in AUDIO_OUTPUT_FORMATS:
            raise ValueError(
                f"Unsupported audio format '{v}'. "
                f"Must be one of: {', '.join(AUDIO_OUTPUT_FORMATS)}"
            )
        return folded


OperationRequest = Annotated[
    Union[ConvertRequest, CompressRequest, TrimRequest, ExtractAudioRequest],
    Field(discriminator="operation"),
]

_REQUEST_ADAPTER: pydantic.TypeAdapter = pydantic.TypeAdapter(OperationRequest)

_REQUEST_TYPES: dict[str, type[BaseModel]] = {
    "convert": ConvertRequest,
    "compress": CompressRequest,
    "trim": TrimRequest,
    "extract_audio": ExtractAudioRequest,
}


def _format_pydantic_error(exc: pydantic.ValidationError) -> ValidationError:
    first = exc.errors()[0]
    parts = [str(part) for part in first.get("loc", ())]
    # Tagged-union errors are prefixed with the operation tag
    if parts and parts[0] in _REQUEST_TYPES:
        parts = parts[1:]
    loc = ".".join(parts)
    msg = first.get("msg", "invalid value")
    if first.get("type") == "extra_forbidden":
        msg = f"Unknown option '{loc}'"
    elif loc:
        msg = f"{loc}: {msg}"
    return ValidationError(msg, field=loc or None)


def parse_request(
    options: Mapping[str, Any] | BaseModel, operation: str | None = None
) -> BaseModel:
    """Validate caller options into a request model.

    Args:
        options: Option mapping or an already-built request model.
        operation: Expected operation name. When given, a mapping without an
            "operation" key is tagged with it; a mismatch is rejected.

    Returns:
        The validated request model.

    Raises:
        ValidationError: On unknown options, bad values or wrong operation.
    """
    if isinstance(options, BaseModel):
        model = options
    else:
        data = dict(options)
        if operation is not None:
            data.setdefault("operation", operation)
        try:
            model = _REQUEST_ADAPTER.validate_python(data)
        except pydantic.ValidationError as e:
            raise _format_pydantic_error(e) from e

    actual = getattr(model, "operation", None)
    if operation is not None and actual != operation:
        raise ValidationError(
            f"Expected a {operation} request, got {actual}", field="operation"
        )
    if actual not in _REQUEST_TYPES:
        raise ValidationError(f"Unknown operation '{actual}'", field="operation")
    return model
