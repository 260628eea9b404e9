"""Operation executors.

Each executor validates caller options into a request, consults the cached
probe, resolves codecs, builds the FFmpeg command and runs it through the
session manager. Probe-dependent validation happens before the engine is
touched, so a ValidationError never reaches the engine.

Executors:
- ConvertExecutor: container/codec conversion with optional downscale
- CompressExecutor: quality-driven re-encode in the source container
- TrimExecutor: time-range cut as original format, GIF or WebP
- ExtractAudioExecutor: audio-only export
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel

from vto.config.models import AnimationConfig, EncodingConfig, LimitsConfig
from vto.core.codecs import (
    ANIMATION_MIME_TYPES,
    AUDIO_OUTPUT_FORMATS,
    COMPATIBILITY_MATRIX,
    ResolvedCodecs,
    get_container_profile,
    resolve,
)
from vto.domain.enums import OperationKind, TrimFormat
from vto.domain.models import CopiedStreams, OperationResult, StreamProbe
from vto.engine.interface import TranscodeEngine
from vto.exceptions import TranscodeIOError, ValidationError
from vto.operations import command
from vto.operations.command import CommandIO
from vto.operations.context import OperationContext
from vto.operations.requests import (
    CompressRequest,
    ConvertRequest,
    ExtractAudioRequest,
    TrimRequest,
    parse_request,
)
from vto.session.manager import MediaSession, SessionHandle, SessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedOutput:
    """Everything about an operation's output decided before execution."""

    extension: str
    filename: str
    mime_type: str
    copied: CopiedStreams
    duration_seconds: float | None


@dataclass(frozen=True)
class OperationOutcome:
    """Value returned from an executor: the result and its context."""

    result: OperationResult
    context: OperationContext


def _stem(source_name: str) -> str:
    return PurePath(source_name).stem or "output"


class OperationExecutor(ABC):
    """Base class for executors.

    Subclasses implement plan() for validation and output naming, and
    build() for the command. Both are pure with respect to the engine.
    """

    kind: OperationKind

    def __init__(
        self,
        sessions: SessionManager,
        limits: LimitsConfig | None = None,
        encoding: EncodingConfig | None = None,
        animation: AnimationConfig | None = None,
    ) -> None:
        self.sessions = sessions
        self.limits = limits or LimitsConfig()
        self.encoding = encoding or EncodingConfig()
        self.animation = animation or AnimationConfig()

    def validate(self, options: Mapping[str, Any] | BaseModel) -> BaseModel:
        """Validate options into this executor's request type."""
        return parse_request(options, self.kind.value)

    @abstractmethod
    def plan(self, probe: StreamProbe, request: Any, source_name: str) -> PlannedOutput:
        """Validate the request against the probe and decide the output.

        Raises:
            ValidationError: If the request cannot apply to this source.
        """

    @abstractmethod
    def build(self, probe: StreamProbe, request: Any, io: CommandIO) -> list[str]:
        """Build the FFmpeg arguments."""

    def execute(
        self,
        handle: SessionHandle,
        options: Mapping[str, Any] | BaseModel,
        context: OperationContext,
    ) -> OperationOutcome:
        """Run the operation end to end.

        Raises:
            ValidationError: Before any engine call, on invalid options.
            OperationCanceled: If the context's token is cancelled.
            EngineFault: If the engine crashed (after recovery was attempted).
            TranscodeIOError: If the output cannot be read.
        """
        request = self.validate(options)
        probe = self.sessions.get_probe(handle)
        planned = self.plan(probe, request, handle.source_name)
        context.check_cancelled()

        logger.info(
            "Starting %s of %s -> %s",
            self.kind.value,
            handle.source_name,
            planned.filename,
        )

        def run(engine: TranscodeEngine, session: MediaSession) -> bytes:
            output_name = f"{context.operation_id}.{planned.extension}"
            io = CommandIO(input_ref=session.input_ref, output_name=output_name)
            args = self.build(probe, request, io)
            context.monitor.start()
            try:
                engine.execute(
                    args,
                    cancel_token=context.token,
                    progress_callback=context.report,
                    duration_seconds=planned.duration_seconds,
                    tick_callback=context.tick,
                )
                return engine.read_output(output_name)
            finally:
                self._discard(engine, output_name)

        data = self.sessions.with_engine(handle, run)
        context.monitor.complete()
        result = OperationResult(
            data=data,
            filename=planned.filename,
            mime_type=planned.mime_type,
            operation=self.kind,
            copied_streams=planned.copied,
        )
        logger.info(
            "Finished %s: %s (%d bytes)", self.kind.value, result.filename, result.size_bytes
        )
        return OperationOutcome(result=result, context=context)

    @staticmethod
    def _discard(engine: TranscodeEngine, output_name: str) -> None:
        try:
            engine.remove_output(output_name)
        except TranscodeIOError as e:
            logger.warning("Could not remove engine output %s: %s", output_name, e)


def _require_streams(probe: StreamProbe) -> None:
    if not probe.has_video and not probe.has_audio:
        raise ValidationError("Source has no audio or video streams", field="source")


class ConvertExecutor(OperationExecutor):
    """Convert to another container, copying tracks where possible."""

    kind = OperationKind.CONVERT

    def plan(
        self, probe: StreamProbe, request: ConvertRequest, source_name: str
    ) -> PlannedOutput:
        _require_streams(probe)
        if request.downscale is not None:
            self._check_downscale(probe, request)

        resolved = resolve(
            request.target_container, request.video_codec, request.audio_codec
        )
        if resolved.changed:
            logger.warning(
                "Requested codecs %s/%s are not valid in %s; using %s/%s",
                request.video_codec,
                request.audio_codec,
                resolved.container,
                resolved.video,
                resolved.audio,
            )
        copy_plan = command.plan_convert_copy(probe, request, resolved)
        profile = get_container_profile(resolved.container)
        return PlannedOutput(
            extension=profile.extension,
            filename=f"{_stem(source_name)}_converted.{profile.extension}",
            mime_type=profile.mime_type,
            copied=CopiedStreams(
                video=probe.has_video and copy_plan.video.copy,
                audio=probe.has_audio and copy_plan.audio.copy,
            ),
            duration_seconds=probe.duration_seconds,
        )

    @staticmethod
    def _check_downscale(probe: StreamProbe, request: ConvertRequest) -> None:
        assert request.downscale is not None
        video = probe.primary_video
        if video is None:
            raise ValidationError("Cannot downscale a source without video", field="downscale")
        width, height = request.downscale.dimensions()
        if (video.width and width > video.width) or (
            video.height and height > video.height
        ):
            raise ValidationError(
                f"Downscale target {width}x{height} exceeds source "
                f"{video.width}x{video.height}",
                field="downscale",
            )

    def build(
        self, probe: StreamProbe, request: ConvertRequest, io: CommandIO
    ) -> list[str]:
        resolved = resolve(
            request.target_container, request.video_codec, request.audio_codec
        )
        return command.build_convert_command(
            probe, request, resolved, io, limits=self.limits, encoding=self.encoding
        )


class CompressExecutor(OperationExecutor):
    """Re-encode at a target quality, keeping the source container."""

    kind = OperationKind.COMPRESS

    PREFERRED_VIDEO = "h264"
    PREFERRED_AUDIO = "aac"

    def _resolve(self, probe: StreamProbe) -> ResolvedCodecs:
        if probe.container not in COMPATIBILITY_MATRIX:
            raise ValidationError(
                f"Cannot compress {probe.container or 'unknown'} sources. "
                f"Supported containers: {', '.join(COMPATIBILITY_MATRIX)}",
                field="source",
            )
        return resolve(probe.container, self.PREFERRED_VIDEO, self.PREFERRED_AUDIO)

    def plan(
        self, probe: StreamProbe, request: CompressRequest, source_name: str
    ) -> PlannedOutput:
        _require_streams(probe)
        resolved = self._resolve(probe)
        profile = get_container_profile(resolved.container)
        return PlannedOutput(
            extension=profile.extension,
            filename=f"{_stem(source_name)}_compressed.{profile.extension}",
            mime_type=profile.mime_type,
            copied=CopiedStreams(),
            duration_seconds=probe.duration_seconds,
        )

    def build(
        self, probe: StreamProbe, request: CompressRequest, io: CommandIO
    ) -> list[str]:
        return command.build_compress_command(
            probe,
            request,
            self._resolve(probe),
            io,
            limits=self.limits,
            encoding=self.encoding,
        )


class TrimExecutor(OperationExecutor):
    """Cut a time range, exported as the original format, GIF or WebP."""

    kind = OperationKind.TRIM

    def plan(
        self, probe: StreamProbe, request: TrimRequest, source_name: str
    ) -> PlannedOutput:
        _require_streams(probe)
        duration = probe.duration_seconds
        if duration is not None and request.start >= duration:
            raise ValidationError(
                f"Trim start {request.start:g}s is beyond the source duration "
                f"{duration:g}s",
                field="start",
            )
        end = min(request.end, duration) if duration is not None else request.end
        trim_duration = end - request.start
        export = TrimFormat(request.export_format)
        stem = _stem(source_name)

        if export == TrimFormat.ORIGINAL:
            extension = self._source_extension(probe, source_name)
            profile = COMPATIBILITY_MATRIX.get(probe.container or "")
            mime = profile.mime_type if profile else "application/octet-stream"
            return PlannedOutput(
                extension=extension,
                filename=f"{stem}_trimmed.{extension}",
                mime_type=mime,
                copied=CopiedStreams(video=probe.has_video, audio=probe.has_audio),
                duration_seconds=trim_duration,
            )

        if not probe.has_video:
            raise ValidationError(
                f"Cannot export {export.value} from a source without video",
                field="export_format",
            )
        return PlannedOutput(
            extension=export.value,
            filename=f"{stem}_trimmed.{export.value}",
            mime_type=ANIMATION_MIME_TYPES[export.value],
            copied=CopiedStreams(),
            duration_seconds=trim_duration,
        )

    @staticmethod
    def _source_extension(probe: StreamProbe, source_name: str) -> str:
        suffix = PurePath(source_name).suffix.lstrip(".").lower()
        if suffix:
            return suffix
        if probe.container:
            return probe.container
        raise ValidationError(
            "Cannot determine the source format for an original-format trim",
            field="export_format",
        )

    def build(self, probe: StreamProbe, request: TrimRequest, io: CommandIO) -> list[str]:
        export = TrimFormat(request.export_format)
        if export == TrimFormat.GIF:
            return command.build_trim_gif_command(
                probe, request, io, limits=self.limits, animation=self.animation
            )
        if export == TrimFormat.WEBP:
            return command.build_trim_webp_command(
                probe, request, io, limits=self.limits, animation=self.animation
            )
        return command.build_trim_original_command(probe, request, io, limits=self.limits)


class ExtractAudioExecutor(OperationExecutor):
    """Export the primary audio track in a chosen format."""

    kind = OperationKind.EXTRACT_AUDIO

    def plan(
        self, probe: StreamProbe, request: ExtractAudioRequest, source_name: str
    ) -> PlannedOutput:
        if not probe.has_audio:
            raise ValidationError("Source has no audio track", field="audio_format")
        fmt = AUDIO_OUTPUT_FORMATS[request.audio_format]
        decision = command.decide_extract_copy(probe, request)
        return PlannedOutput(
            extension=fmt.extension,
            filename=f"{_stem(source_name)}.{fmt.extension}",
            mime_type=fmt.mime_type,
            copied=CopiedStreams(audio=decision.copy),
            duration_seconds=probe.duration_seconds,
        )

    def build(
        self, probe: StreamProbe, request: ExtractAudioRequest, io: CommandIO
    ) -> list[str]:
        return command.build_extract_audio_command(probe, request, io, limits=self.limits)


EXECUTOR_TYPES: dict[OperationKind, type[OperationExecutor]] = {
    OperationKind.CONVERT: ConvertExecutor,
    OperationKind.COMPRESS: CompressExecutor,
    OperationKind.TRIM: TrimExecutor,
    OperationKind.EXTRACT_AUDIO: ExtractAudioExecutor,
}
