"""Tests for the vto CLI."""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from vto.cli import main
from vto.cli.exit_codes import ExitCode, exit_code_for
from vto.cli.output import write_result
from vto.config.models import VTOConfig
from vto.domain.enums import OperationKind
from vto.domain.models import OperationResult
from vto.engine.stub import StubEngine
from vto.exceptions import (
    EngineFault,
    OperationCanceled,
    TranscodeIOError,
    ValidationError,
)
from vto.toolbox import TranscodeToolbox


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """The CLI group reconfigures root logging on every invocation."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def stub_toolbox(mp4_probe):
    """Patch the CLI to build toolboxes on a stub engine."""
    engine = StubEngine(probe=mp4_probe, output_data=b"result-bytes")
    with patch(
        "vto.cli.runner.create_toolbox",
        side_effect=lambda config: TranscodeToolbox(lambda: engine, config=config),
    ):
        yield engine


def invoke(runner: CliRunner, *args: str):
    return runner.invoke(main, list(args), obj={"config": VTOConfig()})


class TestExitCodes:
    """Tests for exit code mapping."""

    def test_mapping(self) -> None:
        assert exit_code_for(ValidationError("x")) == ExitCode.VALIDATION_ERROR
        assert exit_code_for(EngineFault("x")) == ExitCode.ENGINE_FAULT
        assert exit_code_for(OperationCanceled()) == ExitCode.CANCELED


class TestProbeCommand:
    """Tests for `vto probe`."""

    def test_human_output(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(runner, "probe", str(source_file))
        assert result.exit_code == 0, result.output
        assert "h264" in result.output

    def test_json_output(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(runner, "probe", "--json", str(source_file))
        assert result.exit_code == 0
        assert '"container": "mp4"' in result.output

    def test_missing_file(self, runner, stub_toolbox, tmp_path: Path) -> None:
        result = invoke(runner, "probe", str(tmp_path / "nope.mp4"))
        assert result.exit_code == ExitCode.TARGET_NOT_FOUND


class TestOperationCommands:
    """Tests for the operation commands."""

    def test_convert_writes_output(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(runner, "convert", str(source_file), "--to", "mkv", "-q")
        assert result.exit_code == 0, result.output
        written = source_file.parent / "clip_converted.mkv"
        assert written.read_bytes() == b"result-bytes"
        assert "stream copy: video, audio" in result.output

    def test_convert_output_option(
        self, runner, stub_toolbox, source_file: Path, tmp_path: Path
    ) -> None:
        target = tmp_path / "out" / "final.webm"
        result = invoke(
            runner, "convert", str(source_file), "--to", "webm", "-o", str(target), "-q"
        )
        assert result.exit_code == 0, result.output
        assert target.exists()

    def test_convert_downscale_too_large(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(
            runner, "convert", str(source_file), "--to", "mp4", "--resolution", "4k", "-q"
        )
        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert stub_toolbox.executed == []

    def test_compress(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(runner, "compress", str(source_file), "--quality", "30", "-q")
        assert result.exit_code == 0, result.output
        cmd = stub_toolbox.executed[0]
        assert cmd[cmd.index("-crf") + 1] == "30"

    def test_trim_gif(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(
            runner, "trim", str(source_file), "--start", "0", "--end", "3",
            "--format", "gif", "--no-loop", "-q",
        )
        assert result.exit_code == 0, result.output
        assert (source_file.parent / "clip_trimmed.gif").exists()

    def test_trim_last_seconds(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(runner, "trim", str(source_file), "--last", "10", "-q")
        assert result.exit_code == 0, result.output
        cmd = stub_toolbox.executed[0]
        assert cmd[cmd.index("-ss") + 1] == "00:00:50.000"

    def test_trim_requires_range(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(runner, "trim", str(source_file), "--start", "5")
        assert result.exit_code == 2
        assert "--end" in result.output

    def test_extract_audio(self, runner, stub_toolbox, source_file: Path) -> None:
        result = invoke(runner, "extract-audio", str(source_file), "--format", "flac", "-q")
        assert result.exit_code == 0, result.output
        assert (source_file.parent / "clip.flac").exists()

    def test_unwritable_output(
        self, runner, stub_toolbox, source_file: Path, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        result = invoke(
            runner, "compress", str(source_file), "-o", str(blocker / "out.mp4"), "-q"
        )
        assert result.exit_code == ExitCode.OPERATION_FAILED
        assert "Cannot write" in result.output

    def test_engine_fault_exit_code(self, runner, stub_toolbox, source_file: Path) -> None:
        stub_toolbox.fail_with = EngineFault("crash", returncode=1)
        result = invoke(runner, "compress", str(source_file), "-q")
        assert result.exit_code == ExitCode.ENGINE_FAULT
        assert "crash" in result.output


class TestRunCommand:
    """Tests for `vto run --request`."""

    def test_yaml_request(
        self, runner, stub_toolbox, source_file: Path, tmp_path: Path
    ) -> None:
        request = tmp_path / "request.yaml"
        request.write_text(
            "operation: trim\nstart: '00:00:05'\nend: '00:00:10'\nexport_format: webp\n",
            encoding="utf-8",
        )
        result = invoke(runner, "run", str(source_file), "--request", str(request), "-q")
        assert result.exit_code == 0, result.output
        assert (source_file.parent / "clip_trimmed.webp").exists()

    def test_unknown_option_in_request(
        self, runner, stub_toolbox, source_file: Path, tmp_path: Path
    ) -> None:
        request = tmp_path / "request.yaml"
        request.write_text(
            "operation: convert\ntarget_container: mp4\nspeed: fast\n", encoding="utf-8"
        )
        result = invoke(runner, "run", str(source_file), "--request", str(request), "-q")
        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "Unknown option 'speed'" in result.output

    def test_non_mapping_request(
        self, runner, stub_toolbox, source_file: Path, tmp_path: Path
    ) -> None:
        request = tmp_path / "request.yaml"
        request.write_text("- convert\n", encoding="utf-8")
        result = invoke(runner, "run", str(source_file), "--request", str(request))
        assert result.exit_code == ExitCode.VALIDATION_ERROR


class TestGlobalOptions:
    """Tests for configuration loading at the group level."""

    def test_invalid_config_file(self, runner, tmp_path: Path, source_file: Path) -> None:
        bad = tmp_path / "bad.toml"
        bad.write_text("[limits\n", encoding="utf-8")
        result = runner.invoke(main, ["--config", str(bad), "probe", str(source_file)])
        assert result.exit_code == ExitCode.CONFIG_ERROR


class TestWriteResult:
    """Tests for write_result()."""

    def _result(self) -> OperationResult:
        return OperationResult(
            data=b"abc",
            filename="clip_converted.mkv",
            mime_type="video/x-matroska",
            operation=OperationKind.CONVERT,
        )

    def test_directory_output_uses_suggested_name(self, tmp_path: Path) -> None:
        target = write_result(self._result(), tmp_path, tmp_path / "unused")
        assert target == tmp_path / "clip_converted.mkv"
        assert target.read_bytes() == b"abc"

    def test_write_failure_is_io_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(TranscodeIOError, match="Cannot write"):
            write_result(self._result(), blocker / "out.mkv", tmp_path)
