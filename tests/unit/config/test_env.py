"""Tests for EnvReader."""

from pathlib import Path

from vto.config.env import EnvReader


class TestEnvReader:
    """Tests for typed environment access."""

    def test_get_str(self) -> None:
        reader = EnvReader(env={"VTO_LOG_LEVEL": "debug"})
        assert reader.get_str("VTO_LOG_LEVEL") == "debug"
        assert reader.get_str("MISSING", "info") == "info"

    def test_get_int(self) -> None:
        reader = EnvReader(env={"VTO_THREADS": "2", "BAD": "two"})
        assert reader.get_int("VTO_THREADS") == 2
        assert reader.get_int("BAD", 4) == 4

    def test_invalid_int_logs_warning(self, caplog) -> None:
        EnvReader(env={"VTO_THREADS": "many"}).get_int("VTO_THREADS")
        assert "Invalid integer value for VTO_THREADS" in caplog.text

    def test_get_float(self) -> None:
        reader = EnvReader(env={"VTO_SLOW_THRESHOLD_SECONDS": "45.5"})
        assert reader.get_float("VTO_SLOW_THRESHOLD_SECONDS") == 45.5
        assert EnvReader(env={"X": "n/a"}).get_float("X", 1.0) == 1.0

    def test_get_bool(self) -> None:
        reader = EnvReader(env={"A": "yes", "B": "0"})
        assert reader.get_bool("A") is True
        assert reader.get_bool("B") is False
        assert reader.get_bool("C") is None

    def test_get_path(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"P": str(tmp_path), "Q": str(tmp_path / "nope"), "E": ""})
        assert reader.get_path("P", must_exist=True) == tmp_path
        assert reader.get_path("Q", must_exist=True) is None
        assert reader.get_path("Q") == tmp_path / "nope"
        assert reader.get_path("E") is None
