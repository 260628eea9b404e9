"""Tests for configuration models."""

import pytest

from vto.config.models import (
    AnimationConfig,
    EncodingConfig,
    LimitsConfig,
    LoggingConfig,
    ProgressConfig,
)


class TestValidation:
    """Tests for per-section validation."""

    def test_limits(self) -> None:
        with pytest.raises(ValueError):
            LimitsConfig(threads=0)
        with pytest.raises(ValueError):
            LimitsConfig(max_muxing_queue_size=0)

    def test_encoding_crf_range(self) -> None:
        with pytest.raises(ValueError):
            EncodingConfig(vp9_crf=64)

    def test_animation(self) -> None:
        with pytest.raises(ValueError):
            AnimationConfig(webp_quality=101)
        with pytest.raises(ValueError):
            AnimationConfig(width=8)

    def test_progress(self) -> None:
        with pytest.raises(ValueError):
            ProgressConfig(slow_threshold_seconds=0)
        with pytest.raises(ValueError):
            ProgressConfig(poll_interval_seconds=0)

    def test_logging(self) -> None:
        with pytest.raises(ValueError):
            LoggingConfig(level="verbose")
        with pytest.raises(ValueError):
            LoggingConfig(format="xml")
