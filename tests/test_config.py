"""Tests for configuration parsing and validation."""

from __future__ import annotations

import dataclasses

import pytest

from outagemock.config import (
    ConfigurationError,
    MockConfig,
    parse_duration,
    parse_file_size,
)


class TestParseFileSize:
    """Tests for parse_file_size()."""

    def test_gigabytes_fractional(self) -> None:
        assert parse_file_size("1.5G") == 1536

    def test_megabytes(self) -> None:
        assert parse_file_size("100M") == 100

    def test_lowercase_unit(self) -> None:
        assert parse_file_size("100m") == 100

    def test_terabytes(self) -> None:
        assert parse_file_size("2T") == 2 * 1024 * 1024

    def test_kilobytes_truncate_to_zero(self) -> None:
        assert parse_file_size("500K") == 0

    def test_kilobytes_whole_mebibyte(self) -> None:
        assert parse_file_size("2048K") == 2

    def test_bare_number_is_bytes(self) -> None:
        assert parse_file_size("1048576") == 1

    def test_explicit_bytes(self) -> None:
        assert parse_file_size("3145728B") == 3

    def test_space_between_number_and_unit(self) -> None:
        assert parse_file_size("10 M") == 10

    def test_empty_is_zero(self) -> None:
        assert parse_file_size("") == 0

    def test_zero(self) -> None:
        assert parse_file_size("0") == 0

    def test_invalid_unit(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported unit"):
            parse_file_size("100X")

    def test_garbage(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid file size"):
            parse_file_size("lots")

    def test_negative_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_file_size("-5M")

    def test_configuration_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_file_size("1.2.3M")


class TestParseDuration:
    """Tests for parse_duration()."""

    def test_seconds_suffix(self) -> None:
        assert parse_duration("30s") == 30.0

    def test_minutes_and_seconds(self) -> None:
        assert parse_duration("1m30s") == 90.0

    def test_hours(self) -> None:
        assert parse_duration("1h") == 3600.0

    def test_milliseconds(self) -> None:
        assert parse_duration("500ms") == pytest.approx(0.5)

    def test_bare_number(self) -> None:
        assert parse_duration("90") == 90.0

    def test_fractional_bare_number(self) -> None:
        assert parse_duration("2.5") == 2.5

    def test_zero(self) -> None:
        assert parse_duration("0") == 0.0

    def test_empty(self) -> None:
        with pytest.raises(ConfigurationError, match="Empty duration"):
            parse_duration("  ")

    def test_unknown_unit(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid duration"):
            parse_duration("10d")

    def test_trailing_garbage(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid duration"):
            parse_duration("10sx")


class TestMockConfig:
    """Tests for MockConfig validation."""

    def test_defaults_are_valid(self) -> None:
        config = MockConfig()
        assert config.cpu_percent == 0.0
        assert config.memory_mb == 0
        assert config.file_size_mb == 0
        assert config.file_path == "outagemock_temp_file"
        assert config.duration == 30.0
        assert config.rampup_time == 10.0

    def test_enabled_flags(self) -> None:
        config = MockConfig(cpu_percent=50, memory_mb=10, file_size_mb=0)
        assert config.cpu_enabled
        assert config.memory_enabled
        assert not config.file_enabled

    @pytest.mark.parametrize("percent", [-1.0, 100.5, float("nan")])
    def test_cpu_out_of_range(self, percent: float) -> None:
        with pytest.raises(ConfigurationError, match="CPU percentage"):
            MockConfig(cpu_percent=percent)

    def test_cpu_boundaries_accepted(self) -> None:
        assert MockConfig(cpu_percent=0).cpu_percent == 0
        assert MockConfig(cpu_percent=100).cpu_percent == 100

    def test_negative_memory(self) -> None:
        with pytest.raises(ConfigurationError, match="Memory size"):
            MockConfig(memory_mb=-1)

    def test_negative_file_size(self) -> None:
        with pytest.raises(ConfigurationError, match="File size"):
            MockConfig(file_size_mb=-1)

    def test_file_size_needs_path(self) -> None:
        with pytest.raises(ConfigurationError, match="File path"):
            MockConfig(file_size_mb=10, file_path="")

    @pytest.mark.parametrize("duration", [0.0, -5.0, float("inf")])
    def test_duration_must_be_positive(self, duration: float) -> None:
        with pytest.raises(ConfigurationError, match="Duration"):
            MockConfig(duration=duration)

    def test_negative_rampup(self) -> None:
        with pytest.raises(ConfigurationError, match="Rampup"):
            MockConfig(rampup_time=-1.0)

    def test_zero_rampup_allowed(self) -> None:
        assert MockConfig(rampup_time=0).rampup_time == 0

    def test_frozen(self) -> None:
        config = MockConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.memory_mb = 5  # type: ignore[misc]
