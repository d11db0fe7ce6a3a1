"""Tests for the console status display."""

from __future__ import annotations

import io

from outagemock.config import MockConfig
from outagemock.display import (
    StatusDisplay,
    format_elapsed,
    format_seconds,
    format_status_row,
)
from outagemock.status import ResourceStatus


def _status(**overrides: float) -> ResourceStatus:
    values: dict[str, float] = {
        "cpu_percent_actual": 37.5,
        "memory_target_mb": 100,
        "memory_actual_mb": 96,
        "file_target_mb": 50,
        "file_actual_mb": 48,
        "elapsed": 75.0,
        "ramp_progress": 0.5,
    }
    values.update(overrides)
    return ResourceStatus(**values)  # type: ignore[arg-type]


class TestFormatting:
    """Tests for the formatting helpers."""

    def test_format_elapsed(self) -> None:
        assert format_elapsed(0) == "00:00"
        assert format_elapsed(75.9) == "01:15"
        assert format_elapsed(3600) == "60:00"

    def test_format_seconds(self) -> None:
        assert format_seconds(30) == "30s"
        assert format_seconds(90) == "1m30s"
        assert format_seconds(3600) == "1h0m0s"
        assert format_seconds(0) == "0s"
        assert format_seconds(1.5) == "1.5s"

    def test_row_with_everything_enabled(self) -> None:
        config = MockConfig(cpu_percent=50, memory_mb=100, file_size_mb=50)
        row = format_status_row(config, _status())
        assert "01:15" in row
        assert "37.5" in row
        assert "100/96" in row
        assert "50/48" in row
        assert "50.0%" in row

    def test_disabled_resources_show_na(self) -> None:
        config = MockConfig(memory_mb=100)
        row = format_status_row(config, _status())
        assert row.count("N/A") == 2
        assert "100/96" in row


class TestStatusDisplay:
    """Tests for StatusDisplay output."""

    def test_startup_banner(self) -> None:
        out = io.StringIO()
        config = MockConfig(
            cpu_percent=75,
            memory_mb=200,
            file_size_mb=500,
            file_path="/data/test_file",
            duration=60,
            rampup_time=30,
        )
        StatusDisplay(config, cores=8, stream=out).show_startup()
        text = out.getvalue()
        assert "OUTAGE MOCK - RESOURCE MONITOR" in text
        assert "CPU Target: 75.0% (across 8 cores)" in text
        assert "Memory Target: 200 MB" in text
        assert "File Target: 500 MB (path: /data/test_file)" in text
        assert "Duration: 1m0s, Rampup: 30s" in text

    def test_startup_banner_disabled(self) -> None:
        out = io.StringIO()
        StatusDisplay(MockConfig(), cores=2, stream=out).show_startup()
        text = out.getvalue()
        assert "CPU Target: Disabled" in text
        assert "Memory Target: Disabled" in text
        assert "File Target: Disabled" in text

    def test_header_and_status_rows(self) -> None:
        out = io.StringIO()
        config = MockConfig(cpu_percent=50)
        display = StatusDisplay(config, cores=2, stream=out)
        display.show_header()
        display.show_status(_status(elapsed=5.0))
        lines = out.getvalue().splitlines()
        assert "Time" in lines[1]
        assert lines[-1].startswith("│ 00:05")
