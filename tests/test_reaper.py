"""Tests for the detached file cleanup helper."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Any

import pytest

from outagemock import reaper
from outagemock.reaper import main, remove_quietly, run_reaper, spawn_reaper


class TestRemoveQuietly:
    """Tests for remove_quietly()."""

    def test_removes_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "grown"
        target.write_bytes(b"x")
        assert remove_quietly(str(target)) is True
        assert not target.exists()

    def test_missing_file_is_success(self, tmp_path: Path) -> None:
        assert remove_quietly(str(tmp_path / "never-existed")) is False

    def test_other_errors_propagate(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            remove_quietly(str(tmp_path))


class TestRunReaper:
    """Tests for run_reaper()."""

    def test_removes_after_delay(self, tmp_path: Path) -> None:
        target = tmp_path / "grown"
        target.write_bytes(b"x")
        run_reaper(str(target), 0.0, margin=0.0)
        assert not target.exists()

    def test_sleeps_delay_plus_margin(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        slept: list[float] = []
        monkeypatch.setattr(reaper.time, "sleep", slept.append)
        run_reaper(str(tmp_path / "gone"), 30.0)
        assert slept == [35.0]

    def test_failure_is_logged_not_raised(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        run_reaper(str(tmp_path), 0.0, margin=0.0)
        assert "failed to remove" in caplog.text


class TestSpawnReaper:
    """Tests for spawn_reaper() with Popen stubbed out."""

    def test_detached_command(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[tuple[list[str], dict[str, Any]]] = []

        class FakePopen:
            pid = 4242

            def __init__(self, cmd: list[str], **kwargs: Any) -> None:
                calls.append((cmd, kwargs))

        monkeypatch.setattr(reaper.subprocess, "Popen", FakePopen)
        spawn_reaper(str(tmp_path / "grown"), 30.0, python="/usr/bin/python3")

        cmd, kwargs = calls[0]
        assert cmd == [
            "/usr/bin/python3",
            "-m",
            "outagemock.reaper",
            os.path.abspath(tmp_path / "grown"),
            "30.0",
        ]
        assert kwargs["start_new_session"] is True
        assert kwargs["stdout"] is subprocess.DEVNULL
        assert kwargs["stderr"] is subprocess.DEVNULL

    def test_spawn_failure_raises(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def boom(*args: Any, **kwargs: Any) -> None:
            raise FileNotFoundError("no python")

        monkeypatch.setattr(reaper.subprocess, "Popen", boom)
        with pytest.raises(OSError):
            spawn_reaper(str(tmp_path / "grown"), 1.0)


class TestMain:
    """Tests for the helper's command-line entry point."""

    def test_wrong_arg_count(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["only-path"]) == 2
        assert "usage" in capsys.readouterr().err

    def test_bad_delay(self) -> None:
        assert main(["path", "soon"]) == 2

    def test_runs_reaper(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        seen: list[tuple[str, float]] = []
        monkeypatch.setattr(
            reaper, "run_reaper", lambda path, delay: seen.append((path, delay))
        )
        assert main([str(tmp_path / "f"), "12.5"]) == 0
        assert seen == [(str(tmp_path / "f"), 12.5)]
