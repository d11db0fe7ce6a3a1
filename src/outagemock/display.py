"""Console rendering of the startup banner and periodic status rows."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from .config import MockConfig
    from .status import ResourceStatus

_BOX_WIDTH = 78
_TABLE_WIDTH = 63


def format_seconds(seconds: float) -> str:
    """Render a duration like ``30s``, ``1m30s`` or ``1h0m0s``."""
    if seconds != int(seconds):
        return f"{seconds:g}s"
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def format_elapsed(seconds: float) -> str:
    """Render elapsed time as ``MM:SS``."""
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def format_status_row(config: MockConfig, status: ResourceStatus) -> str:
    """Render one status table row; disabled resources show ``N/A``."""
    cpu = f"{status.cpu_percent_actual:.1f}" if config.cpu_enabled else "N/A"
    mem = (
        f"{status.memory_target_mb}/{status.memory_actual_mb}"
        if config.memory_enabled
        else "N/A"
    )
    fil = (
        f"{status.file_target_mb}/{status.file_actual_mb}"
        if config.file_enabled
        else "N/A"
    )
    progress = f"{status.ramp_progress * 100:.1f}%"
    return (
        f"│ {format_elapsed(status.elapsed):<7} │ {cpu:<5} │ {mem:<14} "
        f"│ {fil:<13} │ {progress:<8} │"
    )


class StatusDisplay:
    """Print the run banner and one table row per status snapshot."""

    def __init__(
        self,
        config: MockConfig,
        cores: int,
        stream: TextIO | None = None,
    ) -> None:
        self._config = config
        self._cores = cores
        self._stream = stream if stream is not None else sys.stderr

    def _line(self, text: str = "") -> None:
        print(text, file=self._stream, flush=True)

    def _boxed(self, text: str) -> None:
        self._line(f"║ {text:<{_BOX_WIDTH - 2}} ║")

    def show_startup(self) -> None:
        cfg = self._config
        self._line("╔" + "═" * _BOX_WIDTH + "╗")
        self._boxed("OUTAGE MOCK - RESOURCE MONITOR".center(_BOX_WIDTH - 2))
        self._line("╠" + "═" * _BOX_WIDTH + "╣")

        if cfg.cpu_enabled:
            self._boxed(f"CPU Target: {cfg.cpu_percent:.1f}% (across {self._cores} cores)")
        else:
            self._boxed("CPU Target: Disabled")

        if cfg.memory_enabled:
            self._boxed(f"Memory Target: {cfg.memory_mb} MB")
        else:
            self._boxed("Memory Target: Disabled")

        if cfg.file_enabled:
            self._boxed(f"File Target: {cfg.file_size_mb} MB (path: {cfg.file_path})")
        else:
            self._boxed("File Target: Disabled")

        self._boxed(
            f"Duration: {format_seconds(cfg.duration)}, "
            f"Rampup: {format_seconds(cfg.rampup_time)}"
        )
        self._line("╚" + "═" * _BOX_WIDTH + "╝")
        self._line()

    def show_header(self) -> None:
        self._line("┌" + "─" * _TABLE_WIDTH + "┐")
        self._line("│ Time    │ CPU % │ Memory (MB)    │ File (MB)     │ Progress │")
        self._line("│         │       │ Target/Actual  │ Target/Actual │          │")
        self._line("├" + "─" * _TABLE_WIDTH + "┤")

    def show_status(self, status: ResourceStatus) -> None:
        self._line(format_status_row(self._config, status))
