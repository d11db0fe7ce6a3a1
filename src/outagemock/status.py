"""Resource status snapshots and the procfs CPU usage sampler."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ResourceStatus:
    """Point-in-time view of every resource, for display only."""

    cpu_percent_actual: float
    memory_target_mb: int
    memory_actual_mb: int
    file_target_mb: int
    file_actual_mb: int
    elapsed: float = 0.0
    ramp_progress: float = 0.0


class CpuUsageSampler:
    """Aggregate CPU busy percentage from /proc/stat deltas.

    Busy time is everything except idle and iowait.  The first call to
    :meth:`sample` has no previous reading to diff against and returns
    None, as does any call when /proc/stat cannot be read.
    """

    def __init__(self, proc_root: str = "/proc") -> None:
        self._stat_path = Path(proc_root) / "stat"

        # Previous (busy, total) jiffies (None = first read)
        self._prev: tuple[int, int] | None = None

    @staticmethod
    def _parse_cpu_line(line: str) -> tuple[int, int]:
        """Parse the aggregate ``cpu`` line into ``(busy, total)`` jiffies.

        Fields: user, nice, system, idle, iowait, irq, softirq, steal,
        guest, guest_nice.  guest and guest_nice are already included in
        user and nice, so they are left out of the total.
        """
        parts = line.split()
        values = [int(p) for p in parts[1:9]]
        # Pad with zeros if the kernel exposes fewer fields
        while len(values) < 8:
            values.append(0)
        total = sum(values)
        idle = values[3] + values[4]
        return total - idle, total

    def sample(self) -> float | None:
        """Return busy percent since the previous call, or None."""
        try:
            text = self._stat_path.read_text()
        except (FileNotFoundError, PermissionError):
            self._prev = None
            return None

        cpu_line = next(
            (line for line in text.splitlines() if line.startswith("cpu ")), None
        )
        if cpu_line is None:
            return None

        try:
            cur = self._parse_cpu_line(cpu_line)
        except ValueError:
            return None

        prev = self._prev
        self._prev = cur
        if prev is None:
            return None

        d_busy = cur[0] - prev[0]
        d_total = cur[1] - prev[1]
        if d_total <= 0:
            return 0.0
        return round(d_busy / d_total * 100.0, 1)
