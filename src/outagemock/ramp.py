"""Linear ramp-up schedule shared by every actuator.

The schedule is a pure function of elapsed time: all actuators hold their
own copy built from the same start timestamp, so their ramps stay in step
without any shared mutable state.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field


def ramp_progress(elapsed: float, rampup_time: float) -> float:
    """Return ramp progress in ``[0.0, 1.0]`` for *elapsed* seconds."""
    if rampup_time <= 0 or elapsed >= rampup_time:
        return 1.0
    if elapsed <= 0:
        return 0.0
    return elapsed / rampup_time


def ramp_target(configured: float, elapsed: float, rampup_time: float) -> float:
    """Return the current floating point target for *configured*."""
    progress = ramp_progress(elapsed, rampup_time)
    if progress >= 1.0:
        return configured
    return progress * configured


def ramp_target_int(configured: int, elapsed: float, rampup_time: float) -> int:
    """Return the current integer target, truncated toward zero."""
    progress = ramp_progress(elapsed, rampup_time)
    if progress >= 1.0:
        return configured
    return int(progress * configured)


@dataclass(frozen=True)
class RampSchedule:
    """Ramp anchored at a fixed start time on the monotonic clock.

    ``time.monotonic`` is system-wide on Linux and macOS, so a schedule
    pickled into a worker process keeps agreeing with the parent's.
    """

    start: float
    rampup_time: float
    clock: Callable[[], float] = field(default=time.monotonic, compare=False)

    @classmethod
    def starting_now(
        cls,
        rampup_time: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> RampSchedule:
        return cls(start=clock(), rampup_time=rampup_time, clock=clock)

    def elapsed(self) -> float:
        """Seconds since the ramp started."""
        return max(0.0, self.clock() - self.start)

    def progress(self) -> float:
        return ramp_progress(self.elapsed(), self.rampup_time)

    def target(self, configured: float) -> float:
        """Current target for a floating point resource (CPU percent)."""
        return ramp_target(configured, self.elapsed(), self.rampup_time)

    def target_int(self, configured: int) -> int:
        """Current target for an integer resource (memory or file MiB)."""
        return ramp_target_int(configured, self.elapsed(), self.rampup_time)
