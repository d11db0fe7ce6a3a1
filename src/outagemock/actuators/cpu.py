"""CPU actuator: one duty-cycle worker process per core.

Each worker alternates a busy phase of ``p * cycle / 100`` seconds with a
sleep of ``(100 - p) * cycle / 100`` seconds, where ``p`` is the ramped
target percentage re-read at the start of every cycle.  Processes are used
instead of threads so the busy phases run in parallel across cores.
"""

from __future__ import annotations

import contextlib
import logging
import multiprocessing
import os
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from multiprocessing.process import BaseProcess
    from multiprocessing.synchronize import Event

    from ..cancellation import CancellationSignal
    from ..ramp import RampSchedule

log = logging.getLogger(__name__)

# 30% of a 20 ms cycle is 6 ms of work and 14 ms of sleep
DEFAULT_CYCLE_S = 0.02

# Inner iterations between clock checks during the busy phase
_BURST_ITERATIONS = 10_000

_MASK = 0xFFFFFFFF


def duty_cycle(percent: float, cycle: float = DEFAULT_CYCLE_S) -> tuple[float, float]:
    """Return ``(work_seconds, sleep_seconds)`` for *percent* of *cycle*."""
    percent = min(max(percent, 0.0), 100.0)
    k = cycle / 100.0
    return percent * k, (100.0 - percent) * k


def burn(duration: float, acc: int = 0) -> tuple[int, int]:
    """Spin on integer arithmetic for *duration* seconds.

    Returns:
        ``(acc, iterations)``: the updated accumulator and the number of
        inner iterations performed.
    """
    iterations = 0
    end = time.perf_counter() + duration
    while time.perf_counter() < end:
        for i in range(_BURST_ITERATIONS):
            acc = (acc * 31 + i + (acc >> 7)) & _MASK
        iterations += _BURST_ITERATIONS
    return acc, iterations


def cpu_worker(
    core_id: int,
    target_percent: float,
    ramp: RampSchedule,
    stop_event: Event,
    counters: Any,
    cycle: float = DEFAULT_CYCLE_S,
) -> None:
    """Duty-cycle loop run inside a worker process until *stop_event* is set."""
    acc = core_id
    total = 0
    while not stop_event.is_set():
        percent = ramp.target(target_percent)
        work, sleep = duty_cycle(percent, cycle)

        acc, iterations = burn(work, acc)
        total += iterations
        counters[core_id] = total

        if sleep > 0:
            stop_event.wait(sleep)


class CpuActuator:
    """Spawn and supervise one :func:`cpu_worker` process per core."""

    def __init__(
        self,
        target_percent: float,
        ramp: RampSchedule,
        cancel: CancellationSignal,
        cores: int | None = None,
        cycle: float = DEFAULT_CYCLE_S,
    ) -> None:
        self._target_percent = target_percent
        self._ramp = ramp
        self._cancel = cancel
        self._cores = cores if cores is not None else (os.cpu_count() or 1)
        self._cycle = cycle
        self._processes: list[BaseProcess] = []
        self._counters: Any = None

    @property
    def cores(self) -> int:
        return self._cores

    @property
    def processes(self) -> list[BaseProcess]:
        return list(self._processes)

    def current_percent(self) -> float:
        """Ramped target percentage workers are currently aiming for."""
        if self._target_percent <= 0:
            return 0.0
        return self._ramp.target(self._target_percent)

    def start(self) -> None:
        if self._target_percent <= 0:
            return

        log.info(
            "Starting CPU consumption (rampup to %.1f%% across %d cores)",
            self._target_percent,
            self._cores,
        )
        self._counters = multiprocessing.RawArray("Q", self._cores)
        for core_id in range(self._cores):
            proc = multiprocessing.Process(
                target=cpu_worker,
                args=(
                    core_id,
                    self._target_percent,
                    self._ramp,
                    self._cancel.event,
                    self._counters,
                    self._cycle,
                ),
                name=f"cpu-worker-{core_id}",
                daemon=True,
            )
            proc.start()
            self._processes.append(proc)

    def busy_iterations(self) -> int:
        """Total busy-work iterations reported by every worker so far."""
        if self._counters is None:
            return 0
        return sum(self._counters)

    def join(self, timeout: float | None = None) -> None:
        """Wait for every worker; kill any that outlive *timeout*."""
        for proc in self._processes:
            proc.join(timeout)
            if proc.is_alive():
                log.warning("CPU worker %s did not exit, terminating", proc.name)
                with contextlib.suppress(OSError):
                    proc.terminate()
                proc.join(1.0)

    def release(self) -> None:
        for proc in self._processes:
            with contextlib.suppress(ValueError):
                proc.close()
        self._processes = []
