"""Lifecycle controller and the main run loop.

The controller owns the validated config and the cancellation signal,
launches the enabled actuators, aggregates status snapshots and runs
cleanup exactly once.  :func:`run_mock` wraps it with signal handling and
the periodic console display.
"""

from __future__ import annotations

import enum
import gc
import logging
import os
import signal
import sys
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from types import FrameType
from typing import TYPE_CHECKING

from .actuators.cpu import DEFAULT_CYCLE_S, CpuActuator
from .actuators.file import RECLAIM_HELPER, FileActuator, ResourceAcquisitionError
from .actuators.memory import MemoryActuator
from .cancellation import REASON_EXPIRED, CancellationSignal
from .display import StatusDisplay
from .ramp import RampSchedule
from .status import CpuUsageSampler, ResourceStatus

if TYPE_CHECKING:
    from .config import MockConfig

log = logging.getLogger(__name__)

# How often the run loop checks for a received SIGINT/SIGTERM
_SIGNAL_POLL_S = 0.1


class State(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class Tuning:
    """Knobs for worker counts and tick periods.

    The defaults are what the command line uses; tests shrink them.
    """

    # None = derive from os.cpu_count()
    cpu_cores: int | None = None
    memory_workers: int | None = None

    cpu_cycle: float = DEFAULT_CYCLE_S
    memory_tick: float = 0.01
    memory_interval: float = 2.0
    file_tick: float = 0.1

    # "helper" or "unlink"
    file_reclaim: str = RECLAIM_HELPER

    # How long cleanup waits for each CPU worker before terminating it
    cpu_join_timeout: float = 10.0


class Controller:
    """Start, stop and clean up every actuator under one cancellation signal."""

    def __init__(
        self,
        config: MockConfig,
        tuning: Tuning | None = None,
        clock: Callable[[], float] = time.monotonic,
        sampler: CpuUsageSampler | None = None,
    ) -> None:
        self._config = config
        self._tuning = tuning or Tuning()
        self._clock = clock
        self._sampler = sampler or CpuUsageSampler()
        self._cancel = CancellationSignal(config.duration)

        self._lock = threading.RLock()
        self._state = State.IDLE
        self._cleaned = False

        self._ramp: RampSchedule | None = None
        self._cpu: CpuActuator | None = None
        self._memory: MemoryActuator | None = None
        self._file: FileActuator | None = None
        self._setup_errors: list[ResourceAcquisitionError] = []

    @property
    def config(self) -> MockConfig:
        return self._config

    @property
    def cancel_signal(self) -> CancellationSignal:
        return self._cancel

    @property
    def state(self) -> State:
        """Lifecycle state; a fired signal (stop or expiry) means STOPPING."""
        with self._lock:
            if self._state is State.RUNNING and self._cancel.is_set():
                return State.STOPPING
            return self._state

    @property
    def cpu(self) -> CpuActuator | None:
        return self._cpu

    @property
    def memory(self) -> MemoryActuator | None:
        return self._memory

    @property
    def file(self) -> FileActuator | None:
        return self._file

    @property
    def errors(self) -> list[ResourceAcquisitionError]:
        """Setup failures plus any runtime failure of the file actuator."""
        errors = list(self._setup_errors)
        if self._file is not None and self._file.error is not None:
            errors.append(self._file.error)
        return errors

    @property
    def cpu_cores(self) -> int:
        return self._tuning.cpu_cores or os.cpu_count() or 1

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> list[str]:
        """Launch every enabled actuator and arm the duration timer.

        Actuators with a zero target are not created at all.  A file that
        cannot be created is recorded in :attr:`errors`; the remaining
        actuators still start.

        Returns:
            Names of the actuators that were launched.

        Raises:
            RuntimeError: If the controller was already started.
        """
        with self._lock:
            if self._state is not State.IDLE:
                raise RuntimeError(f"Controller cannot start from {self._state.value}")
            self._state = State.RUNNING

        cfg = self._config
        tuning = self._tuning
        self._ramp = RampSchedule.starting_now(cfg.rampup_time, self._clock)
        launched: list[str] = []

        # CPU workers are forked first, while the process has the fewest threads.
        if cfg.cpu_enabled:
            self._cpu = CpuActuator(
                cfg.cpu_percent,
                self._ramp,
                self._cancel,
                cores=self.cpu_cores,
                cycle=tuning.cpu_cycle,
            )
            self._cpu.start()
            launched.append("cpu")

        if cfg.file_enabled:
            file_actuator = FileActuator(
                cfg.file_size_mb,
                cfg.file_path,
                self._ramp,
                self._cancel,
                reclaim=tuning.file_reclaim,
                reclaim_delay=cfg.duration,
                tick=tuning.file_tick,
            )
            try:
                file_actuator.start()
            except ResourceAcquisitionError as exc:
                self._setup_errors.append(exc)
            else:
                self._file = file_actuator
                launched.append("file")

        if cfg.memory_enabled:
            self._memory = MemoryActuator(
                cfg.memory_mb,
                self._ramp,
                self._cancel,
                workers=tuning.memory_workers,
                tick=tuning.memory_tick,
                interval=tuning.memory_interval,
            )
            self._memory.start()
            launched.append("memory")

        self._cancel.arm()
        self._sampler.sample()
        log.info("Started actuators: %s", ", ".join(launched) or "none")
        return launched

    def stop(self) -> None:
        """Request shutdown.  Safe to call repeatedly and from any thread.

        Not safe inside a signal handler: the handler may interrupt a wait
        on the same event.
        """
        self._cancel.fire()
        with self._lock:
            if self._state is State.RUNNING:
                self._state = State.STOPPING

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the run ends; True once the signal has fired."""
        return self._cancel.wait(timeout)

    def cleanup(self) -> None:
        """Stop every worker, then release the file and memory.

        Only the first call does anything.  Every release step is attempted
        even if an earlier one fails.
        """
        with self._lock:
            if self._cleaned:
                return
            self._cleaned = True
            self._state = State.STOPPING

        self._cancel.fire()

        # Barrier: no resource is released until every worker has exited.
        steps: list[tuple[str, Callable[[], object]]] = []
        if self._cpu is not None:
            cpu = self._cpu
            steps.append(("cpu join", lambda: cpu.join(self._tuning.cpu_join_timeout)))
        if self._memory is not None:
            steps.append(("memory join", self._memory.join))
        if self._file is not None:
            steps.append(("file join", self._file.join))
            steps.append(("file close", self._file.close))
        if self._memory is not None:
            steps.append(("memory release", self._memory.release))
        if self._cpu is not None:
            steps.append(("cpu release", self._cpu.release))

        for name, step in steps:
            try:
                step()
            except Exception as e:
                log.warning("Cleanup step %s failed: %s", name, e)

        gc.collect()

        with self._lock:
            self._state = State.TERMINATED
        log.info("Cleanup complete")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> ResourceStatus:
        """Snapshot of the current targets and actual usage."""
        ramp = self._ramp
        elapsed = ramp.elapsed() if ramp is not None else 0.0
        progress = ramp.progress() if ramp is not None else 0.0

        cpu_actual = self._sampler.sample()
        if cpu_actual is None:
            cpu_actual = self._cpu.current_percent() if self._cpu is not None else 0.0

        memory_target = memory_actual = 0
        if self._memory is not None:
            memory_target = self._memory.target_mb
            memory_actual = self._memory.actual_mb()

        file_target = file_actual = 0
        if self._file is not None:
            file_target = self._file.current_target_mb()
            file_actual = self._file.written_mb

        return ResourceStatus(
            cpu_percent_actual=cpu_actual,
            memory_target_mb=memory_target,
            memory_actual_mb=memory_actual,
            file_target_mb=file_target,
            file_actual_mb=file_actual,
            elapsed=elapsed,
            ramp_progress=progress,
        )


def run_mock(
    config: MockConfig,
    tuning: Tuning | None = None,
    interval: float = 2.0,
    display: StatusDisplay | None = None,
) -> int:
    """Run the mock until the duration expires or SIGINT/SIGTERM arrives.

    Returns:
        Process exit code: 0 on completion, 1 if no requested actuator
        could be started.
    """
    controller = Controller(config, tuning)
    display = display or StatusDisplay(config, controller.cpu_cores)
    received: list[int] = []

    def _signal_handler(signum: int, frame: FrameType | None) -> None:
        # Only record it: the main thread may be inside the event's wait,
        # and setting that event from here would deadlock.
        received.append(signum)

    previous: dict[int, object] = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, _signal_handler)

    display.show_startup()
    requested = config.cpu_enabled or config.memory_enabled or config.file_enabled

    try:
        launched = controller.start()
        if requested and not launched:
            for error in controller.errors:
                print(f"Error: {error}", file=sys.stderr)
            print("No actuator could be started, exiting.", file=sys.stderr)
            return 1

        display.show_header()
        next_status = time.monotonic() + interval
        while not received:
            remaining = max(next_status - time.monotonic(), 0.0)
            if controller.wait(min(_SIGNAL_POLL_S, remaining)):
                break
            if time.monotonic() >= next_status:
                display.show_status(controller.status())
                next_status += interval

        if received:
            controller.stop()
            name = signal.Signals(received[0]).name
            print(f"Received signal {name}, shutting down...", file=sys.stderr)
        elif controller.cancel_signal.reason == REASON_EXPIRED:
            print("Duration completed, shutting down...", file=sys.stderr)
        else:
            print("Stop requested, shutting down...", file=sys.stderr)
    finally:
        controller.cleanup()
        for signum, handler in previous.items():
            signal.signal(signum, handler)  # type: ignore[arg-type]

    for error in controller.errors:
        print(f"Warning: {error}", file=sys.stderr)
    print("Resource mock completed", file=sys.stderr)
    return 0
