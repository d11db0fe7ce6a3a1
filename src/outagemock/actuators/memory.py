"""Resident memory actuator.

A pool of worker threads each owns an :class:`Arena` of 4 KiB pages grown
one 1 MiB block at a time.  A dispatcher splits the ramped target across
the workers every evaluation interval, and every worker keeps re-touching
random pages so the kernel cannot reclaim or swap them out.
"""

from __future__ import annotations

import contextlib
import logging
import os
import queue
import random
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..cancellation import CancellationSignal
    from ..ramp import RampSchedule

log = logging.getLogger(__name__)

# Same as the kernel page size on common platforms
PAGE_SIZE = 4096
PAGES_PER_BLOCK = 256
BLOCK_SIZE = PAGE_SIZE * PAGES_PER_BLOCK  # 1 MiB

# Stamp one byte every 128 bytes so every page is physically committed
_PATTERN_STRIDE = 128
_STRIDE_PATTERN = bytes(j & 0xFF for j in range(0, PAGE_SIZE, _PATTERN_STRIDE))

# Co-prime-ish steps used to pick the second page/offset of a touch pair
_PAGE_STEP = 377
_BYTE_STEP = 2739

_WORKERS_PER_CORE = 10
_DEFAULT_TICK_S = 0.01
_DEFAULT_INTERVAL_S = 2.0


def default_worker_count() -> int:
    """Number of memory workers used when none is given."""
    return (os.cpu_count() or 1) * _WORKERS_PER_CORE


def split_target(total_mb: int, workers: int) -> list[int]:
    """Split *total_mb* across *workers*.

    The first ``total_mb % workers`` workers get one extra MiB, so the
    shares always sum to *total_mb* and differ by at most one.

    Raises:
        ValueError: If *workers* is not positive or *total_mb* is negative.
    """
    if workers <= 0:
        raise ValueError(f"Worker count must be positive, got {workers}")
    if total_mb < 0:
        raise ValueError(f"Memory target must be non-negative, got {total_mb}")
    base, remainder = divmod(total_mb, workers)
    return [base + 1 if i < remainder else base for i in range(workers)]


def _new_page() -> bytearray:
    page = bytearray(PAGE_SIZE)
    page[::_PATTERN_STRIDE] = _STRIDE_PATTERN
    return page


class Arena:
    """Ordered blocks of pages owned by a single memory worker.

    A block is :data:`PAGES_PER_BLOCK` pages (1 MiB) and is the unit of
    growth; touches address pages by their index across all blocks.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._blocks: list[list[bytearray]] = []
        self._cursor = 0
        self._rng = rng or random.Random()

    @property
    def block_count(self) -> int:
        return len(self._blocks)

    @property
    def page_count(self) -> int:
        return len(self._blocks) * PAGES_PER_BLOCK

    @property
    def size_mb(self) -> int:
        """Whole MiB currently held."""
        return len(self._blocks)

    def page(self, index: int) -> bytearray:
        block, offset = divmod(index, PAGES_PER_BLOCK)
        return self._blocks[block][offset]

    def grow_block(self) -> None:
        """Append one 1 MiB block of freshly stamped pages."""
        self._blocks.append([_new_page() for _ in range(PAGES_PER_BLOCK)])

    def touch(self) -> int:
        """Copy one byte between pseudo-random page pairs.

        Performs ``page_count // 100 + 1`` touches so that every page is
        revisited with a period proportional to the arena size.

        Returns:
            Number of touches performed (0 for an empty arena).
        """
        length = self.page_count
        if length == 0:
            return 0

        rng = self._rng
        count = length // 100 + 1
        for _ in range(count):
            idx1 = rng.randrange(length)
            self._cursor = (self._cursor + _PAGE_STEP) % length
            pos1 = rng.randrange(PAGE_SIZE)
            pos2 = (pos1 + _BYTE_STEP) % PAGE_SIZE
            self.page(idx1)[pos1] = self.page(self._cursor)[pos2]
        return count

    def release(self) -> None:
        self._blocks = []
        self._cursor = 0


class TargetSlot:
    """Single-slot mailbox carrying a worker's latest target.

    :meth:`offer` never blocks: an unconsumed older value is replaced, so
    only the most recent target is guaranteed to reach the worker.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[int] = queue.Queue(maxsize=1)

    def offer(self, value: int) -> None:
        while True:
            try:
                self._queue.put_nowait(value)
                return
            except queue.Full:
                with contextlib.suppress(queue.Empty):
                    self._queue.get_nowait()

    def take(self) -> int | None:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None


class MemoryWorker:
    """Thread that grows and keeps resident one arena."""

    def __init__(
        self,
        worker_id: int,
        cancel: CancellationSignal,
        reports: queue.SimpleQueue[tuple[int, int]],
        tick: float = _DEFAULT_TICK_S,
    ) -> None:
        self.worker_id = worker_id
        self.slot = TargetSlot()
        self.arena = Arena()
        self._cancel = cancel
        self._reports = reports
        self._tick = tick
        self._target_mb = 0
        self._thread = threading.Thread(
            target=self._run,
            name=f"memory-worker-{worker_id}",
            daemon=True,
        )

    @property
    def target_mb(self) -> int:
        return self._target_mb

    @property
    def thread(self) -> threading.Thread:
        return self._thread

    def start(self) -> None:
        self._thread.start()

    def step(self) -> None:
        """Run one tick: pick up a new target, grow by at most a block, touch."""
        new_target = self.slot.take()
        if new_target is not None:
            self._target_mb = new_target

        if self.arena.size_mb < self._target_mb:
            self.arena.grow_block()
            self._reports.put((self.worker_id, self.arena.size_mb))

        self.arena.touch()

    def _run(self) -> None:
        try:
            while not self._cancel.wait(self._tick):
                self.step()
        except MemoryError:
            log.error(
                "Memory worker %d could not grow past %d MB",
                self.worker_id,
                self.arena.size_mb,
            )
        finally:
            self.arena.release()
            self._reports.put((self.worker_id, 0))


class MemoryActuator:
    """Keep approximately the ramped memory target resident.

    The dispatcher runs once synchronously in :meth:`start` and then every
    *interval* seconds on its own thread.  Per-worker arena sizes flow back
    through a single report queue that :meth:`actual_mb` drains.
    """

    def __init__(
        self,
        target_mb: int,
        ramp: RampSchedule,
        cancel: CancellationSignal,
        workers: int | None = None,
        tick: float = _DEFAULT_TICK_S,
        interval: float = _DEFAULT_INTERVAL_S,
    ) -> None:
        self._target_mb = target_mb
        self._ramp = ramp
        self._cancel = cancel
        self._worker_count = workers if workers is not None else default_worker_count()
        self._tick = tick
        self._interval = interval

        self._reports: queue.SimpleQueue[tuple[int, int]] = queue.SimpleQueue()
        self._sizes: dict[int, int] = {}
        self._workers: list[MemoryWorker] = []
        self._dispatcher: threading.Thread | None = None
        self._assigned: list[int] = []
        self._last_total = -1

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def workers(self) -> list[MemoryWorker]:
        return list(self._workers)

    @property
    def assigned_targets(self) -> list[int]:
        """Per-worker targets from the most recent dispatch."""
        return list(self._assigned)

    @property
    def target_mb(self) -> int:
        """Total currently assigned across all workers."""
        return sum(self._assigned)

    def start(self) -> None:
        if self._target_mb <= 0:
            return

        log.info(
            "Starting memory consumption (rampup to %d MB across %d workers)",
            self._target_mb,
            self._worker_count,
        )
        self._workers = [
            MemoryWorker(i, self._cancel, self._reports, tick=self._tick)
            for i in range(self._worker_count)
        ]
        for worker in self._workers:
            worker.start()

        self.dispatch()

        self._dispatcher = threading.Thread(
            target=self._dispatch_loop,
            name="memory-dispatcher",
            daemon=True,
        )
        self._dispatcher.start()

    def dispatch(self) -> None:
        """Hand every worker its share of the current ramped target."""
        current = self._ramp.target_int(self._target_mb)
        if current == self._last_total:
            return

        shares = split_target(current, self._worker_count)
        for worker, share in zip(self._workers, shares):
            worker.slot.offer(share)

        self._assigned = shares
        self._last_total = current
        if current > 0:
            log.debug(
                "Assigned %d MB of memory across %d workers",
                current,
                self._worker_count,
            )

    def _dispatch_loop(self) -> None:
        while not self._cancel.wait(self._interval):
            self.dispatch()

    def actual_mb(self) -> int:
        """Drain the report queue and return the total resident MiB."""
        while True:
            try:
                worker_id, size_mb = self._reports.get_nowait()
            except queue.Empty:
                break
            self._sizes[worker_id] = size_mb
        return sum(self._sizes.values())

    def threads(self) -> list[threading.Thread]:
        threads = [w.thread for w in self._workers]
        if self._dispatcher is not None:
            threads.append(self._dispatcher)
        return threads

    def join(self, timeout: float | None = None) -> None:
        """Wait for the dispatcher and every worker to exit."""
        for thread in self.threads():
            if thread.is_alive():
                thread.join(timeout)

    def release(self) -> None:
        """Drop every reference to worker arenas."""
        for worker in self._workers:
            worker.arena.release()
        self._workers = []
        self._dispatcher = None
        self.actual_mb()
