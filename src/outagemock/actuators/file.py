"""Disk actuator: grow one file toward the ramped target size.

The file is written in buffer-sized chunks, flushed and fsynced after every
tick's batch so growth is visible to disk-usage monitoring.  Its storage is
reclaimed either by unlinking the path right after creation (the open handle
keeps the data alive until close) or by a detached reaper process.
"""

from __future__ import annotations

import io
import logging
import os
import threading
from typing import TYPE_CHECKING

from ..config import MIB
from ..reaper import remove_quietly, spawn_reaper

if TYPE_CHECKING:
    from ..cancellation import CancellationSignal
    from ..ramp import RampSchedule

log = logging.getLogger(__name__)

RECLAIM_HELPER = "helper"
RECLAIM_UNLINK = "unlink"
RECLAIM_MODES = (RECLAIM_HELPER, RECLAIM_UNLINK)

_DEFAULT_TICK_S = 0.1
_DEFAULT_CHUNK_CAP = 10 * MIB
_DEFAULT_BUFFER_SIZE = MIB


class ResourceAcquisitionError(OSError):
    """The file could not be created, written or synced."""


def _make_buffer(size: int) -> bytes:
    return (bytes(range(256)) * (size // 256 + 1))[:size]


class FileActuator:
    """Grow one file on its own thread until cancellation.

    Args:
        target_mb: Final file size in MiB.
        path: Location of the file.
        ramp: Shared ramp schedule.
        cancel: Shared cancellation signal.
        reclaim: ``"helper"`` to spawn the detached reaper, ``"unlink"`` to
            remove the directory entry immediately (POSIX only; falls back
            to the helper elsewhere).
        reclaim_delay: Seconds the reaper waits before removing the file,
            normally the run duration.
    """

    def __init__(
        self,
        target_mb: int,
        path: str,
        ramp: RampSchedule,
        cancel: CancellationSignal,
        reclaim: str = RECLAIM_HELPER,
        reclaim_delay: float | None = None,
        tick: float = _DEFAULT_TICK_S,
        chunk_cap: int = _DEFAULT_CHUNK_CAP,
        buffer_size: int = _DEFAULT_BUFFER_SIZE,
    ) -> None:
        if reclaim not in RECLAIM_MODES:
            raise ValueError(f"Unknown reclaim mode {reclaim!r}")

        self._target_mb = target_mb
        self._path = path
        self._ramp = ramp
        self._cancel = cancel
        self._reclaim = reclaim
        self._reclaim_delay = (
            reclaim_delay if reclaim_delay is not None else cancel.duration
        )
        self._tick = tick
        self._chunk_cap = chunk_cap
        self._buffer = _make_buffer(buffer_size)

        self._file: io.BufferedWriter | None = None
        self._created = False
        self._unlinked = False
        self._written = 0
        self._error: ResourceAcquisitionError | None = None
        self._thread: threading.Thread | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def written_bytes(self) -> int:
        return self._written

    @property
    def written_mb(self) -> int:
        return self._written // MIB

    @property
    def unlinked(self) -> bool:
        """True if the directory entry was removed while the file is open."""
        return self._unlinked

    @property
    def error(self) -> ResourceAcquisitionError | None:
        """The failure that stopped this actuator, if any."""
        return self._error

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread

    def current_target_mb(self) -> int:
        if self._target_mb <= 0:
            return 0
        return self._ramp.target_int(self._target_mb)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Create the file and arrange for its storage to be reclaimed.

        Raises:
            ResourceAcquisitionError: If the file cannot be created.
        """
        try:
            self._file = open(self._path, "wb")  # noqa: SIM115
        except OSError as exc:
            log.error("Failed to create file %s: %s", self._path, exc)
            raise ResourceAcquisitionError(
                exc.errno, f"Failed to create file: {exc.strerror}", self._path
            ) from exc

        self._created = True
        log.info(
            "Created file: %s (rampup to %d MB)", self._path, self._target_mb
        )
        self._arrange_reclaim()

    def _arrange_reclaim(self) -> None:
        if self._reclaim == RECLAIM_UNLINK and os.name == "posix":
            try:
                os.unlink(self._path)
            except OSError as exc:
                log.warning(
                    "Could not unlink %s early (%s); using cleanup helper",
                    self._path,
                    exc,
                )
            else:
                self._unlinked = True
                log.debug("Unlinked %s; storage lives until close", self._path)
                return

        try:
            spawn_reaper(self._path, self._reclaim_delay)
        except OSError as exc:
            log.warning("Failed to start cleanup helper: %s", exc)

    def start(self) -> None:
        """Create the file and start the growth thread.

        Raises:
            ResourceAcquisitionError: If the file cannot be created.
        """
        if self._target_mb <= 0:
            return

        self.open()
        self._thread = threading.Thread(
            target=self._run,
            name="file-grower",
            daemon=True,
        )
        self._thread.start()

    # ------------------------------------------------------------------
    # Growth
    # ------------------------------------------------------------------

    def step(self) -> int:
        """Write toward the current target, at most one chunk cap per call.

        Returns:
            Bytes written by this call.

        Raises:
            OSError: If a write, flush or fsync fails.
        """
        f = self._file
        if f is None:
            raise RuntimeError("FileActuator not opened; call open() first")

        target_bytes = self.current_target_mb() * MIB
        remaining = min(target_bytes - self._written, self._chunk_cap)
        if remaining <= 0:
            return 0

        view = memoryview(self._buffer)
        batch = 0
        while remaining > 0:
            n = f.write(view[: min(len(view), remaining)])
            self._written += n
            batch += n
            remaining -= n

        f.flush()
        os.fsync(f.fileno())
        return batch

    def _run(self) -> None:
        last_mb = -1
        while not self._cancel.wait(self._tick):
            try:
                self.step()
            except OSError as exc:
                self._error = ResourceAcquisitionError(
                    exc.errno, f"Failed to write file: {exc.strerror}", self._path
                )
                log.error("Failed to write to file %s: %s", self._path, exc)
                return

            # Progress line every 100 MB
            written_mb = self.written_mb
            if written_mb // 100 != last_mb // 100:
                log.debug(
                    "File size: %d MB / %d MB", written_mb, self._target_mb
                )
            last_mb = written_mb

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout)

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def close(self) -> list[OSError]:
        """Close the handle and remove the file.

        Both steps are attempted even if the first fails; a file that is
        already gone counts as removed.

        Returns:
            The errors hit along the way (empty on success).
        """
        errors: list[OSError] = []

        if self._file is not None:
            try:
                self._file.close()
            except OSError as exc:
                errors.append(exc)
            self._file = None

        if self._created and not self._unlinked:
            try:
                remove_quietly(self._path)
            except OSError as exc:
                errors.append(exc)

        for exc in errors:
            log.warning("File cleanup for %s: %s", self._path, exc)
        return errors
