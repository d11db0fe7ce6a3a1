"""One-shot cancellation signal with a built-in expiry timer."""

from __future__ import annotations

import logging
import multiprocessing
import threading
from multiprocessing.synchronize import Event as ProcessEvent

log = logging.getLogger(__name__)

REASON_EXPIRED = "expired"
REASON_STOPPED = "stopped"


class CancellationSignal:
    """Broadcast stop signal observed by every actuator and worker.

    Backed by a :class:`multiprocessing.Event` so that both worker threads
    and CPU worker processes can wait on it.  The signal is monotone: once
    fired it stays fired, and only the first firing records a reason.

    The expiry timer is not running until :meth:`arm` is called, so the
    signal can be created before the actuators start.
    """

    def __init__(self, duration: float) -> None:
        self._duration = duration
        self._event = multiprocessing.Event()
        self._lock = threading.RLock()
        self._reason: str | None = None
        self._timer: threading.Timer | None = None

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def event(self) -> ProcessEvent:
        """The underlying event, for handing to worker processes."""
        return self._event

    @property
    def reason(self) -> str | None:
        """Why the signal fired (``"expired"`` or ``"stopped"``), or None."""
        with self._lock:
            return self._reason

    def arm(self) -> None:
        """Start the expiry timer.  Calling it again has no effect."""
        with self._lock:
            if self._timer is not None or self._reason is not None:
                return
            self._timer = threading.Timer(
                self._duration, self._fire, args=(REASON_EXPIRED,)
            )
            self._timer.name = "cancellation-expiry"
            self._timer.daemon = True
            self._timer.start()

    def fire(self) -> bool:
        """Fire the signal early.

        Returns:
            True if this call fired the signal, False if it had already
            fired.
        """
        return self._fire(REASON_STOPPED)

    def _fire(self, reason: str) -> bool:
        with self._lock:
            if self._reason is not None:
                return False
            self._reason = reason
            timer = self._timer
        self._event.set()
        if timer is not None and reason != REASON_EXPIRED:
            timer.cancel()
        log.debug("Cancellation signal fired (%s)", reason)
        return True

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the signal fires or *timeout* elapses.

        Returns:
            True if the signal has fired.
        """
        return self._event.wait(timeout)
