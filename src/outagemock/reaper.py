"""Detached helper that removes the grown file after a delay.

The helper runs as its own session leader so it survives the main process
being killed; it is the fallback that keeps disk space from leaking when
in-process cleanup never gets a chance to run.

Usage: python -m outagemock.reaper PATH DELAY_SECONDS
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time

log = logging.getLogger(__name__)

# Extra grace period after the run duration before the file is removed
REAPER_MARGIN_S = 5.0


def spawn_reaper(
    path: str,
    delay: float,
    python: str = sys.executable,
) -> subprocess.Popen[bytes]:
    """Launch a detached reaper process for *path*.

    Raises:
        OSError: If the helper process cannot be started.
    """
    cmd = [python, "-m", "outagemock.reaper", os.path.abspath(path), str(delay)]
    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        close_fds=True,
        start_new_session=True,
    )
    log.debug("Spawned cleanup helper pid=%d for %s", proc.pid, path)
    return proc


def remove_quietly(path: str) -> bool:
    """Remove *path*, treating an already-missing file as success.

    Returns:
        True if this call removed the file.
    """
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True


def run_reaper(path: str, delay: float, margin: float = REAPER_MARGIN_S) -> None:
    """Sleep for ``delay + margin`` seconds, then remove *path*."""
    time.sleep(delay + margin)
    try:
        remove_quietly(path)
    except OSError as exc:
        log.warning("Cleanup helper: failed to remove %s: %s", path, exc)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print("usage: python -m outagemock.reaper PATH DELAY_SECONDS", file=sys.stderr)
        return 2
    try:
        delay = float(args[1])
    except ValueError:
        print(f"Invalid delay {args[1]!r}", file=sys.stderr)
        return 2
    run_reaper(args[0], delay)
    return 0


if __name__ == "__main__":
    sys.exit(main())
