"""Global subprocess tracker — ensures child processes are terminated on exit.

Long-running subprocesses (dev servers, tunnels) are tracked here.  Each one
is started in its own process session, so the ``atexit`` handler signals the
whole process group of every tracked PID.  This covers abnormal exits
(unhandled exceptions) where ``PreviewSupervisor.shutdown_all()`` never ran.
"""
from __future__ import annotations

import atexit
import logging
import os
import signal

logger = logging.getLogger(__name__)

_tracked_pids: set[int] = set()


def track(pid: int) -> None:
    """Register a long-running subprocess PID."""
    _tracked_pids.add(pid)


def untrack(pid: int) -> None:
    """Unregister a subprocess PID (stopped normally)."""
    _tracked_pids.discard(pid)


def tracked() -> set[int]:
    return set(_tracked_pids)


def signal_group(pid: int, sig: int) -> bool:
    """Send *sig* to the process group led by *pid*.

    Falls back to signalling the PID alone where process groups are
    unavailable.  Returns False if the process is already gone.
    """
    try:
        if hasattr(os, "killpg"):
            os.killpg(pid, sig)
        else:
            os.kill(pid, sig)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Group leader exited and the pgid was recycled; signal the PID only
        try:
            os.kill(pid, sig)
            return True
        except OSError:
            return False


def kill_all() -> None:
    """Send SIGTERM to all tracked process groups (called by atexit)."""
    for pid in list(_tracked_pids):
        try:
            if signal_group(pid, signal.SIGTERM):
                logger.debug("Sent SIGTERM to tracked PID %d", pid)
        except OSError as e:
            logger.debug("Failed to signal PID %d: %s", pid, e)
    _tracked_pids.clear()


# Registered at import time — covers unhandled exceptions and normal exits.
# SIGKILL of the daemon itself cannot be caught.
atexit.register(kill_all)
