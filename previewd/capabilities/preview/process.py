"""Child process handles and the readiness race shared by all launchers."""
from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from previewd.capabilities.preview.scanner import OutputScanner
from previewd.core.errors import EarlyExitError, ProcessStartError, ReadinessTimeoutError
from previewd.core.subprocess_tracker import signal_group, track, untrack

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fixed deadline for dev-server and tunnel readiness (seconds)
READINESS_TIMEOUT = 20.0
# How long kill() waits for the process to be reaped
_REAP_TIMEOUT = 5.0
# How long an early exit waits for the last output lines
_DRAIN_TIMEOUT = 1.0


@dataclass
class ProcessHandle:
    """A long-running child plus the tasks bound to it.

    The background tasks (stream readers and the exit waiter) form the
    handle's cancellable context: ``cancel()`` stops them, ``kill()`` ends
    the process group itself.  Both are safe to call repeatedly.
    """

    name: str
    process: asyncio.subprocess.Process
    scanner: OutputScanner
    exited: asyncio.Task = field(repr=False)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def is_alive(self) -> bool:
        return self.process.returncode is None

    def recent_output(self) -> list[str]:
        return self.scanner.recent_output()

    async def wait(self) -> int:
        """Wait for the child to exit and return its exit code."""
        return await asyncio.shield(self.exited)

    def cancel(self) -> None:
        self.scanner.cancel()

    async def kill(self) -> None:
        """Force-kill the child's process group and reap it."""
        proc = self.process
        was_running = proc.returncode is None
        # Signal the group even after the leader exited: its children may linger
        if not signal_group(proc.pid, signal.SIGKILL) and was_running:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        if was_running:
            logger.info("Killed %s process (pid %d)", self.name, proc.pid)
        try:
            await asyncio.wait_for(asyncio.shield(self.exited), timeout=_REAP_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("%s process (pid %d) did not exit after kill", self.name, proc.pid)
        untrack(proc.pid)

    async def terminate(self) -> None:
        """kill() + cancel(), never raising.

        The readers keep draining the pipes until the kill has been reaped.
        """
        try:
            await self.kill()
        except Exception:
            logger.exception("Failed to kill %s process", self.name)
        finally:
            self.cancel()


async def spawn(name: str, argv: list[str], cwd: str | None = None) -> ProcessHandle:
    """Start *argv* in its own process group with piped output.

    Raises ProcessStartError if the OS cannot start the process.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        raise ProcessStartError(f"failed to start {name} ({argv[0]}): {e}") from e

    track(process.pid)
    logger.info("Started %s process (pid %d): %s", name, process.pid, " ".join(argv))
    scanner = OutputScanner(process.stdout, process.stderr, label=name)
    exited = asyncio.create_task(process.wait())
    return ProcessHandle(name=name, process=process, scanner=scanner, exited=exited)


async def wait_for_ready(
    handle: ProcessHandle,
    extract: Callable[[str], T | None],
    timeout: float = READINESS_TIMEOUT,
) -> T:
    """Race readiness, early exit and the deadline; the first to happen wins.

    Returns the first non-None value *extract* produces for a scanned line.
    Whenever no value is returned, including when the caller is cancelled,
    the handle is killed and cancelled before the error propagates.
    """

    async def _scan() -> T | None:
        async for line in handle.scanner:
            value = extract(line)
            if value is not None:
                return value
        return None

    ready = asyncio.create_task(_scan())
    exited = asyncio.ensure_future(asyncio.shield(handle.exited))
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    try:
        pending: set[asyncio.Future] = {ready, exited}
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED,
            )
            if ready in done and ready.result() is not None:
                return ready.result()
            if exited in done:
                returncode = exited.result()
                await handle.scanner.drain(_DRAIN_TIMEOUT)
                await handle.terminate()
                raise EarlyExitError(handle.name, returncode, handle.recent_output())
            # Streams closed without a match: keep waiting on exit or deadline
    except asyncio.CancelledError:
        await handle.terminate()
        raise
    finally:
        for t in (ready, exited):
            if not t.done():
                t.cancel()

    await handle.terminate()
    raise ReadinessTimeoutError(handle.name, timeout)
