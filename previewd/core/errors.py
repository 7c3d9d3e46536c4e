"""Error taxonomy for preview startup and supervision.

Every startup-path error aborts ``PreviewSupervisor.start()`` and leaves no
session registered.  ``RuntimeExitError`` is never raised to a caller; the
session monitor logs it when a running dev server dies.
"""
from __future__ import annotations


class PreviewError(RuntimeError):
    """Base class for all preview supervisor errors."""


class ConfigurationError(PreviewError, ValueError):
    """Missing manifest, unresolvable tunnel binary, or unknown backend name."""


class ProcessStartError(PreviewError):
    """The OS failed to spawn a child, or a short-lived tunnel command failed."""


class EarlyExitError(PreviewError):
    """A child exited before signalling readiness.

    Raised for any exit, so *returncode* may be 0 when the command finished
    cleanly without ever reporting a port or URL.
    """

    def __init__(self, name: str, returncode: int | None, output: list[str] | None = None) -> None:
        self.name = name
        self.returncode = returncode
        self.output = list(output or [])
        message = f"{name} exited early (code {returncode})"
        if self.output:
            message += ":\n" + "\n".join(self.output[-10:])
        super().__init__(message)


class ReadinessTimeoutError(PreviewError):
    """Readiness was not observed before the fixed deadline."""

    def __init__(self, name: str, timeout: float) -> None:
        self.name = name
        self.timeout = timeout
        super().__init__(f"timed out after {timeout:g}s waiting for {name}")


class RuntimeExitError(PreviewError):
    """The dev server of an active session terminated."""

    def __init__(self, name: str, returncode: int | None) -> None:
        self.name = name
        self.returncode = returncode
        super().__init__(f"{name} exited unexpectedly (code {returncode})")
