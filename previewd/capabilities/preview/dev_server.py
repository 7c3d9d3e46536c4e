"""Dev server launcher — ``yarn dev`` in the workspace, port from its output."""
from __future__ import annotations

import logging
from pathlib import Path

from previewd.capabilities.preview.process import (
    READINESS_TIMEOUT,
    ProcessHandle,
    spawn,
    wait_for_ready,
)
from previewd.capabilities.preview.readiness import extract_port
from previewd.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEV_COMMAND = ["yarn", "dev"]
MANIFEST_FILENAME = "package.json"


async def launch_dev_server(
    workspace_path: str,
    timeout: float = READINESS_TIMEOUT,
) -> tuple[int, ProcessHandle]:
    """Start the dev server and return ``(port, handle)`` once it announces a port.

    Raises ConfigurationError (no process spawned) when the workspace has no
    manifest, ProcessStartError, EarlyExitError or ReadinessTimeoutError.
    """
    workspace = Path(workspace_path)
    if not workspace.is_dir():
        raise ConfigurationError(f"workspace not found: {workspace_path}")
    if not (workspace / MANIFEST_FILENAME).is_file():
        raise ConfigurationError(
            f"{MANIFEST_FILENAME} not found; unable to run {' '.join(DEV_COMMAND)}"
        )

    handle = await spawn("dev-server", DEV_COMMAND, cwd=str(workspace))
    port = await wait_for_ready(handle, extract_port, timeout=timeout)
    logger.info("Dev server ready on port %d (%s)", port, workspace_path)
    return port, handle
