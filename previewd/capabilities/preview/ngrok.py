"""ngrok backend — ephemeral tunnel process with JSON logs on stdout."""
from __future__ import annotations

import logging
import shutil

from previewd.capabilities.preview.base import NGROK
from previewd.capabilities.preview.process import (
    READINESS_TIMEOUT,
    ProcessHandle,
    spawn,
    wait_for_ready,
)
from previewd.capabilities.preview.readiness import extract_ngrok_url
from previewd.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class NgrokBackend:
    """Runs ``ngrok http PORT`` for the life of the session."""

    def __init__(self, binary: str = "ngrok", timeout: float = READINESS_TIMEOUT) -> None:
        self._binary = binary
        self._timeout = timeout

    @property
    def name(self) -> str:
        return NGROK

    def available(self) -> bool:
        return shutil.which(self._binary) is not None

    async def launch(self, port: int) -> tuple[str, ProcessHandle | None]:
        """Start ngrok and return its public https URL plus the process handle."""
        ngrok_path = shutil.which(self._binary)
        if not ngrok_path:
            raise ConfigurationError(f"ngrok not found: {self._binary}")

        handle = await spawn(
            "ngrok",
            [ngrok_path, "http", "--log=stdout", "--log-format=json", str(port)],
        )
        url = await wait_for_ready(handle, extract_ngrok_url, timeout=self._timeout)
        logger.info("ngrok tunnel URL: %s", url)
        return url, handle

    async def stop(self, handle: ProcessHandle | None) -> None:
        if handle is not None:
            await handle.terminate()
