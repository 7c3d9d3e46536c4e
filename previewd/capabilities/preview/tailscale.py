"""Tailscale backend — serve + funnel configuration, no long-running process.

The tunnel lives in tailscaled's own configuration, so ``launch`` returns no
handle and ``stop`` turns the funnel off and resets serve routing instead of
killing anything.
"""
from __future__ import annotations

import asyncio
import json
import logging
import shutil

from previewd.capabilities.preview.base import TAILSCALE
from previewd.capabilities.preview.process import ProcessHandle
from previewd.core.errors import ConfigurationError, ProcessStartError

logger = logging.getLogger(__name__)

FUNNEL_PORT = "443"
# Bound for each short-lived tailscale call (seconds)
_COMMAND_TIMEOUT = 15.0


class TailscaleBackend:
    """Exposes the dev server through ``tailscale serve`` + ``tailscale funnel``."""

    def __init__(self, binary: str = "tailscale") -> None:
        self._binary = binary

    @property
    def name(self) -> str:
        return TAILSCALE

    def available(self) -> bool:
        return shutil.which(self._binary) is not None

    async def launch(self, port: int) -> tuple[str, ProcessHandle | None]:
        """Route https:/ to the dev server, enable funnel, return the public URL."""
        tailscale_path = shutil.which(self._binary)
        if not tailscale_path:
            raise ConfigurationError(f"tailscale not found: {self._binary}")

        await self._check(
            "tailscale serve",
            tailscale_path, "serve", "https", "/", f"http://127.0.0.1:{port}",
        )
        await self._check("tailscale funnel", tailscale_path, "funnel", FUNNEL_PORT, "on")

        url = await self._public_url(tailscale_path)
        logger.info("Tailscale funnel URL: %s", url)
        return url, None

    async def stop(self, handle: ProcessHandle | None) -> None:
        """Disable funnel and reset serve routing. Failures are logged only."""
        tailscale_path = shutil.which(self._binary)
        if not tailscale_path:
            return
        for args in (("funnel", FUNNEL_PORT, "off"), ("serve", "reset")):
            try:
                code, _, err = await _run(tailscale_path, *args)
            except (OSError, asyncio.TimeoutError) as e:
                logger.warning("tailscale %s failed: %s", " ".join(args), e)
                continue
            if code != 0:
                logger.warning("tailscale %s exited with %d: %s", " ".join(args), code, err)
        logger.info("Tailscale funnel disabled")

    # ------------------------------------------------------------------

    async def _check(self, label: str, *argv: str) -> str:
        try:
            code, out, err = await _run(*argv)
        except asyncio.TimeoutError:
            raise ProcessStartError(f"{label} timed out")
        except OSError as e:
            raise ProcessStartError(f"{label} failed: {e}") from e
        if code != 0:
            raise ProcessStartError(f"{label} failed (code {code}): {err or out}")
        return out

    async def _public_url(self, tailscale_path: str) -> str:
        out = await self._check("tailscale status", tailscale_path, "status", "--json")
        try:
            payload = json.loads(out)
        except json.JSONDecodeError as e:
            raise ProcessStartError(f"failed to parse tailscale status: {e}") from e

        self_node = payload.get("Self") if isinstance(payload, dict) else None
        dns_name = self_node.get("DNSName", "") if isinstance(self_node, dict) else ""
        dns_name = (dns_name or "").rstrip(".")
        if not dns_name:
            raise ProcessStartError("tailscale DNS name not found in status")
        return f"https://{dns_name}/"


async def _run(*argv: str) -> tuple[int, str, str]:
    """Run a short command; return (exit code, stdout, stderr)."""
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=_COMMAND_TIMEOUT)
    except asyncio.TimeoutError:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        raise
    return (
        proc.returncode if proc.returncode is not None else -1,
        stdout.decode("utf-8", errors="replace").strip(),
        stderr.decode("utf-8", errors="replace").strip(),
    )
