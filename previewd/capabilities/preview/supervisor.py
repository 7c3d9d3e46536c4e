"""Preview supervisor — dev server + public tunnel per topic.

Start launches the workspace dev server, discovers its port, exposes it
through a tunnel backend and registers the session.  A monitor task per
session tears everything down when the dev server dies.  Stop, the monitor
and ``shutdown_all()`` all converge on the same teardown.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Mapping

from previewd.capabilities.preview.base import (
    NGROK,
    TAILSCALE,
    Session,
    SessionDescriptor,
    TopicKey,
    TunnelBackend,
)
from previewd.capabilities.preview.dev_server import launch_dev_server
from previewd.capabilities.preview.ngrok import NgrokBackend
from previewd.capabilities.preview.registry import SessionRegistry
from previewd.capabilities.preview.selection import select_backend
from previewd.capabilities.preview.tailscale import TailscaleBackend
from previewd.config import PreviewConfig
from previewd.core.errors import ConfigurationError, RuntimeExitError

logger = logging.getLogger(__name__)


def default_backends(config: PreviewConfig) -> dict[str, TunnelBackend]:
    return {
        NGROK: NgrokBackend(config.ngrok_bin),
        TAILSCALE: TailscaleBackend(config.tailscale_bin),
    }


class PreviewSupervisor:
    """Owns the preview sessions of one daemon."""

    def __init__(
        self,
        config: PreviewConfig | None = None,
        registry: SessionRegistry | None = None,
        backends: Mapping[str, TunnelBackend] | None = None,
    ) -> None:
        self._config = config or PreviewConfig()
        self._registry = registry if registry is not None else SessionRegistry()
        self._backends = dict(backends) if backends is not None else default_backends(self._config)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def start(
        self, topic: TopicKey, workspace_path: str, tunnel_override: str = "",
    ) -> SessionDescriptor:
        """Start a preview for *topic*, or return the one already running.

        Raises ConfigurationError, ProcessStartError, EarlyExitError or
        ReadinessTimeoutError; nothing is left running or registered then.
        """
        if not workspace_path:
            raise ConfigurationError("workspace path is empty")

        existing = self._registry.get(topic)
        if existing is not None:
            return existing.descriptor

        async with self._registry.launch_lock(topic):
            existing = self._registry.get(topic)
            if existing is not None:
                return existing.descriptor

            workspace = os.path.abspath(workspace_path)
            port, dev_handle = await launch_dev_server(workspace)
            try:
                backend = select_backend(
                    tunnel_override, self._config.default_tunnel, self._backends,
                )
                url, tunnel_handle = await backend.launch(port)
            except BaseException:
                await dev_handle.terminate()
                raise

            session = Session(
                topic=topic,
                workspace_path=workspace,
                tunnel=backend.name,
                port=port,
                url=url,
                dev_handle=dev_handle,
                tunnel_handle=tunnel_handle,
            )
            self._registry.insert(session)
            monitor = asyncio.create_task(
                self._monitor(session), name=f"preview-monitor-{topic}",
            )
            self._registry.track_monitor(topic, monitor)

        logger.info(
            "Preview started for %s: %s via %s (port %d)", topic, url, backend.name, port,
        )
        return session.descriptor

    async def stop(self, topic: TopicKey) -> None:
        """Stop the preview for *topic*. A no-op if none is running."""
        await self._stop(topic)

    def status(self, topic: TopicKey) -> SessionDescriptor | None:
        session = self._registry.get(topic)
        return session.descriptor if session else None

    def get_session(self, topic: TopicKey) -> Session | None:
        return self._registry.get(topic)

    def list_sessions(self) -> list[Session]:
        return self._registry.sessions()

    async def shutdown_all(self) -> None:
        """Stop every preview (process-wide termination)."""
        topics = self._registry.topics()
        if topics:
            logger.info("Stopping %d preview session(s)", len(topics))
        for topic in topics:
            try:
                await self.stop(topic)
            except Exception:
                logger.exception("Failed to stop preview for %s", topic)

        # Monitors already tearing down their own session
        monitors = self._registry.monitors()
        if monitors:
            await asyncio.gather(*monitors, return_exceptions=True)

    # ------------------------------------------------------------------

    async def _stop(self, topic: TopicKey, expected: Session | None = None) -> None:
        session = self._registry.remove(topic, expected=expected)
        if session is None:
            return

        monitor = self._registry.pop_monitor(topic)
        if monitor is not None and monitor is not asyncio.current_task():
            monitor.cancel()

        await self._teardown(session)

    async def _monitor(self, session: Session) -> None:
        """Wait for the dev server to exit, then tear the session down."""
        returncode = await session.wait_exit()
        if returncode != 0:
            err = RuntimeExitError("dev-server", returncode)
            logger.warning("Preview %s (%s): %s", session.topic, session.workspace_path, err)
        else:
            logger.info("Preview %s: dev server exited", session.topic)
        await self._stop(session.topic, expected=session)

    async def _teardown(self, session: Session) -> None:
        """Best-effort release of the tunnel and the dev server. Never raises."""
        backend = self._backends.get(session.tunnel)
        try:
            if backend is not None:
                await backend.stop(session.tunnel_handle)
            elif session.tunnel_handle is not None:
                await session.tunnel_handle.terminate()
        except Exception:
            logger.exception("Failed to stop %s tunnel for %s", session.tunnel, session.topic)

        await session.dev_handle.terminate()
        logger.info("Preview stopped for %s", session.topic)
