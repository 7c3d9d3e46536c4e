"""Web Control Plane — local REST API over the preview supervisor.

The orchestration surface used by the daemon: chat front-ends (or a
browser) start, inspect and stop previews per topic through these endpoints.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

from previewd.capabilities.preview.base import TopicKey, format_descriptor
from previewd.core.errors import ConfigurationError, PreviewError

if TYPE_CHECKING:
    from previewd.capabilities.preview.supervisor import PreviewSupervisor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _topic_from_request(request: web.Request) -> TopicKey:
    try:
        return TopicKey(
            int(request.match_info["chat_id"]),
            int(request.match_info["thread_id"]),
        )
    except ValueError:
        raise web.HTTPBadRequest(
            text='{"error": "chat_id and thread_id must be integers"}',
            content_type="application/json",
        )


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------

async def _handle_list(request: web.Request) -> web.Response:
    """GET /api/previews — list all active previews."""
    sup: PreviewSupervisor = request.app["supervisor"]
    data = [
        {
            "topic": str(s.topic),
            "workspace_path": s.workspace_path,
            "tunnel": s.tunnel,
            "url": s.url,
            "port": s.port,
        }
        for s in sup.list_sessions()
    ]
    return web.json_response(data)


async def _handle_status(request: web.Request) -> web.Response:
    """GET /api/previews/{chat_id}/{thread_id}"""
    sup: PreviewSupervisor = request.app["supervisor"]
    desc = sup.status(_topic_from_request(request))
    if desc is None:
        return web.json_response({"error": "no preview running"}, status=404)
    return web.json_response({
        "tunnel": desc.tunnel,
        "url": desc.url,
        "port": desc.port,
        "text": format_descriptor(desc, heading="Preview running"),
    })


async def _handle_start(request: web.Request) -> web.Response:
    """POST /api/previews/{chat_id}/{thread_id} — start (or return) a preview."""
    sup: PreviewSupervisor = request.app["supervisor"]
    topic = _topic_from_request(request)
    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"error": "invalid JSON body"}, status=400)
    workspace = (body.get("workspace_path") or "").strip() if isinstance(body, dict) else ""
    tunnel = (body.get("tunnel") or "") if isinstance(body, dict) else ""

    if not workspace:
        return web.json_response({"error": "workspace_path is required"}, status=400)

    try:
        desc = await sup.start(topic, workspace, tunnel)
    except ConfigurationError as e:
        return web.json_response({"error": str(e)}, status=400)
    except PreviewError as e:
        logger.error("Failed to start preview for %s: %s", topic, e)
        return web.json_response({"error": str(e)}, status=502)

    return web.json_response({
        "tunnel": desc.tunnel,
        "url": desc.url,
        "port": desc.port,
        "text": format_descriptor(desc),
    })


async def _handle_stop(request: web.Request) -> web.Response:
    """DELETE /api/previews/{chat_id}/{thread_id}"""
    sup: PreviewSupervisor = request.app["supervisor"]
    await sup.stop(_topic_from_request(request))
    return web.json_response({"ok": True})


# ---------------------------------------------------------------------------
# App factory & server class
# ---------------------------------------------------------------------------

def build_app(supervisor: PreviewSupervisor) -> web.Application:
    app = web.Application()
    app["supervisor"] = supervisor

    app.router.add_get("/api/previews", _handle_list)
    app.router.add_get("/api/previews/{chat_id}/{thread_id}", _handle_status)
    app.router.add_post("/api/previews/{chat_id}/{thread_id}", _handle_start)
    app.router.add_delete("/api/previews/{chat_id}/{thread_id}", _handle_stop)

    return app


class WebControlPlane:
    """aiohttp-based web control plane server."""

    def __init__(self, supervisor: PreviewSupervisor, port: int = 7788) -> None:
        self._app = build_app(supervisor)
        self._port = port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", self._port)
        await site.start()
        logger.info("Web control plane running at http://localhost:%d", self._port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Web control plane stopped")
