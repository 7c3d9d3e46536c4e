"""Tunnel backend selection."""
from __future__ import annotations

import logging
from typing import Mapping

from previewd.capabilities.preview.base import BACKEND_ORDER, TunnelBackend
from previewd.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def select_backend(
    override: str | None,
    default: str | None,
    backends: Mapping[str, TunnelBackend],
) -> TunnelBackend:
    """Pick the tunnel backend for a new session.

    Explicit *override* beats the configured *default*, which beats the first
    installed backend in preference order.  A name that is set but not
    recognized is an error, never a silent fallback.
    """
    for source, value in (("tunnel", override), ("PREVIEW_TUNNEL", default)):
        choice = (value or "").strip().lower()
        if not choice:
            continue
        backend = backends.get(choice)
        if backend is None:
            raise ConfigurationError(f"unknown {source} {value!r} (expected one of: {', '.join(backends)})")
        logger.debug("Tunnel backend %s chosen via %s", choice, source)
        return backend

    for name in BACKEND_ORDER:
        backend = backends.get(name)
        if backend is not None and backend.available():
            return backend

    raise ConfigurationError("no tunnel binary found (install ngrok or tailscale)")
