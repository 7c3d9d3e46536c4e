"""Readiness extraction — pure line matchers for dev servers and tunnels."""
from __future__ import annotations

import json
import re

# Ordered: first match wins
_DEV_URL_RE = re.compile(r"http://(?:localhost|127\.0\.0\.1|0\.0\.0\.0|\[::1\]):(\d+)")
_PORT_LINE_RE = re.compile(r"\b(?:port|listening)\b[^0-9]*(\d{2,5})", re.IGNORECASE)


def extract_port(line: str) -> int | None:
    """Return the port announced by a dev-server output line, or None.

    A loopback URL (``http://localhost:5173``) wins over a loose
    ``port``/``listening`` phrase followed by a 2-5 digit number.
    """
    for pattern in (_DEV_URL_RE, _PORT_LINE_RE):
        match = pattern.search(line)
        if match:
            port = int(match.group(1))
            return port if port > 0 else None
    return None


def extract_ngrok_url(line: str) -> str | None:
    """Return the public https URL from an ngrok JSON log line, or None."""
    try:
        payload = json.loads(line)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    url = payload.get("url")
    if isinstance(url, str) and url.startswith("https://"):
        return url
    return None
