"""Tests for tunnel backend selection."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from previewd.capabilities.preview.selection import select_backend
from previewd.core.errors import ConfigurationError


def _backends(ngrok: bool = True, tailscale: bool = True) -> dict[str, MagicMock]:
    result = {}
    for name, installed in (("ngrok", ngrok), ("tailscale", tailscale)):
        backend = MagicMock()
        backend.name = name
        backend.available.return_value = installed
        result[name] = backend
    return result


class TestSelectBackend:
    def test_override_beats_default(self):
        backends = _backends()
        assert select_backend("ngrok", "tailscale", backends) is backends["ngrok"]

    def test_override_is_case_insensitive_and_trimmed(self):
        backends = _backends()
        assert select_backend("  Tailscale ", "", backends) is backends["tailscale"]

    def test_override_not_checked_for_installation(self):
        backends = _backends(ngrok=False)
        assert select_backend("ngrok", None, backends) is backends["ngrok"]

    def test_unknown_override_rejected(self):
        backends = _backends()
        with pytest.raises(ConfigurationError, match="unknown tunnel 'cloudflared'"):
            select_backend("cloudflared", "ngrok", backends)
        for b in backends.values():
            b.launch.assert_not_called()

    def test_default_used_without_override(self):
        backends = _backends()
        assert select_backend("", "tailscale", backends) is backends["tailscale"]

    def test_unknown_default_rejected(self):
        with pytest.raises(ConfigurationError, match="PREVIEW_TUNNEL"):
            select_backend(None, "frp", _backends())

    def test_first_installed_in_preference_order(self):
        backends = _backends()
        assert select_backend(None, None, backends) is backends["ngrok"]

    def test_falls_through_to_tailscale(self):
        backends = _backends(ngrok=False)
        assert select_backend(None, None, backends) is backends["tailscale"]

    def test_nothing_installed(self):
        with pytest.raises(ConfigurationError, match="no tunnel binary found"):
            select_backend(None, None, _backends(ngrok=False, tailscale=False))
