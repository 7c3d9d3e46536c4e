"""Tests for PreviewConfig.from_env."""
from __future__ import annotations

from unittest.mock import patch

import pytest

from previewd.config import PreviewConfig

_VARS = ("PREVIEW_TUNNEL", "NGROK_BIN", "TAILSCALE_BIN", "PREVIEW_WEB_PORT", "PREVIEW_LOG_FILE")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)
    # Keep a developer's .env out of the tests
    with patch("previewd.config.load_dotenv"):
        yield


class TestPreviewConfig:
    def test_defaults(self):
        config = PreviewConfig.from_env()
        assert config.default_tunnel == ""
        assert config.ngrok_bin == "ngrok"
        assert config.tailscale_bin == "tailscale"
        assert config.web_port == 7788
        assert config.log_file == "/tmp/previewd.log"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("PREVIEW_TUNNEL", " Tailscale ")
        monkeypatch.setenv("NGROK_BIN", "/opt/ngrok/bin/ngrok")
        monkeypatch.setenv("TAILSCALE_BIN", "/usr/local/bin/tailscale")
        monkeypatch.setenv("PREVIEW_WEB_PORT", "9000")
        config = PreviewConfig.from_env()
        assert config.default_tunnel == "tailscale"
        assert config.ngrok_bin == "/opt/ngrok/bin/ngrok"
        assert config.tailscale_bin == "/usr/local/bin/tailscale"
        assert config.web_port == 9000

    def test_blank_binary_falls_back(self, monkeypatch):
        monkeypatch.setenv("NGROK_BIN", "   ")
        assert PreviewConfig.from_env().ngrok_bin == "ngrok"

    def test_loads_dotenv(self):
        with patch("previewd.config.load_dotenv") as mock_load:
            PreviewConfig.from_env()
        mock_load.assert_called_once()
