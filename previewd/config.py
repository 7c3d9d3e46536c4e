from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass
class PreviewConfig:
    default_tunnel: str = ""
    ngrok_bin: str = "ngrok"
    tailscale_bin: str = "tailscale"
    web_port: int = 7788
    log_file: str = "/tmp/previewd.log"

    @classmethod
    def from_env(cls) -> PreviewConfig:
        load_dotenv()
        return cls(
            default_tunnel=os.environ.get("PREVIEW_TUNNEL", "").strip().lower(),
            ngrok_bin=os.environ.get("NGROK_BIN", "").strip() or "ngrok",
            tailscale_bin=os.environ.get("TAILSCALE_BIN", "").strip() or "tailscale",
            web_port=int(os.environ.get("PREVIEW_WEB_PORT", "7788")),
            log_file=os.environ.get("PREVIEW_LOG_FILE", "") or "/tmp/previewd.log",
        )
