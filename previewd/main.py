from __future__ import annotations

import asyncio
import logging
import signal

from previewd.adapters.web.server import WebControlPlane
from previewd.capabilities.preview.registry import SessionRegistry
from previewd.capabilities.preview.supervisor import PreviewSupervisor
from previewd.config import PreviewConfig

logger = logging.getLogger("previewd")


def setup_logging(log_file: str) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file),
        ],
    )


async def main(config: PreviewConfig | None = None) -> None:
    config = config or PreviewConfig.from_env()
    logger.info("previewd starting...")
    if config.default_tunnel:
        logger.info("Default tunnel backend: %s", config.default_tunnel)

    # Registry is owned here and handed to the supervisor
    registry = SessionRegistry()
    supervisor = PreviewSupervisor(config, registry=registry)
    web_cp = WebControlPlane(supervisor, port=config.web_port)

    # Handle shutdown signals
    stop_event = asyncio.Event()

    def handle_signal() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    await web_cp.start()
    logger.info("previewd is running. Press Ctrl+C to stop.")

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        await web_cp.stop()
        await supervisor.shutdown_all()
        logger.info("previewd stopped.")


def run() -> None:
    config = PreviewConfig.from_env()
    setup_logging(config.log_file)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
