"""Shared types for the preview capability."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from previewd.capabilities.preview.process import ProcessHandle

NGROK = "ngrok"
TAILSCALE = "tailscale"
# Fallback preference order when neither an override nor a default is set
BACKEND_ORDER = (NGROK, TAILSCALE)


@dataclass(frozen=True)
class TopicKey:
    """Chat + thread scope owning at most one preview."""

    chat_id: int
    thread_id: int

    def __str__(self) -> str:
        return f"{self.chat_id}:{self.thread_id}"

    @classmethod
    def parse(cls, key: str) -> TopicKey:
        chat, sep, thread = key.partition(":")
        if not sep:
            raise ValueError(f"invalid topic key: {key!r}")
        return cls(int(chat), int(thread))


@dataclass(frozen=True)
class SessionDescriptor:
    """What the orchestration layer renders for a running preview."""

    tunnel: str
    url: str
    port: int


def format_descriptor(desc: SessionDescriptor, heading: str = "Preview ready") -> str:
    """Chat-facing summary of a running preview."""
    return f"{heading}:\nURL: {desc.url}\nTunnel: {desc.tunnel}\nPort: {desc.port}"


@dataclass(frozen=True)
class Session:
    topic: TopicKey
    workspace_path: str
    tunnel: str
    port: int
    url: str
    dev_handle: ProcessHandle = field(repr=False)
    tunnel_handle: ProcessHandle | None = field(default=None, repr=False)
    started_at: float = field(default_factory=time.time)
    descriptor: SessionDescriptor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "descriptor",
            SessionDescriptor(tunnel=self.tunnel, url=self.url, port=self.port),
        )

    async def wait_exit(self) -> int:
        """Exit notification: resolves with the dev server's exit code."""
        return await self.dev_handle.wait()


@runtime_checkable
class TunnelBackend(Protocol):
    """Common interface for tunnel backends."""

    @property
    def name(self) -> str: ...

    def available(self) -> bool: ...

    async def launch(self, port: int) -> tuple[str, ProcessHandle | None]: ...

    async def stop(self, handle: ProcessHandle | None) -> None: ...
