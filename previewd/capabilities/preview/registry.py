"""Session registry — topic → active preview session, at most one per topic."""
from __future__ import annotations

import asyncio
import threading
import weakref

from previewd.capabilities.preview.base import Session, TopicKey


class SessionRegistry:
    """Concurrency-safe map of active sessions and their monitor tasks.

    The lock is held only across dict reads/writes, never across subprocess
    work.  Starts for the same topic are serialized separately through
    ``launch_lock()``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[TopicKey, Session] = {}
        self._monitors: dict[TopicKey, asyncio.Task] = {}
        # Entries vanish once no start holds or awaits the lock
        self._launch_locks: weakref.WeakValueDictionary[TopicKey, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, topic: object) -> bool:
        with self._lock:
            return topic in self._sessions

    def get(self, topic: TopicKey) -> Session | None:
        with self._lock:
            return self._sessions.get(topic)

    def insert(self, session: Session) -> Session:
        """Register *session* unless its topic is taken; return the registered one."""
        with self._lock:
            return self._sessions.setdefault(session.topic, session)

    def remove(self, topic: TopicKey, expected: Session | None = None) -> Session | None:
        """Delete and return the session for *topic*.

        With *expected*, only removes when that exact session is registered.
        """
        with self._lock:
            current = self._sessions.get(topic)
            if current is None or (expected is not None and current is not expected):
                return None
            del self._sessions[topic]
            return current

    def topics(self) -> list[TopicKey]:
        with self._lock:
            return list(self._sessions)

    def sessions(self) -> list[Session]:
        with self._lock:
            return list(self._sessions.values())

    def launch_lock(self, topic: TopicKey) -> asyncio.Lock:
        with self._lock:
            lock = self._launch_locks.get(topic)
            if lock is None:
                lock = self._launch_locks[topic] = asyncio.Lock()
            return lock

    # -- Monitor tasks -----------------------------------------------------

    def track_monitor(self, topic: TopicKey, task: asyncio.Task) -> None:
        with self._lock:
            self._monitors[topic] = task
        task.add_done_callback(lambda t: self._forget_monitor(topic, t))

    def pop_monitor(self, topic: TopicKey) -> asyncio.Task | None:
        with self._lock:
            return self._monitors.pop(topic, None)

    def monitors(self) -> list[asyncio.Task]:
        with self._lock:
            return list(self._monitors.values())

    def _forget_monitor(self, topic: TopicKey, task: asyncio.Task) -> None:
        with self._lock:
            if self._monitors.get(topic) is task:
                del self._monitors[topic]
