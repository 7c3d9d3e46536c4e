"""Output scanner — fan in stdout/stderr of a child into one line stream."""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import AsyncIterator

logger = logging.getLogger(__name__)

_EOF = object()


class OutputScanner:
    """Merge two byte streams into a single bounded queue of text lines.

    Lines are dropped when the queue is full so a slow (or absent) consumer
    never stalls the child's I/O.  The reader tasks keep draining both pipes
    after the consumer stops iterating; they finish when the streams close.
    """

    def __init__(
        self,
        stdout: asyncio.StreamReader | None,
        stderr: asyncio.StreamReader | None,
        label: str,
        maxsize: int = 64,
        tail_size: int = 50,
    ) -> None:
        self._label = label
        self._maxsize = maxsize
        # Unbounded queue; the bound is enforced in _push() so _EOF always fits
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._tail: deque[str] = deque(maxlen=tail_size)
        self._dropped = 0
        self._readers = [
            asyncio.create_task(self._read(stdout, "out")),
            asyncio.create_task(self._read(stderr, "err")),
        ]
        self._closer = asyncio.create_task(self._close_when_done())

    @property
    def dropped(self) -> int:
        return self._dropped

    def recent_output(self) -> list[str]:
        """Last captured lines from both streams, oldest first."""
        return list(self._tail)

    async def drain(self, timeout: float) -> None:
        """Wait up to *timeout* seconds for both streams to close."""
        await asyncio.wait(self._readers, timeout=timeout)

    def cancel(self) -> None:
        # The closer still runs and ends iteration once the readers are gone
        for t in self._readers:
            t.cancel()

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _EOF:
                return
            yield item  # type: ignore[misc]

    # ------------------------------------------------------------------

    def _push(self, line: str) -> None:
        if self._queue.qsize() >= self._maxsize:
            self._dropped += 1
            return
        self._queue.put_nowait(line)

    async def _read(self, stream: asyncio.StreamReader | None, which: str) -> None:
        if stream is None:
            return
        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                # Line longer than the stream limit; the buffer was discarded
                logger.debug("%s(%s): skipped over-long line", self._label, which)
                continue
            if not raw:
                return
            text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if not text:
                continue
            logger.debug("%s(%s): %s", self._label, which, text)
            self._tail.append(text)
            self._push(text)

    async def _close_when_done(self) -> None:
        try:
            await asyncio.gather(*self._readers, return_exceptions=True)
        finally:
            self._queue.put_nowait(_EOF)
