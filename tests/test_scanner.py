"""Tests for OutputScanner (stdout/stderr fan-in)."""
from __future__ import annotations

import asyncio

from previewd.capabilities.preview.scanner import OutputScanner


def _reader(*chunks: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    if eof:
        reader.feed_eof()
    return reader


async def _collect(scanner: OutputScanner) -> list[str]:
    return [line async for line in scanner]


class TestOutputScanner:
    async def test_merges_both_streams(self):
        out = _reader(b"vite v5.0.0\n", b"  Local: http://localhost:5173/\n")
        err = _reader(b"warning: deprecated\n")
        scanner = OutputScanner(out, err, label="dev")

        lines = await asyncio.wait_for(_collect(scanner), timeout=2)

        assert sorted(lines) == sorted([
            "vite v5.0.0",
            "  Local: http://localhost:5173/",
            "warning: deprecated",
        ])

    async def test_closes_only_when_both_streams_close(self):
        out = _reader(b"one\n")
        err = _reader(eof=False)
        scanner = OutputScanner(out, err, label="dev")

        collecting = asyncio.create_task(_collect(scanner))
        await asyncio.sleep(0.05)
        assert not collecting.done()

        err.feed_data(b"two\n")
        err.feed_eof()
        lines = await asyncio.wait_for(collecting, timeout=2)
        assert sorted(lines) == ["one", "two"]

    async def test_drops_lines_when_full(self):
        out = _reader(b"".join(f"line {i}\n".encode() for i in range(10)))
        scanner = OutputScanner(out, _reader(), label="dev", maxsize=3)

        # Let the readers run to completion before anyone consumes
        await asyncio.wait_for(scanner.drain(2), timeout=3)
        lines = await asyncio.wait_for(_collect(scanner), timeout=2)

        assert lines == ["line 0", "line 1", "line 2"]
        assert scanner.dropped == 7

    async def test_tail_keeps_dropped_lines(self):
        out = _reader(b"a\nb\nc\nd\n")
        scanner = OutputScanner(out, _reader(), label="dev", maxsize=1, tail_size=3)
        await scanner.drain(2)
        assert scanner.recent_output() == ["b", "c", "d"]

    async def test_strips_crlf_and_skips_blank_lines(self):
        out = _reader(b"ready\r\n\n\r\ndone\n")
        scanner = OutputScanner(out, None, label="dev")
        lines = await asyncio.wait_for(_collect(scanner), timeout=2)
        assert lines == ["ready", "done"]

    async def test_invalid_utf8_replaced(self):
        out = _reader(b"caf\xe9\n")
        scanner = OutputScanner(out, None, label="dev")
        lines = await asyncio.wait_for(_collect(scanner), timeout=2)
        assert lines == ["caf�"]

    async def test_over_long_line_skipped(self):
        out = asyncio.StreamReader(limit=16)
        out.feed_data(b"x" * 64 + b"\n" + b"short\n")
        out.feed_eof()
        scanner = OutputScanner(out, None, label="dev")
        lines = await asyncio.wait_for(_collect(scanner), timeout=2)
        assert lines[-1] == "short"

    async def test_cancel_closes_iteration(self):
        scanner = OutputScanner(_reader(eof=False), _reader(eof=False), label="dev")
        collecting = asyncio.create_task(_collect(scanner))
        await asyncio.sleep(0)
        scanner.cancel()
        assert await asyncio.wait_for(collecting, timeout=2) == []
