"""
Line reader: turns a child's stdout/stderr pipe into tagged lines.

- read_and_forward(): formats each line and pushes it into the multiplexer
- discard_stream(): drains a pipe without forwarding anything
"""

from __future__ import annotations

import asyncio

from structlog.typing import FilteringBoundLogger

from .multiplexer import Multiplexer
from .style import format_line


async def discard_stream(reader: asyncio.StreamReader | None, chunk_size: int = 65536) -> None:
    """Read a stream to EOF and drop the data, so the writer never blocks on a full pipe."""
    if reader is None:
        return
    while await reader.read(chunk_size):
        pass


async def read_and_forward(
    reader: asyncio.StreamReader | None,
    *,
    title: str,
    color: int,
    sink: Multiplexer,
    log: FilteringBoundLogger,
    stream_name: str = "stdout",
) -> None:
    """
    Forward every line of `reader` to `sink` as `[ title ] text\\n`.

    Stops at end-of-stream. Undecodable bytes or an oversized line end the
    forwarding for this stream, the remainder is discarded. Raises SinkClosed
    when the multiplexer consumer is gone; nothing is retried.
    """
    if reader is None:
        return

    while True:
        try:
            raw = await reader.readline()
        except ValueError as exc:
            # line longer than the reader limit
            log.warning("proc.out_overrun", stream=stream_name, error=str(exc))
            await discard_stream(reader)
            return
        if not raw:
            return

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            log.warning("proc.out_decode_error", stream=stream_name)
            await discard_stream(reader)
            return

        line = text.removesuffix("\n").removesuffix("\r")
        await sink.send(format_line(title, color, line))
