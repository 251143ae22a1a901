from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field

from .outcome import SinkClosed


DEFAULT_CAPACITY = 1024


@dataclass(slots=True)
class Multiplexer:
    """
    Bounded fan-in conduit: many producers push formatted lines, one consumer pulls.

    - send() suspends while the buffer is full (backpressure, nothing is dropped)
    - seal(): producers are done, receive() returns None once the buffer is empty
    - close(): consumer is gone, pending and future send() raise SinkClosed,
      wait_closed() returns
    """

    capacity: int = DEFAULT_CAPACITY

    _buffer: deque[str] = field(init=False, repr=False)
    _condition: asyncio.Condition = field(init=False, repr=False)
    _sealed: bool = field(init=False, default=False)
    _closed: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("Multiplexer capacity must be at least 1")
        self._buffer = deque()
        self._condition = asyncio.Condition()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        return len(self._buffer)

    async def send(self, line: str) -> None:
        async with self._condition:
            await self._condition.wait_for(
                lambda: self._closed or len(self._buffer) < self.capacity
            )
            if self._closed:
                raise SinkClosed("multiplexer consumer is closed")
            self._buffer.append(line)
            self._condition.notify_all()

    async def receive(self) -> str | None:
        async with self._condition:
            await self._condition.wait_for(
                lambda: self._closed or self._sealed or bool(self._buffer)
            )
            if self._closed or not self._buffer:
                return None
            line = self._buffer.popleft()
            self._condition.notify_all()
            return line

    async def wait_closed(self) -> None:
        """Suspend until the consumer side is closed."""
        async with self._condition:
            await self._condition.wait_for(lambda: self._closed)

    async def seal(self) -> None:
        async with self._condition:
            self._sealed = True
            self._condition.notify_all()

    async def close(self) -> None:
        async with self._condition:
            self._closed = True
            self._buffer.clear()
            self._condition.notify_all()
