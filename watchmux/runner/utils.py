"""
Async helpers shared by the runner.

- cancel_task(): safe cancellation of an asyncio.Task
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any


async def cancel_task(task: asyncio.Task[Any] | None) -> None:
    """
    Cancel a task and await its completion, suppressing any exceptions.

    The caller's own cancellation is never swallowed.
    """
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(Exception):
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
