from __future__ import annotations

import asyncio
import platform
import sys
from collections.abc import Sequence
from typing import TextIO

from structlog.typing import FilteringBoundLogger

from watchmux.logger import get_logger

from .multiplexer import DEFAULT_CAPACITY, Multiplexer
from .outcome import RunOutcome, RunReport, RunnerError
from .process_runner import DEFAULT_LINE_LIMIT, DEFAULT_SHELL, ProcessRunner
from .types import ProcessSpec


class Orchestrator:
    """
    Runs every ProcessSpec concurrently and writes their tagged lines to one sink.

    The run is over once every runner has finished and the multiplexer has been
    drained. One runner failing never cancels the others.
    """

    def __init__(
        self,
        *,
        capacity: int = DEFAULT_CAPACITY,
        shell: str = DEFAULT_SHELL,
        line_limit: int = DEFAULT_LINE_LIMIT,
    ) -> None:
        self._capacity = capacity
        self._shell = shell
        self._line_limit = line_limit

        self.log_event: FilteringBoundLogger = get_logger("proc.event")

    async def run(self, specs: Sequence[ProcessSpec], sink: TextIO) -> RunReport:
        multiplexer = Multiplexer(capacity=self._capacity)
        runners = [
            ProcessRunner(
                spec,
                multiplexer,
                shell=self._shell,
                line_limit=self._line_limit,
                log_event=self.log_event,
            )
            for spec in specs
        ]

        self.log_event.info(
            "runner.started",
            platform=platform.platform(),
            python=sys.version.split()[0],
            process_count=len(runners),
            capacity=self._capacity,
        )

        tasks: list[asyncio.Task[RunOutcome]] = [
            asyncio.create_task(runner.run(), name=f"run:{runner.spec.title}")
            for runner in runners
        ]
        join_task: asyncio.Task[list[RunOutcome]] = asyncio.create_task(
            self._join(tasks, multiplexer), name="runner.join"
        )

        try:
            await self._drain(multiplexer, sink)
        except OSError as exc:
            # sink is gone: producers get SinkClosed and end with ChannelClosed
            self.log_event.error("runner.sink_error", error=repr(exc))
            await multiplexer.close()

        outcomes = await join_task
        report = RunReport(
            outcomes=[(spec.title, outcome) for spec, outcome in zip(specs, outcomes, strict=True)]
        )

        self.log_event.info(
            "runner.stopped",
            ok=report.ok,
            failed=[title for title, _ in report.failures],
        )
        return report

    async def _join(
        self, tasks: list[asyncio.Task[RunOutcome]], multiplexer: Multiplexer
    ) -> list[RunOutcome]:
        """
        Wait for every runner, then seal the multiplexer so the drain loop can end.

        An exception escaping one runner becomes its RunnerError outcome and never
        cuts the join short for the others.
        """
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await multiplexer.seal()

        outcomes: list[RunOutcome] = []
        for task, result in zip(tasks, results, strict=True):
            if isinstance(result, BaseException):
                self.log_event.error(
                    "runner.task_failed", task=task.get_name(), error=repr(result)
                )
                outcomes.append(RunnerError(repr(result)))
            else:
                outcomes.append(result)
        return outcomes

    async def _drain(self, multiplexer: Multiplexer, sink: TextIO) -> None:
        """
        Write lines until the multiplexer is sealed and empty: one write per line.

        Writes run in the default executor so a full stdout pipe does not stall
        the readers and exit waits on the event loop.
        """
        loop = asyncio.get_running_loop()
        written = 0
        while (line := await multiplexer.receive()) is not None:
            await loop.run_in_executor(None, _write_line, sink, line)
            written += 1
        self.log_event.debug("runner.drained", lines=written)


def _write_line(sink: TextIO, line: str) -> None:
    sink.write(line)
    sink.flush()
