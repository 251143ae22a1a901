from __future__ import annotations

import asyncio
import contextlib
import os
import time
from collections.abc import Mapping
from typing import TypedDict

from structlog.typing import FilteringBoundLogger

from watchmux.logger import get_logger

from .multiplexer import Multiplexer
from .outcome import (
    ChannelClosed,
    ExitFailed,
    GateFailed,
    RunOutcome,
    SinkClosed,
    SpawnFailed,
    Success,
)
from .reader import discard_stream, read_and_forward
from .types import STDERR_COLOR, STDOUT_COLOR, ProcessSpec, RunKind
from .utils import cancel_task


DEFAULT_SHELL = "bash"

# asyncio.StreamReader buffer limit, a longer line ends forwarding for its stream
DEFAULT_LINE_LIMIT = 1024 * 1024


class PopenKwargs(TypedDict, total=False):
    stdin: int | None
    stdout: int | None
    stderr: int | None
    env: Mapping[str, str] | None
    limit: int


class ProcessRunner:
    """
    Runs one ProcessSpec to completion and reports a single RunOutcome.

    Idle -> Gating (only with a gate) -> Spawning -> Running -> Finished.
    A failed gate means the main command is never spawned. Failures stay local
    to this runner: nothing here cancels sibling runners.
    """

    def __init__(
        self,
        spec: ProcessSpec,
        sink: Multiplexer,
        *,
        shell: str = DEFAULT_SHELL,
        line_limit: int = DEFAULT_LINE_LIMIT,
        log_event: FilteringBoundLogger | None = None,
    ) -> None:
        self.spec = spec
        self._sink = sink
        self._shell = shell
        self._line_limit = line_limit
        self.log_event: FilteringBoundLogger = (log_event or get_logger("proc.event")).bind(
            title=spec.title
        )

        # resolved once: shell string or split program + args
        match spec.kind:
            case RunKind.SHELL:
                self._argv = [shell, "-c", spec.command]
            case RunKind.COMMAND:
                self._argv = spec.argv()

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    async def run(self) -> RunOutcome:
        started = time.monotonic()
        try:
            if self.spec.gate is not None:
                self.log_event.info("proc.gate_started", gate=self.spec.gate)
                gate_code = await self._spawn_and_wait([self._shell, "-c", self.spec.gate])
                if gate_code != 0:
                    self.log_event.warning("proc.gate_failed", returncode=gate_code)
                    return GateFailed(gate_code)
                self.log_event.info("proc.gate_passed")

            returncode = await self._spawn_and_wait(self._argv)
        except (OSError, ValueError) as exc:
            return SpawnFailed(str(exc) or repr(exc))
        except SinkClosed:
            self.log_event.warning("proc.channel_closed")
            return ChannelClosed()

        elapsed = round(time.monotonic() - started, 3)
        if returncode != 0:
            self.log_event.warning("proc.exit_failed", returncode=returncode, elapsed_sec=elapsed)
            return ExitFailed(returncode)

        self.log_event.info("proc.exited", returncode=returncode, elapsed_sec=elapsed)
        return Success()

    async def _spawn(self, argv: list[str]) -> asyncio.subprocess.Process:
        """Start a child with piped stdout/stderr and the spec's env merged in."""
        env = os.environ.copy()
        env.update(self.spec.environment)

        popen_kwargs: PopenKwargs = {
            "env": env,
            "stdin": asyncio.subprocess.DEVNULL,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
            "limit": self._line_limit,
        }

        try:
            process = await asyncio.create_subprocess_exec(argv[0], *argv[1:], **popen_kwargs)
        except (OSError, ValueError) as exc:
            # ValueError: "=" in an env name, NUL byte in argv or env
            self.log_event.error("proc.spawn_error", error=repr(exc), exe=argv[0], args=argv[1:])
            raise

        self.log_event.info("proc.started", pid=process.pid, exe=argv[0], args=argv[1:])
        return process

    async def _spawn_and_wait(self, argv: list[str]) -> int:
        process = await self._spawn(argv)
        return await self._execute_and_await(process)

    async def _execute_and_await(self, process: asyncio.subprocess.Process) -> int:
        """
        Forward stdout and stderr while waiting for exit.

        Both readers are joined before the exit status is looked at. If a reader
        fails, or the multiplexer is closed while the readers still wait on a
        quiet pipe, the remaining readers and the exit wait are abandoned, the
        child is terminated and the failure re-raised.
        """
        title = self.spec.title
        stdout_task = asyncio.create_task(
            self._forward(process.stdout, STDOUT_COLOR, "stdout"),
            name=f"read:{title}:stdout",
        )
        stderr_task = asyncio.create_task(
            self._forward(process.stderr, STDERR_COLOR, "stderr"),
            name=f"read:{title}:stderr",
        )
        wait_task = asyncio.create_task(process.wait(), name=f"wait:{process.pid}")
        closed_task = asyncio.create_task(self._sink.wait_closed(), name=f"closed:{title}")
        readers = {stdout_task, stderr_task}

        try:
            pending = set(readers)
            while pending:
                done, _ = await asyncio.wait(
                    pending | {closed_task}, return_when=asyncio.FIRST_COMPLETED
                )
                pending -= done
                errors = [exc for task in done & readers if (exc := task.exception()) is not None]
                if errors:
                    raise errors[0]
                if closed_task in done and pending:
                    raise SinkClosed("multiplexer consumer is closed")
        except BaseException:
            for task in (stdout_task, stderr_task, wait_task):
                await cancel_task(task)
            self._terminate(process)
            raise
        finally:
            await cancel_task(closed_task)

        return await wait_task

    def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Send SIGTERM to a child whose output can no longer be delivered, without waiting."""
        if process.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            process.terminate()
        self.log_event.warning("proc.terminate_sent", pid=process.pid, reason="output abandoned")

    async def _forward(
        self, reader: asyncio.StreamReader | None, color: int, stream_name: str
    ) -> None:
        if not self.spec.log:
            await discard_stream(reader)
            return
        await read_and_forward(
            reader,
            title=self.spec.title,
            color=color,
            sink=self._sink,
            log=self.log_event,
            stream_name=stream_name,
        )
