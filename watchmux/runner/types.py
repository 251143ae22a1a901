"""
Type definitions for the process multiplexer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


# Background colors of the "[ title ]" tag (ANSI 256-color palette).
STDOUT_COLOR = 173
STDERR_COLOR = 167


class RunKind(StrEnum):
    """How the command text of a process is executed"""

    # split on single spaces: program + arguments, no quoting
    COMMAND = "cmd"
    # whole text handed to `<shell> -c`
    SHELL = "shell"


# One unit of work: what to run, under which title and environment.
@dataclass(slots=True, frozen=True)
class ProcessSpec:
    title: str
    command: str
    kind: RunKind = RunKind.COMMAND
    environment: dict[str, str] = field(default_factory=dict)
    # always run through the shell, main command only starts if it succeeds
    gate: str | None = None
    # False: output is drained but not forwarded
    log: bool = True

    def __post_init__(self) -> None:
        if not self.command:
            raise ValueError(f"Process {self.title!r} has an empty command")
        if self.gate is not None and not self.gate:
            raise ValueError(f"Process {self.title!r} has an empty gate command")

    def argv(self) -> list[str]:
        """
        Program and arguments for `RunKind.COMMAND`.

        The text is split on single spaces only: quotes are not honored and
        consecutive spaces yield empty arguments.
        """
        program, *args = self.command.split(" ")
        return [program, *args]
