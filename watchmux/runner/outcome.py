from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, TypeAlias


class SinkClosed(Exception):
    """The consumer side of the multiplexer is gone, a line could not be delivered."""


@dataclass(slots=True, frozen=True)
class Success:
    is_ok: Literal[True] = True

    def describe(self) -> str:
        return "success"


@dataclass(slots=True, frozen=True)
class GateFailed:
    """The gate exited unsuccessfully, the main command never ran."""

    exit_code: int

    is_ok: Literal[False] = False

    def describe(self) -> str:
        return f"gate failed with status {self.exit_code}"


@dataclass(slots=True, frozen=True)
class SpawnFailed:
    """The OS refused to create the child process."""

    cause: str

    is_ok: Literal[False] = False

    def describe(self) -> str:
        return f"spawn failed: {self.cause}"


@dataclass(slots=True, frozen=True)
class ExitFailed:
    exit_code: int

    is_ok: Literal[False] = False

    def describe(self) -> str:
        return f"exited with status {self.exit_code}"


@dataclass(slots=True, frozen=True)
class ChannelClosed:
    is_ok: Literal[False] = False

    def describe(self) -> str:
        return "output channel closed"


@dataclass(slots=True, frozen=True)
class RunnerError:
    """The runner itself failed unexpectedly."""

    error: str

    is_ok: Literal[False] = False

    def describe(self) -> str:
        return f"runner error: {self.error}"


RunOutcome: TypeAlias = (
    Success | GateFailed | SpawnFailed | ExitFailed | ChannelClosed | RunnerError
)


@dataclass(slots=True)
class RunReport:
    """Aggregate of every runner's outcome, in spec order."""

    outcomes: list[tuple[str, RunOutcome]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(outcome.is_ok for _, outcome in self.outcomes)

    @property
    def failures(self) -> list[tuple[str, RunOutcome]]:
        return [(title, outcome) for title, outcome in self.outcomes if not outcome.is_ok]

    @property
    def first_failure(self) -> tuple[str, RunOutcome] | None:
        failures = self.failures
        return failures[0] if failures else None
