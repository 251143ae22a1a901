"""
Public API for the process multiplexer.
"""

from __future__ import annotations

from .multiplexer import Multiplexer
from .orchestrator import Orchestrator
from .outcome import (
    ChannelClosed,
    ExitFailed,
    GateFailed,
    RunOutcome,
    RunReport,
    RunnerError,
    SinkClosed,
    SpawnFailed,
    Success,
)
from .process_runner import ProcessRunner
from .types import STDERR_COLOR, STDOUT_COLOR, ProcessSpec, RunKind


__all__ = [
    "STDERR_COLOR",
    "STDOUT_COLOR",
    "ChannelClosed",
    "ExitFailed",
    "GateFailed",
    "Multiplexer",
    "Orchestrator",
    "ProcessRunner",
    "ProcessSpec",
    "RunKind",
    "RunOutcome",
    "RunReport",
    "RunnerError",
    "SinkClosed",
    "SpawnFailed",
    "Success",
]
