from __future__ import annotations

import sys
from functools import cache
from pathlib import Path
from typing import ClassVar, Literal, TextIO

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from watchmux.runner.types import ProcessSpec, RunKind


RC_FILE_NAME = ".watchmuxrc.yaml"
STDIN_PATH = "-"


class ConfigError(RuntimeError):
    """Base error for every way the configuration can fail to load."""


class ConfigMissingError(ConfigError):
    """`-c -` was given but stdin was empty."""


class NoRcFileError(ConfigError):
    """No `-c` was given and the current directory has no rc file."""


class ConfigParseError(ConfigError):
    """The document is not valid YAML or does not match the schema."""


class WatchProcess(BaseModel):
    """One entry of `processes:` in the YAML document."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    title: str
    cmd: str = Field(min_length=1)
    # `type:` in YAML; cmd when omitted
    run_type: RunKind | None = Field(default=None, alias="type")
    env: dict[str, str] = Field(default_factory=dict)
    # empty means no gate
    wait_for: str = Field(default="")
    log: bool = Field(default=True)

    def to_spec(self) -> ProcessSpec:
        return ProcessSpec(
            title=self.title,
            command=self.cmd,
            kind=self.run_type or RunKind.COMMAND,
            environment=dict(self.env),
            gate=self.wait_for or None,
            log=self.log,
        )


class WatchmuxConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # required, an empty list is allowed
    processes: list[WatchProcess]

    def specs(self) -> list[ProcessSpec]:
        return [process.to_spec() for process in self.processes]

    @classmethod
    def from_text(cls, text: str, source: str = "<config>") -> WatchmuxConfig:
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigParseError(f"Invalid YAML in {source}: {exc}") from exc

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigParseError(f"YAML at {source} must define a mapping at the root")

        try:
            return cls.model_validate(loaded)
        except ValidationError as exc:
            raise ConfigParseError(f"Invalid configuration in {source}: {exc}") from exc

    @classmethod
    def from_path(cls, path: Path) -> WatchmuxConfig:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        return cls.from_text(text, source=str(path))

    @classmethod
    def from_stream(cls, stream: TextIO) -> WatchmuxConfig:
        text = stream.read()
        if not text:
            raise ConfigMissingError("Config file not provided on stdin")
        return cls.from_text(text, source="<stdin>")


def load_config(
    path: Path | None = None,
    *,
    stdin: TextIO | None = None,
    cwd: Path | None = None,
) -> WatchmuxConfig:
    """
    Resolve the configuration document.

      - `-`: read YAML from stdin
      - a path: read that file
      - nothing: `.watchmuxrc.yaml` in the current directory
    """
    if path is not None:
        if str(path) == STDIN_PATH:
            return WatchmuxConfig.from_stream(stdin or sys.stdin)
        return WatchmuxConfig.from_path(path)

    rc_file = (cwd or Path.cwd()) / RC_FILE_NAME
    if not rc_file.is_file():
        raise NoRcFileError(f"No {RC_FILE_NAME} file in current directory")
    return WatchmuxConfig.from_path(rc_file)


class WatchmuxSettings(BaseSettings):
    """
    Runtime knobs, read from WATCHMUX_* environment variables.

    The process list itself always comes from the YAML document.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="WATCHMUX_",
        extra="ignore",
        case_sensitive=False,
    )

    # buffered lines before producers block
    channel_capacity: int = Field(default=1024, ge=1)
    # interpreter for `type: shell` and `wait_for`
    shell: str = Field(default="bash", min_length=1)
    log_level: Literal["debug", "info", "warning", "error", "critical"] = Field(default="warning")


@cache
def get_settings() -> WatchmuxSettings:
    return WatchmuxSettings()


__all__ = [
    "ConfigError",
    "ConfigMissingError",
    "ConfigParseError",
    "NoRcFileError",
    "WatchProcess",
    "WatchmuxConfig",
    "WatchmuxSettings",
    "get_settings",
    "load_config",
]
