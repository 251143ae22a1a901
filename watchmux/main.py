"""
Multiplex your watch commands.

Runs any number of commands, or shell scripts (`type: shell`, executed with
`bash -c`), in parallel and multiplexes their output onto a single stdout.
Every line is prefixed with the title of the process that produced it.

Configuration is a YAML document listing the processes:

    processes:
      - title: greeting
        cmd: echo hello world $NAME
        type: shell
        env:
          NAME: Nate
      - title: api
        cmd: uvicorn app:api --reload
        wait_for: ./scripts/wait-for-db.sh

EXAMPLES:

    watchmux                          # .watchmuxrc.yaml in current directory
    watchmux -c path/to/config.yaml
    cat config.yaml | watchmux -c -
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer

from watchmux import __version__
from watchmux.config import ConfigError, get_settings, load_config
from watchmux.logger import configure_logging, get_logger
from watchmux.runner import Orchestrator


EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130

app = typer.Typer(help=__doc__, add_completion=False, rich_markup_mode=None)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"watchmux {__version__}")
        raise typer.Exit()


@app.command()
def main(
    config: Path | None = typer.Option(
        None, "-c", "--config", metavar="FILE", help="Path to the config file, `-` for stdin."
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    ),
) -> None:
    settings = get_settings()
    run_id = configure_logging(settings.log_level)
    log_event = get_logger("watchmux.cli")

    try:
        watchmux_config = load_config(config)
    except ConfigError as exc:
        typer.echo(f"watchmux: failed to resolve config: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG) from exc

    specs = watchmux_config.specs()
    log_event.info("cli.config_loaded", run_id=run_id, processes=len(specs))

    orchestrator = Orchestrator(capacity=settings.channel_capacity, shell=settings.shell)
    try:
        report = asyncio.run(orchestrator.run(specs, sys.stdout))
    except KeyboardInterrupt:
        raise typer.Exit(code=EXIT_INTERRUPTED) from None

    for title, outcome in report.failures:
        typer.echo(f"watchmux: [ {title} ] {outcome.describe()}", err=True)

    if not report.ok:
        raise typer.Exit(code=EXIT_FAILED)


if __name__ == "__main__":
    app()
