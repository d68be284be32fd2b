"""CLI entry point for GitPushy.

This module provides the Typer-based CLI with commands:
- gitpushy validate: Validate configuration
- gitpushy fetch: Run a single aggregation and print the result
- gitpushy watch: Poll continuously, re-rendering on every refresh

Exit codes:
- 0: Success
- 1: Configuration error
- 2: Authentication error (missing token)
- 3: Rate limited
- 4: API or fatal error
"""

from __future__ import annotations

import asyncio
import json
import signal
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from gitpushy import __version__
from gitpushy.config import load_config
from gitpushy.config.loader import ConfigError
from gitpushy.engine import DataSignal, ErrorKind, ErrorSignal, InstanceScheduler
from gitpushy.logging import configure_logging, get_logger
from gitpushy.render import render

if TYPE_CHECKING:
    from gitpushy.config.schema import Config
    from gitpushy.engine import Signal


class ExitCode(IntEnum):
    """CLI exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    AUTH_ERROR = 2
    RATE_LIMITED = 3
    FATAL_ERROR = 4


_ERROR_EXIT_CODES = {
    ErrorKind.AUTH: ExitCode.AUTH_ERROR,
    ErrorKind.RATE_LIMITED: ExitCode.RATE_LIMITED,
    ErrorKind.API: ExitCode.FATAL_ERROR,
}

app = typer.Typer(
    name="gitpushy",
    help="GitPushy - open pull requests across your GitHub repositories.",
    add_completion=False,
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Enable debug logging.",
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"gitpushy {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """GitPushy - open pull requests across your GitHub repositories."""


def _load_or_exit(config: Path | None) -> Config:
    try:
        return load_config(config)
    except ConfigError as e:
        typer.echo(
            typer.style(f"✗ Configuration error: {e}", fg=typer.colors.RED),
            err=True,
        )
        raise typer.Exit(ExitCode.CONFIG_ERROR) from e


@app.command()
def validate(config: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Validate configuration without fetching anything."""
    configure_logging(verbose=verbose, json_output=False)
    cfg = _load_or_exit(config)

    typer.echo(typer.style("✓ Configuration is valid", fg=typer.colors.GREEN))
    typer.echo(f"  Targets: {len(cfg.targets)}")
    for target in cfg.targets:
        typer.echo(f"    - {target.full_name} ({target.base_branches_mode.value})")
    typer.echo(f"  State: {cfg.query.state} (drafts: {'yes' if cfg.query.include_drafts else 'no'})")
    typer.echo(f"  Limits: {cfg.limits.max_per_repo} per repo, {cfg.limits.max_total} total")
    typer.echo(f"  Refresh: every {cfg.refresh.interval_seconds:g}s")
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def fetch(
    config: ConfigOption = None,
    as_json: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print records as JSON instead of rows.",
        ),
    ] = False,
    verbose: VerboseOption = False,
) -> None:
    """Fetch pull requests once and print them."""
    configure_logging(verbose=verbose, json_output=False)
    cfg = _load_or_exit(config)

    result = asyncio.run(_fetch_once(cfg))

    if as_json:
        payload = [pr.model_dump(mode="json") for pr in result.prs]
        typer.echo(json.dumps(payload, indent=2))
        if isinstance(result, ErrorSignal):
            typer.echo(typer.style(f"✗ {result.message}", fg=typer.colors.RED), err=True)
    elif isinstance(result, ErrorSignal):
        typer.echo(render(result.prs, cfg, error=result.message))
    else:
        typer.echo(render(result.prs, cfg))

    if isinstance(result, ErrorSignal):
        raise typer.Exit(_ERROR_EXIT_CODES[result.kind])
    raise typer.Exit(ExitCode.SUCCESS)


async def _fetch_once(cfg: Config) -> Signal:
    received: list[Signal] = []

    async def sink(sig: Signal) -> None:
        received.append(sig)

    scheduler = InstanceScheduler(sink=sink)
    try:
        await scheduler.fetch("cli", cfg)
    finally:
        await scheduler.shutdown()
    return received[-1]


@app.command()
def watch(
    config: ConfigOption = None,
    instance: Annotated[
        str,
        typer.Option(
            "--instance",
            "-i",
            help="Display instance identifier.",
        ),
    ] = "default",
    verbose: VerboseOption = False,
) -> None:
    """Poll continuously and re-render on every refresh until interrupted."""
    configure_logging(verbose=verbose)
    cfg = _load_or_exit(config)

    typer.echo(
        typer.style(
            f"🚀 Watching {len(cfg.targets)} repositories "
            f"(interval: {cfg.refresh.interval_seconds:g}s)",
            fg=typer.colors.GREEN,
            bold=True,
        )
    )
    typer.echo("Press Ctrl+C to stop.")

    asyncio.run(_watch(cfg, instance))
    typer.echo(typer.style("Watch stopped", bold=True))
    raise typer.Exit(ExitCode.SUCCESS)


async def _watch(cfg: Config, instance_id: str) -> None:
    log = get_logger("gitpushy.cli")
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    async def sink(sig: Signal) -> None:
        typer.echo()
        if isinstance(sig, DataSignal):
            typer.echo(render(sig.prs, cfg))
        else:
            typer.echo(render(sig.prs, cfg, error=sig.message))
        log.debug("signal_rendered", instance_id=sig.instance_id, prs=len(sig.prs))

    scheduler = InstanceScheduler(sink=sink)
    try:
        await scheduler.fetch(instance_id, cfg)
        await stop.wait()
    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)
        await scheduler.shutdown()
