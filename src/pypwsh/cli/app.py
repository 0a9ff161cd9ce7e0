"""pypwsh command line interface."""

from __future__ import annotations

import asyncio

import typer
from loguru import logger
from pydantic import ValidationError

from pypwsh import __version__
from pypwsh.cli.render import Renderer
from pypwsh.config import ShellConfig
from pypwsh.errors import ExecuteError, PwshError
from pypwsh.logging_utils import configure_logging
from pypwsh.shell import Shell

app = typer.Typer(name="pypwsh", help="Run commands in a long-lived PowerShell process.", add_completion=False)

EXIT_COMMANDS = frozenset({"exit", "quit"})


def parse_env(pairs: list[str] | None) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


def _build_config(
    pwsh: str | None,
    elevated: bool,
    sudo: str | None,
    cwd: str | None,
    env: list[str] | None,
    env_combined: bool,
    log_level: str | None,
) -> ShellConfig:
    overrides: dict[str, object] = {
        "elevated": elevated,
        "env": parse_env(env),
        "env_combined": env_combined,
    }
    if pwsh:
        overrides["pwsh_location"] = pwsh
    if sudo:
        overrides["sudo_location"] = sudo
    if cwd:
        overrides["working_dir"] = cwd
    if log_level:
        overrides["log_level"] = log_level
    try:
        config = ShellConfig(**overrides)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    configure_logging(profile="cli", level=config.log_level)
    return config


async def _run_commands(config: ShellConfig, commands: list[str], timeout: float | None) -> tuple[str, str]:
    async with Shell(config) as shell:
        return await shell.execute(*commands, timeout=timeout)


@app.command()
def run(
    commands: list[str] = typer.Argument(..., help="PowerShell commands, run in order"),  # noqa: B008
    pwsh: str | None = typer.Option(None, "--pwsh", help="Path to the PowerShell executable"),
    elevated: bool = typer.Option(False, "--elevated", help="Start PowerShell through sudo"),
    sudo: str | None = typer.Option(None, "--sudo", help="Path to the sudo executable; implies --elevated"),
    cwd: str | None = typer.Option(None, "--cwd", help="Initial working directory"),
    env: list[str] | None = typer.Option(None, "--env", "-e", help="KEY=VALUE, repeatable"),  # noqa: B008
    env_combined: bool = typer.Option(True, "--env-combined/--no-env-combined", help="Merge with the inherited env"),
    timeout: float | None = typer.Option(None, "--timeout", help="Per-command deadline in seconds"),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level"),
) -> None:
    """Start PowerShell, run the commands, print their output and exit."""

    config = _build_config(pwsh, elevated, sudo, cwd, env, env_combined, log_level)
    renderer = Renderer()
    try:
        stdout, stderr = asyncio.run(_run_commands(config, commands, timeout))
    except ExecuteError as exc:
        renderer.command_result(exc.stdout, exc.stderr)
        renderer.error(str(exc))
        raise typer.Exit(1) from exc
    except PwshError as exc:
        renderer.error(str(exc))
        raise typer.Exit(1) from exc
    typer.echo(stdout, nl=False)
    typer.echo(stderr, nl=False, err=True)


async def _repl(config: ShellConfig, renderer: Renderer, timeout: float | None) -> None:
    async with Shell(config) as shell:
        renderer.welcome(shell.pwsh_location)
        while not shell.closed:
            try:
                line = (await renderer.get_user_input()).strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not line:
                continue
            if line.casefold() in EXIT_COMMANDS:
                break
            try:
                stdout, stderr = await shell.execute(line, timeout=timeout)
            except ExecuteError as exc:
                logger.debug("repl.execute.error command={}", line)
                renderer.command_result(exc.stdout, exc.stderr)
                renderer.error(str(exc))
                continue
            renderer.command_result(stdout, stderr)
        if shell.closed:
            renderer.error("PowerShell process is no longer usable; leaving.")


@app.command()
def repl(
    pwsh: str | None = typer.Option(None, "--pwsh", help="Path to the PowerShell executable"),
    elevated: bool = typer.Option(False, "--elevated", help="Start PowerShell through sudo"),
    sudo: str | None = typer.Option(None, "--sudo", help="Path to the sudo executable; implies --elevated"),
    cwd: str | None = typer.Option(None, "--cwd", help="Initial working directory"),
    env: list[str] | None = typer.Option(None, "--env", "-e", help="KEY=VALUE, repeatable"),  # noqa: B008
    env_combined: bool = typer.Option(True, "--env-combined/--no-env-combined", help="Merge with the inherited env"),
    timeout: float | None = typer.Option(None, "--timeout", help="Per-command deadline in seconds"),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level"),
) -> None:
    """Interactive prompt backed by one PowerShell process."""

    config = _build_config(pwsh, elevated, sudo, cwd, env, env_combined, log_level)
    renderer = Renderer()
    try:
        asyncio.run(_repl(config, renderer, timeout))
    except PwshError as exc:
        renderer.error(str(exc))
        raise typer.Exit(1) from exc


@app.command()
def version() -> None:
    """Show the pypwsh version."""
    typer.echo(__version__)
