"""Long-lived PowerShell process with a request/response interface."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from types import TracebackType

from loguru import logger

from pypwsh.backends.base import Closable, Killable, ProcessBackend
from pypwsh.backends.local import LocalBackend
from pypwsh.config import ShellConfig
from pypwsh.errors import (
    BinaryNotFoundError,
    CommandError,
    ElevationNotFoundError,
    ExecuteError,
    ProcessStartError,
    ShellClosedError,
)
from pypwsh.executor import CommandExecutor

PWSH_NAMES = ("pwsh", "powershell")
SUDO_NAME = "sudo"
PWSH_ARGS = ("-NoExit", "-Command", "-")


class Shell:
    """A running PowerShell process.

    Create one with ``await Shell.start(...)`` or ``async with Shell(...)``.
    ``execute`` returns stdout and stderr as two strings; text on stderr alone
    is not an error, since plenty of commands log progress there. A parser
    error is fatal: the process is shut down and the shell stays closed.

    Typical usage::

        async with Shell() as shell:
            stdout, stderr = await shell.execute("Get-ComputerInfo")
    """

    def __init__(self, config: ShellConfig | None = None, *, backend: ProcessBackend | None = None) -> None:
        self.config = config or ShellConfig()
        self._backend: ProcessBackend | None = None
        self._pending_backend = backend or LocalBackend()
        self._executor: CommandExecutor | None = None
        self._execute_lock = asyncio.Lock()
        self.pwsh_location: str | None = None
        self.sudo_location: str | None = None

    @classmethod
    async def start(cls, config: ShellConfig | None = None, *, backend: ProcessBackend | None = None) -> Shell:
        shell = cls(config, backend=backend)
        await shell._start()
        return shell

    async def __aenter__(self) -> Shell:
        if self._backend is None:
            await self._start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._backend is None

    async def _start(self) -> None:
        backend = self._pending_backend
        if backend is None:
            raise ShellClosedError()
        config = self.config

        backend.set_env(config.env, config.env_combined)
        backend.set_working_dir(config.working_dir)

        pwsh = config.pwsh_location or _look_path_any(backend, PWSH_NAMES)
        if pwsh is None:
            raise BinaryNotFoundError(PWSH_NAMES)

        argv = [pwsh, *PWSH_ARGS]
        if config.wants_elevation:
            sudo = config.sudo_location or backend.look_path(SUDO_NAME)
            if sudo is None:
                raise ElevationNotFoundError(SUDO_NAME)
            self.sudo_location = sudo
            argv = [sudo, *argv]

        logger.info("shell.start argv={} cwd={}", argv, config.working_dir)
        try:
            await backend.start_process(*argv)
        except Exception as exc:
            raise ProcessStartError(argv) from exc

        self.pwsh_location = pwsh
        self._pending_backend = None
        self._backend = backend
        self._executor = CommandExecutor(
            backend,
            newline=config.newline,
            fatal_marker=config.fatal_marker,
            chunk_size=config.read_chunk_size,
            poll_interval=config.poll_interval,
            on_fatal=self.close,
            on_timeout=self._abort,
        )

    async def execute(self, *commands: str, timeout: float | None = None) -> tuple[str, str]:
        """Run each command in order and return the concatenated ``(stdout, stderr)``.

        Stops at the first failing command and raises ``ExecuteError`` carrying
        everything captured so far. A shell that is already closed when the
        call gets its turn raises ``ShellClosedError`` with no I/O; one closed
        between two commands of the same call raises ``ExecuteError`` so the
        earlier output is kept. ``timeout`` applies to each command; when
        it expires the shell is closed, because the late sentinel would
        otherwise leak into the next command's output.
        """
        if self.closed:
            raise ShellClosedError()

        stdout = ""
        stderr = ""
        async with self._execute_lock:
            # An earlier call may have closed the shell while this one waited.
            if self.closed:
                raise ShellClosedError()
            for command in commands:
                executor = self._executor
                if self.closed or executor is None:
                    cause = ShellClosedError()
                    raise ExecuteError(command, cause, stdout=stdout, stderr=stderr) from cause
                logger.debug("shell.execute command={}", command)
                try:
                    out, err = await executor.run(command, timeout=timeout)
                except CommandError as exc:
                    stdout += exc.stdout
                    stderr += exc.stderr
                    raise ExecuteError(command, exc, stdout=stdout, stderr=stderr) from exc
                stdout += out
                stderr += err
        return stdout, stderr

    async def close(self) -> None:
        """Ask the process to exit and wait for it; safe to call more than once."""
        await self._shutdown(force=False)

    async def _abort(self) -> None:
        await self._shutdown(force=True)

    async def _shutdown(self, *, force: bool) -> None:
        backend, self._backend = self._backend, None
        self._executor = None
        self._pending_backend = None
        if backend is None:
            return

        logger.info("shell.close pwsh={} force={}", self.pwsh_location, force)
        stdin = backend.stdin
        # The process may already be gone, so teardown is best-effort.
        if force and isinstance(backend, Killable):
            backend.kill()
        try:
            stdin.write(("exit" + self.config.newline).encode("utf-8"))
            await stdin.drain()
        except (OSError, RuntimeError) as exc:
            logger.debug("shell.close.write_exit error={}", exc)
        if isinstance(stdin, Closable):
            with suppress(OSError, RuntimeError):
                stdin.close()
        try:
            await backend.wait()
        except (OSError, RuntimeError) as exc:
            logger.debug("shell.close.wait error={}", exc)


def _look_path_any(backend: ProcessBackend, names: tuple[str, ...]) -> str | None:
    for name in names:
        path = backend.look_path(name)
        if path is not None:
            return path
    return None
