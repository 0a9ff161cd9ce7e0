"""Single-command request/response cycle against a running interpreter."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from pypwsh.backends.base import ProcessBackend
from pypwsh.boundary import DEFAULT_NEWLINE, FATAL_MARKER, create_sentinel, frame_command
from pypwsh.errors import CommandError, CommandTimeoutError, CommandWriteError, FatalMarkerError
from pypwsh.framer import DEFAULT_CHUNK_SIZE, DEFAULT_POLL_INTERVAL, StreamFramer

T = TypeVar("T")


async def gather_or_first_error(*aws: Awaitable[T]) -> list[T]:
    """Wait for every awaitable, or stop at the first failure and cancel the rest."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    failed = [task for task in tasks if task in done and task.exception() is not None]
    if not failed:
        return [task.result() for task in tasks]

    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    for task in failed[1:]:
        logger.debug("executor.secondary_error error={!r}", task.exception())
    # Prefer a fatal marker so the caller can tear the shell down.
    fatal = next((task for task in failed if isinstance(task.exception(), FatalMarkerError)), failed[0])
    raise fatal.exception()  # type: ignore[misc]


class CommandExecutor:
    """Run one command at a time through the sentinel framing protocol."""

    def __init__(
        self,
        backend: ProcessBackend,
        *,
        newline: str = DEFAULT_NEWLINE,
        fatal_marker: str = FATAL_MARKER,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_fatal: Callable[[], Awaitable[None]] | None = None,
        on_timeout: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._backend = backend
        self._newline = newline
        self._fatal_marker = fatal_marker
        self._chunk_size = chunk_size
        self._poll_interval = poll_interval
        self._on_fatal = on_fatal
        self._on_timeout = on_timeout or on_fatal

    def _framer(self, name: str, sentinel: str) -> StreamFramer:
        stream = self._backend.stdout if name == "stdout" else self._backend.stderr
        return StreamFramer(
            stream,
            sentinel,
            name=name,
            newline=self._newline,
            fatal_marker=self._fatal_marker,
            chunk_size=self._chunk_size,
            poll_interval=self._poll_interval,
        )

    async def run(self, command: str, *, timeout: float | None = None) -> tuple[str, str]:
        """Return ``(stdout, stderr)`` captured for ``command``."""
        out_sentinel = create_sentinel()
        err_sentinel = create_sentinel()
        framed = frame_command(command, out_sentinel, err_sentinel, self._newline)

        try:
            stdin = self._backend.stdin
            stdin.write(framed.encode("utf-8"))
            await stdin.drain()
        except (OSError, RuntimeError) as exc:
            raise CommandWriteError(f"Could not send PowerShell command: {exc}") from exc

        out_framer = self._framer("stdout", out_sentinel)
        err_framer = self._framer("stderr", err_sentinel)
        try:
            async with asyncio.timeout(timeout):
                stdout, stderr = await gather_or_first_error(out_framer.read(), err_framer.read())
        except TimeoutError as exc:
            logger.warning("executor.timeout timeout={} command={}", timeout, command)
            if self._on_timeout is not None:
                await self._on_timeout()
            raise CommandTimeoutError(
                f"command did not finish within {timeout}s",
                stdout=out_framer.partial,
                stderr=err_framer.partial,
            ) from exc
        except CommandError as exc:
            exc.stdout = out_framer.partial
            exc.stderr = err_framer.partial
            if isinstance(exc, FatalMarkerError):
                logger.warning("executor.fatal command={} error={}", command, exc)
                if self._on_fatal is not None:
                    await self._on_fatal()
            raise
        return stdout, stderr
