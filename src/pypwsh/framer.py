"""Per-stream output framing.

A framer drains one output pipe until the line carrying its sentinel shows up.
Alongside the blocking reads a second watcher polls the accumulated bytes for
the interpreter's fatal marker, because a parse error aborts the rest of the
framed line and the sentinel is never printed.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from pypwsh.backends.base import ByteReader
from pypwsh.boundary import DEFAULT_NEWLINE, FATAL_MARKER
from pypwsh.errors import FatalMarkerError, StreamClosedError, StreamReadError

DEFAULT_CHUNK_SIZE = 64
DEFAULT_POLL_INTERVAL = 0.001


def decode_output(data: bytes | bytearray) -> str:
    return bytes(data).decode("utf-8", errors="replace")


def _retrieve(tasks: set[asyncio.Task]) -> None:
    for task in tasks:
        if not task.cancelled():
            task.exception()


class StreamFramer:
    """Read one stream up to ``sentinel + newline`` or until a fatal marker appears."""

    def __init__(
        self,
        stream: ByteReader,
        sentinel: str,
        *,
        name: str = "stream",
        newline: str = DEFAULT_NEWLINE,
        fatal_marker: str = FATAL_MARKER,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self.name = name
        self._stream = stream
        self._terminator = (sentinel + newline).encode("utf-8")
        self._fatal_marker = fatal_marker.encode("utf-8")
        self._chunk_size = chunk_size
        self._poll_interval = poll_interval
        self._buffer = bytearray()

    @property
    def partial(self) -> str:
        """Everything read so far, decoded."""
        return decode_output(self._buffer)

    async def read(self) -> str:
        """Return the captured text, excluding the sentinel line.

        Raises ``FatalMarkerError`` when the fatal marker wins the race and
        ``StreamReadError`` when the stream fails or closes first.
        """
        reader = asyncio.create_task(self._read_until_sentinel(), name=f"{self.name}.reader")
        watcher = asyncio.create_task(self._watch_fatal_marker(), name=f"{self.name}.watcher")
        try:
            done, _ = await asyncio.wait({reader, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (reader, watcher):
                task.cancel()

        # A sentinel that arrived in the same tick as the marker still counts.
        if reader in done and reader.exception() is None:
            _retrieve(done - {reader})
            return reader.result()
        if watcher in done:
            _retrieve(done - {watcher})
            watcher.result()
        return reader.result()

    async def _read_until_sentinel(self) -> str:
        while True:
            try:
                chunk = await self._stream.read(self._chunk_size)
            except OSError as exc:
                logger.debug("framer.read.error stream={} error={}", self.name, exc)
                if self._fatal_marker in self._buffer:
                    raise self._fatal_error() from exc
                raise StreamReadError(f"failed to read {self.name}: {exc}", **self._partial_kwargs()) from exc
            if not chunk:
                logger.debug("framer.eof stream={} buffered={}", self.name, len(self._buffer))
                if self._fatal_marker in self._buffer:
                    raise self._fatal_error()
                raise StreamClosedError(f"{self.name} closed before the sentinel arrived", **self._partial_kwargs())
            self._buffer.extend(chunk)
            if self._buffer.endswith(self._terminator):
                return decode_output(self._buffer[: -len(self._terminator)])

    async def _watch_fatal_marker(self) -> None:
        scanned = 0
        overlap = len(self._fatal_marker) - 1
        while True:
            size = len(self._buffer)
            if size > scanned:
                if self._buffer.find(self._fatal_marker, max(0, scanned - overlap)) != -1:
                    break
                scanned = size
            await asyncio.sleep(self._poll_interval)

        # One more tick so the diagnostics include the rest of the error record.
        await asyncio.sleep(self._poll_interval)
        raise self._fatal_error()

    def _fatal_error(self) -> FatalMarkerError:
        logger.debug("framer.fatal stream={} marker={}", self.name, self._fatal_marker.decode())
        return FatalMarkerError(
            f"{self.name} reported {self._fatal_marker.decode()}",
            **self._partial_kwargs(),
        )

    def _partial_kwargs(self) -> dict[str, str]:
        key = "stderr" if self.name == "stderr" else "stdout"
        return {key: self.partial}
