"""Process backend contract used by the shell core."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable


class ByteReader(Protocol):
    """Readable end of an output pipe; ``read`` returns ``b""`` at EOF."""

    async def read(self, n: int = -1) -> bytes: ...


class ByteWriter(Protocol):
    """Writable end of the interpreter's stdin."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


@runtime_checkable
class Closable(Protocol):
    def close(self) -> None: ...


@runtime_checkable
class Killable(Protocol):
    """Backends that can force the process down implement this."""

    def kill(self) -> None: ...


class ProcessBackend(Protocol):
    """Minimal contract for anything that can host the interpreter process.

    ``set_env`` and ``set_working_dir`` are called before ``start_process``;
    the three stream handles must be usable as soon as ``start_process``
    returns.
    """

    def look_path(self, name: str) -> str | None: ...

    def set_env(self, values: Mapping[str, str] | None, combined: bool) -> None: ...

    def set_working_dir(self, path: str | None) -> None: ...

    async def start_process(self, executable: str, *args: str) -> None: ...

    @property
    def stdin(self) -> ByteWriter: ...

    @property
    def stdout(self) -> ByteReader: ...

    @property
    def stderr(self) -> ByteReader: ...

    async def wait(self) -> int | None: ...
