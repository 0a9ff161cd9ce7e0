"""Backend that runs the interpreter as a local child process."""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Mapping
from contextlib import suppress

from loguru import logger


class LocalBackend:
    """Spawn the interpreter with ``asyncio.create_subprocess_exec``."""

    def __init__(self) -> None:
        self._env: dict[str, str] | None = None
        self._cwd: str | None = None
        self._process: asyncio.subprocess.Process | None = None

    def look_path(self, name: str) -> str | None:
        return shutil.which(name)

    def set_env(self, values: Mapping[str, str] | None, combined: bool) -> None:
        values = {str(k): str(v) for k, v in (values or {}).items()}
        if combined:
            self._env = {**os.environ, **values}
        else:
            self._env = values

    def set_working_dir(self, path: str | None) -> None:
        if path:
            self._cwd = path

    async def start_process(self, executable: str, *args: str) -> None:
        logger.debug("local.start executable={} args={} cwd={}", executable, args, self._cwd)
        self._process = await asyncio.create_subprocess_exec(
            executable,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self._cwd,
            env=self._env,
        )

    @property
    def process(self) -> asyncio.subprocess.Process:
        if self._process is None:
            raise RuntimeError("process has not been started")
        return self._process

    @property
    def stdin(self) -> asyncio.StreamWriter:
        stream = self.process.stdin
        assert stream is not None
        return stream

    @property
    def stdout(self) -> asyncio.StreamReader:
        stream = self.process.stdout
        assert stream is not None
        return stream

    @property
    def stderr(self) -> asyncio.StreamReader:
        stream = self.process.stderr
        assert stream is not None
        return stream

    async def wait(self) -> int | None:
        return await self.process.wait()

    def kill(self) -> None:
        with suppress(ProcessLookupError):
            self.process.kill()
