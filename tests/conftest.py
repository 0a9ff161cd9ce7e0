from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping
from dataclasses import dataclass

import pytest

from pypwsh.config import ShellConfig

FRAME_RE = re.compile(
    r"^(?P<command>.*); echo '(?P<out>\$pypwsh[0-9a-f]{12}\$)'; "
    r"\[Console\]::Error\.WriteLine\('(?P<err>\$pypwsh[0-9a-f]{12}\$)'\)\n$",
    re.DOTALL,
)


@dataclass(frozen=True)
class Reply:
    stdout: str = ""
    stderr: str = ""
    order: str = "out_first"  # out_first|err_first|interleaved
    fatal: bool = False
    hang: bool = False
    eof: bool = False


class FakeStdin:
    def __init__(self, interpreter: FakeInterpreter) -> None:
        self._interpreter = interpreter
        self.writes: list[bytes] = []
        self.closed = False
        self.broken = False

    def write(self, data: bytes) -> None:
        if self.broken:
            raise BrokenPipeError("stdin is gone")
        self.writes.append(data)
        self._interpreter.receive(data.decode("utf-8"))

    async def drain(self) -> None:
        if self.broken:
            raise BrokenPipeError("stdin is gone")

    def close(self) -> None:
        self.closed = True
        self._interpreter.hang_up()


class FakeInterpreter:
    """Scripted stand-in for PowerShell reading framed lines from stdin."""

    def __init__(self) -> None:
        self.replies: dict[str, Reply] = {}
        self.commands: list[str] = []
        self.exit_requested = False
        self.stdout: asyncio.StreamReader | None = None
        self.stderr: asyncio.StreamReader | None = None
        self._tasks: list[asyncio.Task[None]] = []

    def reply(self, command: str, **kwargs: object) -> None:
        self.replies[command] = Reply(**kwargs)  # type: ignore[arg-type]

    def attach(self) -> None:
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()

    def hang_up(self) -> None:
        for stream in (self.stdout, self.stderr):
            if stream is not None and not stream.at_eof():
                stream.feed_eof()

    def receive(self, text: str) -> None:
        if text.strip() == "exit":
            self.exit_requested = True
            return
        match = FRAME_RE.match(text)
        assert match is not None, f"unexpected stdin payload: {text!r}"
        command = match.group("command")
        self.commands.append(command)
        reply = self.replies.get(command, Reply())
        self._tasks.append(asyncio.get_running_loop().create_task(self._emit(reply, match["out"], match["err"])))

    async def _emit(self, reply: Reply, out_sentinel: str, err_sentinel: str) -> None:
        assert self.stdout is not None and self.stderr is not None
        await asyncio.sleep(0)
        if reply.hang:
            return
        if reply.fatal:
            self.stderr.feed_data(reply.stderr.encode())
            if reply.eof:
                self.stderr.feed_eof()
            return
        if reply.eof:
            self.stdout.feed_data(reply.stdout.encode())
            self.stdout.feed_eof()
            return

        out = (reply.stdout + out_sentinel + "\n").encode()
        err = (reply.stderr + err_sentinel + "\n").encode()
        if reply.order == "interleaved":
            for index in range(max(len(out), len(err))):
                if index < len(out):
                    self.stdout.feed_data(out[index : index + 1])
                if index < len(err):
                    self.stderr.feed_data(err[index : index + 1])
                await asyncio.sleep(0)
            return
        first, second = (self.stdout, out), (self.stderr, err)
        if reply.order == "err_first":
            first, second = second, first
        first[0].feed_data(first[1])
        await asyncio.sleep(0.01)
        second[0].feed_data(second[1])


class FakeBackend:
    def __init__(self, interpreter: FakeInterpreter, paths: Mapping[str, str] | None = None) -> None:
        self.interpreter = interpreter
        self.paths = dict(paths if paths is not None else {"pwsh": "/usr/bin/pwsh"})
        self.looked_up: list[str] = []
        self.env: tuple[Mapping[str, str] | None, bool] | None = None
        self.working_dir: str | None = None
        self.started: tuple[str, ...] | None = None
        self.start_error: Exception | None = None
        self.wait_calls = 0
        self.killed = False
        self._stdin = FakeStdin(interpreter)

    def look_path(self, name: str) -> str | None:
        self.looked_up.append(name)
        return self.paths.get(name)

    def set_env(self, values: Mapping[str, str] | None, combined: bool) -> None:
        self.env = (values, combined)

    def set_working_dir(self, path: str | None) -> None:
        self.working_dir = path

    async def start_process(self, executable: str, *args: str) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = (executable, *args)
        self.interpreter.attach()

    @property
    def stdin(self) -> FakeStdin:
        return self._stdin

    @property
    def stdout(self) -> asyncio.StreamReader:
        assert self.interpreter.stdout is not None
        return self.interpreter.stdout

    @property
    def stderr(self) -> asyncio.StreamReader:
        assert self.interpreter.stderr is not None
        return self.interpreter.stderr

    async def wait(self) -> int | None:
        self.wait_calls += 1
        return 0

    def kill(self) -> None:
        self.killed = True


@pytest.fixture
def interpreter() -> FakeInterpreter:
    return FakeInterpreter()


@pytest.fixture
def backend(interpreter: FakeInterpreter) -> FakeBackend:
    return FakeBackend(interpreter)


@pytest.fixture
def config() -> ShellConfig:
    return ShellConfig(newline="\n")


@pytest.fixture
def make_backend(interpreter: FakeInterpreter):  # type: ignore[no-untyped-def]
    def _make(paths: Mapping[str, str] | None = None) -> FakeBackend:
        return FakeBackend(interpreter, paths=paths)

    return _make
