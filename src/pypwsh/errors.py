"""Exception types for pypwsh."""

from __future__ import annotations


class PwshError(Exception):
    """Base exception for pypwsh."""


class ConfigurationError(PwshError):
    """Base exception for configuration and startup errors."""


class BinaryNotFoundError(ConfigurationError):
    """Raised when no PowerShell executable can be located."""

    def __init__(self, names: tuple[str, ...]) -> None:
        super().__init__(f"Failed to locate a PowerShell binary (tried: {', '.join(names)})")
        self.names = names


class ElevationNotFoundError(ConfigurationError):
    """Raised when elevation was requested but no sudo binary exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Failed to locate a {name} binary")
        self.name = name


class ProcessStartError(ConfigurationError):
    """Raised when the backend fails to spawn the interpreter."""

    def __init__(self, argv: list[str]) -> None:
        super().__init__(f"Failed to start powershell process: {' '.join(argv)}")
        self.argv = argv


class ShellClosedError(PwshError):
    """Raised when a command is sent to a closed shell."""

    def __init__(self) -> None:
        super().__init__("Cannot execute commands on closed shells.")


class CommandError(PwshError):
    """Base exception for failures while running a single command."""

    def __init__(self, message: str, *, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class CommandWriteError(CommandError):
    """Raised when the framed command cannot be written to stdin."""


class StreamReadError(CommandError):
    """Raised when reading an output stream fails before its sentinel arrives."""


class StreamClosedError(StreamReadError):
    """Raised when an output stream hits EOF before its sentinel arrives."""


class FatalMarkerError(CommandError):
    """Raised when the interpreter reports a parse failure.

    The interpreter stops evaluating the rest of the framed line, so the
    sentinel never arrives and the process can no longer be trusted.
    """


class CommandTimeoutError(CommandError):
    """Raised when a command does not finish within its deadline."""


class ExecuteError(PwshError):
    """Raised by ``Shell.execute`` when one of its commands fails.

    ``stdout`` and ``stderr`` hold everything captured up to and including the
    failing command's partial output.
    """

    def __init__(self, command: str, cause: PwshError, *, stdout: str, stderr: str) -> None:
        super().__init__(f"failed to execute {command!r}: {cause}")
        self.command = command
        self.stdout = stdout
        self.stderr = stderr
