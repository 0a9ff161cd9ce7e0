"""pypwsh - drive a long-lived PowerShell process from Python."""

from loguru import logger

from .backends import LocalBackend, ProcessBackend
from .boundary import quote_arg
from .config import ShellConfig, get_config
from .errors import (
    BinaryNotFoundError,
    CommandError,
    CommandTimeoutError,
    CommandWriteError,
    ConfigurationError,
    ElevationNotFoundError,
    ExecuteError,
    FatalMarkerError,
    ProcessStartError,
    PwshError,
    ShellClosedError,
    StreamClosedError,
    StreamReadError,
)
from .shell import Shell

__version__ = "0.1.0"

logger.disable("pypwsh")

__all__ = [
    "BinaryNotFoundError",
    "CommandError",
    "CommandTimeoutError",
    "CommandWriteError",
    "ConfigurationError",
    "ElevationNotFoundError",
    "ExecuteError",
    "FatalMarkerError",
    "LocalBackend",
    "ProcessBackend",
    "ProcessStartError",
    "PwshError",
    "Shell",
    "ShellClosedError",
    "ShellConfig",
    "StreamClosedError",
    "StreamReadError",
    "get_config",
    "quote_arg",
]
