"""Configuration management for pypwsh."""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .boundary import DEFAULT_NEWLINE, FATAL_MARKER
from .framer import DEFAULT_CHUNK_SIZE, DEFAULT_POLL_INTERVAL
from .logging_utils import configure_logging


class ShellConfig(BaseSettings):
    """Shell settings, immutable once built.

    Every field can also come from a ``PYPWSH_``-prefixed environment variable
    or a ``.env`` file, e.g. ``PYPWSH_PWSH_LOCATION=/opt/microsoft/powershell/7/pwsh``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PYPWSH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Process
    pwsh_location: str | None = Field(None, description="Explicit path to the PowerShell executable")
    elevated: bool = Field(default=False, description="Start PowerShell through sudo")
    sudo_location: str | None = Field(None, description="Explicit path to the sudo executable; implies elevated")
    working_dir: str | None = Field(None, description="Initial working directory for the process")
    env: dict[str, str] = Field(default_factory=dict, description="Environment variables for the process")
    env_combined: bool = Field(default=True, description="Merge env with the inherited environment")

    # Framing
    newline: str = Field(default=DEFAULT_NEWLINE, description="Line terminator used to frame commands")
    fatal_marker: str = Field(default=FATAL_MARKER, min_length=1, description="Output that marks a fatal parse error")
    read_chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1, description="Bytes requested per pipe read")
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0, description="Fatal marker poll interval")

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")

    @property
    def wants_elevation(self) -> bool:
        return self.elevated or self.sudo_location is not None


def get_config(**overrides: Any) -> ShellConfig:
    """Build a config from the environment plus explicit overrides and set up logging."""
    config = ShellConfig(**overrides)
    configure_logging(level=config.log_level)
    return config
