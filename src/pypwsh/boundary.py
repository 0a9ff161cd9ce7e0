"""Sentinels, command framing and quoting."""

from __future__ import annotations

import secrets
import sys

SENTINEL_PREFIX = "$pypwsh"
SENTINEL_SUFFIX = "$"
SENTINEL_HEX_CHARS = 12
FATAL_MARKER = "ParserError"
DEFAULT_NEWLINE = "\r\n" if sys.platform == "win32" else "\n"


def create_sentinel() -> str:
    """Mint a fresh end-of-output token, e.g. ``$pypwsh1f9c02ab77de$``."""
    return f"{SENTINEL_PREFIX}{secrets.token_hex(SENTINEL_HEX_CHARS // 2)}{SENTINEL_SUFFIX}"


def frame_command(command: str, out_sentinel: str, err_sentinel: str, newline: str = DEFAULT_NEWLINE) -> str:
    """Build the single line sent to stdin for one command.

    The stderr sentinel goes through ``[Console]::Error`` so it lands on the
    error pipe without being redirected to stdout.
    """
    return f"{command}; echo '{out_sentinel}'; [Console]::Error.WriteLine('{err_sentinel}'){newline}"


def quote_arg(value: str) -> str:
    """Quote a string literal so PowerShell reads it back verbatim."""
    return "'" + value.replace("'", "''") + "'"
