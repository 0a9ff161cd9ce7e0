"""Minimal pypwsh example: start a shell, run one command, print its output."""

from __future__ import annotations

import asyncio

from pypwsh import Shell


async def main() -> None:
    async with Shell() as shell:
        stdout, _ = await shell.execute("Get-ComputerInfo")
    print(stdout)


if __name__ == "__main__":
    asyncio.run(main())
