"""Terminal rendering for the pypwsh CLI."""

from __future__ import annotations

from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console


class Renderer:
    """CLI renderer using Rich for terminal output."""

    def __init__(self, console: Console | None = None, err_console: Console | None = None) -> None:
        self.console: Console = console or Console()
        self.err_console: Console = err_console or Console(stderr=True)
        self._prompt_session: PromptSession[str] | None = None

    def error(self, message: str) -> None:
        self.err_console.print(f"[bold red]Error:[/bold red] {message}")

    def welcome(self, pwsh_location: str | None) -> None:
        self.console.print(f"[bold blue]pypwsh[/bold blue] connected to [cyan]{pwsh_location}[/cyan]")
        self.console.print("[dim]Type exit or quit to leave.[/dim]")

    def command_result(self, stdout: str, stderr: str) -> None:
        """Print captured output verbatim; interpreter text is never treated as markup."""
        if stdout:
            self.console.out(stdout.rstrip("\r\n"), highlight=False)
        if stderr:
            self.err_console.out(stderr.rstrip("\r\n"), style="red", highlight=False)

    async def get_user_input(self, prompt: str = "PS> ") -> str:
        if self._prompt_session is None:
            self._prompt_session = PromptSession()
        with patch_stdout(raw=True):
            return await self._prompt_session.prompt_async(prompt)
