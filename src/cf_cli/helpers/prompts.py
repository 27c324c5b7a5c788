"""Interactive prompt wrappers built on rich."""

from typing import List, Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt

from .error_handler import UserInputError

console = Console(stderr=True)


class ConsolePrompter:
    """Prompts the user on the terminal."""

    def select(
        self, message: str, options: List[str], default: Optional[str] = None
    ) -> str:
        """Ask the user to pick one of ``options`` by number or by value."""
        if not options:
            raise UserInputError(f"No options available for: {message}")

        console.print(f"[bold]{message}[/bold]")
        for i, option in enumerate(options, start=1):
            marker = " (default)" if option == default else ""
            console.print(f"  {i}. {option}{marker}")

        choices = [str(i) for i in range(1, len(options) + 1)] + list(options)
        default_choice = str(options.index(default) + 1) if default in options else None
        answer = Prompt.ask(
            "Selection",
            choices=choices,
            default=default_choice,
            show_choices=False,
            console=console,
        )
        if answer.isdigit() and answer not in options:
            return options[int(answer) - 1]
        return answer

    def text(self, message: str, default: Optional[str] = None) -> str:
        if default is None:
            return Prompt.ask(message, console=console)
        return Prompt.ask(message, default=default, console=console)

    def password(self, message: str, help_text: str = "") -> str:
        if help_text:
            console.print(f"[dim]{help_text}[/dim]")
        return Prompt.ask(message, password=True, console=console)

    def confirm(self, message: str, default: bool = True) -> bool:
        return Confirm.ask(message, default=default, console=console)
