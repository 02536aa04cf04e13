"""Terminal interaction used by the worktree flows."""

from abc import ABC, abstractmethod
from typing import Sequence, Union

import click
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from worktree_flow.core.flow import Ask, AskKind


class Prompter(ABC):
    """Abstract user interaction for dependency injection."""

    @abstractmethod
    def show(self, lines: Sequence[str], title: str = "") -> None:
        """Display informational lines."""

    @abstractmethod
    def choose(self, message: str, choices: Sequence[str]) -> str:
        """Block until one of choices is picked."""

    @abstractmethod
    def text(self, message: str) -> str:
        """Block until a line of text is entered."""

    @abstractmethod
    def confirm(self, message: str) -> bool:
        """Block until a yes/no answer is given."""

    def answer(self, ask: Ask) -> Union[str, bool]:
        """Display the details of ask and collect its answer."""
        if ask.details:
            self.show(ask.details, ask.title)

        if ask.kind == AskKind.CHOICE:
            return self.choose(ask.message, ask.choices)
        if ask.kind == AskKind.CONFIRM:
            return self.confirm(ask.message)
        return self.text(ask.message)


class ConsolePrompter(Prompter):
    """Prompter backed by click prompts and a rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def show(self, lines: Sequence[str], title: str = "") -> None:
        self.console.print()
        if title:
            self.console.print(Panel(Text("\n".join(lines)), title=f"[bold]{title}[/bold]", expand=False))
        else:
            for line in lines:
                self.console.print(line, markup=False)
        self.console.print()

    def choose(self, message: str, choices: Sequence[str]) -> str:
        return click.prompt(message, type=click.Choice(list(choices)))

    def text(self, message: str) -> str:
        return click.prompt(message, type=str)

    def confirm(self, message: str) -> bool:
        return click.confirm(message, default=False)
