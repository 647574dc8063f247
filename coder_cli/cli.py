"""Console output for coder-cli."""

from rich.console import Console
from rich.prompt import Confirm
from rich.text import Text

from coder_cli.actions import Action
from coder_cli.agent import HistoryItem, HistoryItemType


class TerminalUI:
    """Tagged, colorized console lines for the agent loop."""

    def __init__(self, console: Console | None = None, max_observation_chars: int = 2000):
        self.console = console or Console(highlight=False)
        self.max_observation_chars = max_observation_chars

    def _line(self, tag: str, message: str, style: str) -> None:
        self.console.print(Text(f"[{tag}] {message}", style=style))

    def print_task(self, message: str) -> None:
        self._line("Task", message, "bold blue")

    def print_plan(self, message: str) -> None:
        self._line("Plan", message, "green")

    def print_action(self, message: str) -> None:
        self._line("Action", message, "yellow")

    def print_observation(self, message: str) -> None:
        if len(message) > self.max_observation_chars:
            message = message[: self.max_observation_chars] + f"\n... [truncated, {len(message)} total chars]"
        self._line("Observation", message, "cyan")

    def print_system(self, message: str) -> None:
        self._line("System", message, "magenta")

    def print_error(self, message: str) -> None:
        self._line("Error", message, "bold red")

    def print_warning(self, message: str) -> None:
        self._line("Warning", message, "bold yellow")

    def print_success(self, message: str) -> None:
        self._line("Success", message, "bold green")

    def print_history_item(self, item: HistoryItem) -> None:
        """Echo a history entry as it is recorded."""
        if item.type is HistoryItemType.PLAN:
            self.print_plan(item.content)
        elif item.type is HistoryItemType.ACTION:
            self.print_action(item.content)
        else:
            self.print_observation(item.content)

    def confirm_action(self, action: Action) -> bool:
        """Ask before running an action."""
        self.print_action(f"{action.name} {action.parameters}")
        return Confirm.ask("Execute this action?", console=self.console, default=False)
