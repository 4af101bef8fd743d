"""
Global progress reporting for the CLI.

Pipeline code reports steps through the module-level ``reporter`` without
knowing whether a console is attached. Outside a CLI run every call is a no-op.
"""

from typing import List, Optional

from rich.console import Console
from rich.status import Status


class ProgressReporter:
    """
    Shows the current step in a rich status spinner and leaves a checkmark
    line behind for each finished step.
    """

    def __init__(self):
        self._status: Optional[Status] = None
        self._console: Optional[Console] = None
        self._current_step: Optional[str] = None
        self.completed_steps: List[str] = []

    def initialize(self, console: Console, initial_message: str = "Starting…") -> Status:
        """
        Attach a console and return the status object to use as a context manager.
        """
        self._console = console
        self._status = console.status(f"[dim]{initial_message}[/dim]")
        self._current_step = initial_message
        self.completed_steps = []
        return self._status

    def _finish_current(self, message: Optional[str] = None) -> None:
        if self._current_step is None:
            return
        done = message or self._current_step
        self.completed_steps.append(done)
        if self._console is not None:
            self._console.print(f"[green]✓[/green] [dim]{done}[/dim]")
        self._current_step = None

    def step(self, message: str) -> None:
        """Mark the current step done and start a new one."""
        if self._status is None:
            return
        self._finish_current()
        self._current_step = message
        self._status.update(f"[dim]{message}[/dim]")

    def step_with_context(self, message: str, context: str = "") -> None:
        """Start a step whose message has a trailing context (e.g. "with the language model")."""
        self.step(f"{message} {context}".strip())

    def complete_step(self, message: Optional[str] = None) -> None:
        """Mark the current step done without starting another."""
        if self._status is None:
            return
        self._finish_current(message)

    def reset(self) -> None:
        """Detach from the console once a CLI command finishes."""
        self._status = None
        self._console = None
        self._current_step = None


# Global reporter instance
reporter = ProgressReporter()
