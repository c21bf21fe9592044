from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.panel import Panel

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def error(self, message: str) -> None:
        """Show an error message to the user.

        Example:
            ```python
            notifier.error("Could not launch testcase process.")
            ```
        """
        ...


class ConsoleNotifier:
    """Render user-facing errors as Rich panels on standard error.

    Example:
        ```python
        notifier = ConsoleNotifier()
        ```
    """

    def __init__(self, console: Console | None = None) -> None:
        """Bind the notifier to a console, defaulting to stderr.

        Example:
            ```python
            notifier = ConsoleNotifier(Console(stderr=True))
            ```
        """
        self._console = console or Console(stderr=True)

    def error(self, message: str) -> None:
        """Print a red error panel.

        Example:
            ```python
            notifier.error("Is 'python3' in your PATH?")
            ```
        """
        self._console.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))


class RecordingNotifier:
    """Keep notifications in memory instead of displaying them.

    Example:
        ```python
        notifier = RecordingNotifier()
        ```
    """

    def __init__(self) -> None:
        """Start with no recorded messages.

        Example:
            ```python
            notifier = RecordingNotifier()
            ```
        """
        self.errors: list[str] = []

    def error(self, message: str) -> None:
        """Record an error message.

        Example:
            ```python
            notifier.error("boom")
            ```
        """
        logger.debug("Recorded notification: %s", message)
        self.errors.append(message)
