"""
Base Command Class

Abstract base for all pgfleet CLI commands.
Provides common output helpers and error handling.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from rich.console import Console

from pgfleet.constants import DEFAULT_INVENTORY_PATH, INVENTORY_ENV
from pgfleet.exceptions import PgFleetError
from pgfleet.logger import console as shared_console
from pgfleet.runner.executor import Executor

logger = logging.getLogger(__name__)


def resolve_inventory(inventory: Optional[str]) -> str:
    """
    Return the inventory path to use.

    ``PGFLEET_INVENTORY`` replaces the path only while the flag is left at
    its default.
    """
    if not inventory or inventory == DEFAULT_INVENTORY_PATH:
        env_path = os.environ.get(INVENTORY_ENV)
        if env_path:
            logger.debug("get inventory path from env %s: %s", INVENTORY_ENV, env_path)
            return env_path
    return inventory or DEFAULT_INVENTORY_PATH


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Shared rich console
    - Lazy executor built from the inventory
    - Consistent error output and exit codes
    """

    def __init__(self, inventory: Optional[str] = None, verbose: bool = False):
        self.inventory = resolve_inventory(inventory)
        self.verbose = verbose
        self.console: Console = shared_console
        self._executor: Optional[Executor] = None

    @property
    def executor(self) -> Executor:
        """Executor for the inventory; loading errors are fatal for the command."""
        if self._executor is None:
            self._executor = Executor(Path(self.inventory))
        return self._executor

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/green]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {message}[/red]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def print_dim(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/dim]")

    def exit_with_error(self, message: str, code: int = 1) -> None:
        """
        Print error and exit.

        Args:
            message: Error message
            code: Exit code
        """
        self.print_error(message)
        raise SystemExit(code)

    @abstractmethod
    def execute(self) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self) -> None:
        """Run command with error handling."""
        try:
            self.execute()
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            raise SystemExit(130)
        except SystemExit:
            raise
        except PgFleetError as e:
            self.console.print(f"\n[bold red]✗ {type(e).__name__}:[/bold red] {e.message}")
            if e.context:
                self.print_dim(f"Context: {e.context}")
            raise SystemExit(1)
        except PermissionError as e:
            self.console.print(f"\n[bold red]✗ Permission denied:[/bold red] {e}\n")
            raise SystemExit(1)
