"""Decorators for memfs functionality."""

import functools
import logging
from typing import Callable, Any

import typer
from rich.console import Console
from rich.markup import escape

from memfs.vfs.errors import FSError

logger = logging.getLogger(__name__)
console = Console()


def handle_fs_errors(func: Callable) -> Callable:
    """
    Decorator turning file system errors into shell messages.

    Wraps a shell command method (`cmd_<name>`). Any FSError is printed as
    "<name>: <error>", stored on the shell as `last_error`, and the
    command returns None so the session keeps going.
    """
    command = func.__name__[4:] if func.__name__.startswith("cmd_") else func.__name__

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> Any:
        self.last_error = None
        try:
            return func(self, *args, **kwargs)
        except FSError as e:
            self.last_error = e
            logger.debug(f"{command} failed ({e.kind.value}): {e}")
            self.console.print(f"[red]{command}: {escape(str(e))}[/red]")
            return None

    return wrapper


def handle_cli_errors(func: Callable) -> Callable:
    """
    Decorator to handle common errors in CLI commands.

    Centralizes error handling for:
    - FileNotFoundError: Script or config file missing
    - PermissionError: No access to files
    - ValueError: Invalid data or arguments
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except FileNotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] File not found: {escape(str(e))}")
            raise typer.Exit(code=1)
        except PermissionError as e:
            console.print(f"[bold red]Error:[/bold red] Permission denied: {escape(str(e))}")
            raise typer.Exit(code=1)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {escape(str(e))}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)

    return wrapper
