"""
Output formatting utilities for the CLI.

Provides consistent output formatting across all CLI commands.
"""

from rich.console import Console

# Global console instance
console = Console()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]i[/blue] {message}")


def print_raw(text: str, end: str = "") -> None:
    """Print program or model output verbatim, without markup or highlighting."""
    console.print(text, end=end, markup=False, highlight=False, soft_wrap=True)
