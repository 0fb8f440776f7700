"""Shared Rich console for the CLI."""

from rich.console import Console

console = Console()
error_console = Console(stderr=True)
