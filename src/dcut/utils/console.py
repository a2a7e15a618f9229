"""Shared rich console for all dcut output."""

from rich.console import Console

console = Console()
