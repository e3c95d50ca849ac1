"""Shared rich console for status output."""

from rich.console import Console

console = Console(stderr=True)
