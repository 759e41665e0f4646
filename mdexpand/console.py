"""Shared Rich console for diagnostics.

Writes to stderr so the expanded document on stdout stays clean.
"""

from rich.console import Console

console = Console(stderr=True)

__all__ = ["console"]
