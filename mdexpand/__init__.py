"""Expand file, URL and command directives embedded in markdown."""

__version__ = "0.1.0"
