"""Display formatting for expansion failures.

Expansion errors already carry a complete message, so they print as-is.
Anything else gets its type name, and exceptions whose str() is empty
(TimeoutError, CancelledError) fall back to a short explanation.
"""

from __future__ import annotations

import asyncio

from rich.markup import escape as _escape_markup

from ..errors import ImportExpansionError

FALLBACK_MESSAGES: dict[type, str] = {
    TimeoutError: "Timed out waiting for a file, URL or command.",
    asyncio.CancelledError: "Expansion was cancelled.",
    PermissionError: "Permission denied while reading an import.",
    KeyboardInterrupt: "Expansion interrupted by user.",
}


def format_error_message(e: BaseException, *, include_type: bool = True) -> str:
    """Format an exception into a non-empty display message.

    Examples:
        >>> format_error_message(TimeoutError())
        'TimeoutError: Timed out waiting for a file, URL or command.'

        >>> format_error_message(ValueError("invalid input"), include_type=False)
        'invalid input'
    """
    if isinstance(e, ImportExpansionError):
        return str(e)

    error_str = str(e)
    error_type = type(e).__name__

    if error_str:
        if include_type and error_type not in error_str:
            return f"{error_type}: {error_str}"
        return error_str

    for exc_type, message in FALLBACK_MESSAGES.items():
        if isinstance(e, exc_type):
            return f"{error_type}: {message}"

    return f"{error_type}: (no additional details)"


def escape_markup(value: object) -> str:
    """Escape a value for safe interpolation into Rich markup strings."""
    return _escape_markup(str(value))
