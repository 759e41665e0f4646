"""Error taxonomy for import expansion.

Every failure is terminal for the action that raised it and aborts the
enclosing expansion call. Each error keeps its diagnostic fields as
attributes so callers can inspect them without parsing messages.
"""

from __future__ import annotations

from pathlib import Path


def format_bytes(size: int) -> str:
    """Format a byte count as a short human-readable string."""
    if size < 1024:
        return f"{size} bytes"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size / (1024 * 1024):.1f}MB"


class ImportExpansionError(Exception):
    """Base class for all import expansion failures."""


class ImportNotFound(ImportExpansionError):
    """Raised when an imported path does not exist."""

    def __init__(self, path: str, resolved_path: Path):
        self.path = path
        self.resolved_path = resolved_path
        super().__init__(f"Import not found: {path} (resolved to {resolved_path})")


class FileTooLarge(ImportExpansionError):
    """Raised when an imported file exceeds the configured byte ceiling."""

    def __init__(self, path: Path, size: int, limit: int):
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(
            f'File "{path}" exceeds {format_bytes(limit)} limit ({format_bytes(size)}). '
            f"Consider using line ranges (@./file.ts:1-100) or symbol extraction "
            f"(@./file.ts#FunctionName) to import only the relevant portion."
        )


class BinaryImportRejected(ImportExpansionError):
    """Raised when a direct file import points at a binary file."""

    def __init__(self, path: str, resolved_path: Path):
        self.path = path
        self.resolved_path = resolved_path
        super().__init__(f"Cannot import binary file: {path} (resolved to {resolved_path})")


class CircularImport(ImportExpansionError):
    """Raised when a file re-enters itself on the current recursion branch."""

    def __init__(self, chain: list[Path]):
        self.chain = chain
        super().__init__("Circular import detected: " + " -> ".join(str(p) for p in chain))


class SymbolNotFound(ImportExpansionError):
    """Raised when a symbol extraction finds no matching declaration."""

    def __init__(self, symbol: str, path: Path | None = None):
        self.symbol = symbol
        self.path = path
        where = f" in {path}" if path else " in file"
        super().__init__(f'Symbol "{symbol}" not found{where}')


class ContextBudgetExceeded(ImportExpansionError):
    """Raised when a glob import would blow the context-window budget."""

    def __init__(self, pattern: str, tokens: int, limit: int, file_count: int):
        self.pattern = pattern
        self.tokens = tokens
        self.limit = limit
        self.file_count = file_count
        super().__init__(
            f'Glob import "{pattern}" would include ~{tokens:,} tokens ({file_count} files), '
            f"which exceeds the {limit:,} token limit.\n"
            f"To override this limit, set the MDEXPAND_FORCE_CONTEXT=1 environment variable."
        )


class UrlFetchFailed(ImportExpansionError):
    """Raised when a URL import cannot be fetched or returns a non-2xx status."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch URL: {url} - {reason}")


class UnsupportedContentType(ImportExpansionError):
    """Raised when a URL body is neither markdown, plain text nor JSON."""

    def __init__(self, url: str, content_type: str | None):
        self.url = url
        self.content_type = content_type
        super().__init__(
            f"URL returned unsupported content type: {content_type or 'unknown'}. "
            f"Only markdown and JSON are allowed. URL: {url}"
        )


class CommandTimedOut(ImportExpansionError):
    """Raised when an inline command or code fence exceeds its timeout."""

    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"Command timed out after {timeout:g}s: {command}")


class BinaryCommandOutput(ImportExpansionError):
    """Raised when a command writes binary data to stdout."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Command returned binary data. Inline commands must return text: {command}")


class CommandFailed(ImportExpansionError):
    """Raised when an inline command exits non-zero or cannot be spawned."""

    def __init__(self, command: str, exit_code: int | None, stdout: str = "", stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        output = stderr or stdout or "No output"
        status = f"Exit {exit_code}" if exit_code is not None else "not started"
        super().__init__(f"Command failed ({status}): {command}\nOutput: {output}")


class CodeFenceFailed(ImportExpansionError):
    """Raised when an executable code fence exits non-zero or cannot be run."""

    def __init__(self, shebang: str, exit_code: int | None, stdout: str = "", stderr: str = ""):
        self.shebang = shebang
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        output = stderr or stdout or "No output"
        status = f"Exit {exit_code}" if exit_code is not None else "not started"
        super().__init__(f"Code fence failed ({status}, {shebang}): {output}")
