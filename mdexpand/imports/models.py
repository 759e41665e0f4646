"""Data model for the import pipeline.

Import actions are a closed union of frozen dataclasses, one per directive
kind. Every action records the exact text it matched (``original``) and its
offset in the containing document (``index``); the injector needs nothing
else.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Union

from ..settings import ExpansionSettings

if TYPE_CHECKING:
    import httpx

    from ..url_cache import UrlCache


@dataclass(frozen=True)
class LineRange:
    """1-indexed, inclusive line range."""

    start: int
    end: int


@dataclass(frozen=True)
class FileImport:
    """``@path`` or ``@path:start-end``."""

    path: str
    original: str
    index: int
    line_range: LineRange | None = None


@dataclass(frozen=True)
class SymbolImport:
    """``@path#Symbol``."""

    path: str
    symbol: str
    original: str
    index: int


@dataclass(frozen=True)
class GlobImport:
    """``@pattern`` where the pattern contains glob metacharacters."""

    pattern: str
    original: str
    index: int


@dataclass(frozen=True)
class UrlImport:
    """``@http(s)://...``."""

    url: str
    original: str
    index: int


@dataclass(frozen=True)
class CommandImport:
    """``!`command` `` inline."""

    command: str
    original: str
    index: int


@dataclass(frozen=True)
class ExecutableCodeFence:
    """Top-level fenced block whose first line is a shebang."""

    shebang: str
    language: str
    code: str
    original: str
    index: int


ImportAction = Union[FileImport, SymbolImport, GlobImport, UrlImport, CommandImport, ExecutableCodeFence]

CONTENT_ACTION_TYPES = (FileImport, SymbolImport, GlobImport, UrlImport)
COMMAND_ACTION_TYPES = (CommandImport, ExecutableCodeFence)


@dataclass(frozen=True)
class ResolvedImport:
    """An action paired with the text it resolved to."""

    action: ImportAction
    content: str


@dataclass(frozen=True)
class ImportStack:
    """Canonical paths being expanded on the current recursion branch.

    Immutable: ``push`` returns a new stack, so sibling branches never see
    each other's entries.
    """

    paths: tuple[Path, ...] = ()

    def __contains__(self, path: Path) -> bool:
        return path in self.paths

    def __len__(self) -> int:
        return len(self.paths)

    def push(self, path: Path) -> ImportStack:
        return ImportStack(self.paths + (path,))

    def chain_to(self, path: Path) -> list[Path]:
        """Return the cycle chain ending at ``path``."""
        return [*self.paths, path]


@dataclass
class ImportContext:
    """Runtime inputs shared across one top-level expansion call.

    Attributes:
        env: Environment for subprocesses (default: inherit os.environ)
        resolved_imports: Append-only accumulator of resolved import identifiers
        invocation_cwd: Working directory for commands instead of the file's directory
        template_vars: Values substituted into ``{{ name }}`` in command text
        dry_run: Return placeholders instead of executing commands
        content_only: Leave commands untouched in recursively imported files
        settings: Limits and knobs
        http_client: Client used for URL imports (created per fetch if None)
        url_cache: Optional cache consulted by URL imports
    """

    env: Mapping[str, str] | None = None
    resolved_imports: list[str] | None = None
    invocation_cwd: Path | None = None
    template_vars: Mapping[str, str] = field(default_factory=dict)
    dry_run: bool = False
    content_only: bool = False
    settings: ExpansionSettings = field(default_factory=ExpansionSettings)
    http_client: httpx.AsyncClient | None = None
    url_cache: UrlCache | None = None

    def track(self, identifier: str) -> None:
        if self.resolved_imports is not None:
            self.resolved_imports.append(identifier)
