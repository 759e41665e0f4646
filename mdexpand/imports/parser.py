"""Pure text processing for import directives - no I/O.

Recognized syntaxes:
- ``@./path``, ``@../path``, ``@~/path``, ``@/abs/path`` - file import
- ``@./file.ts:10-50`` - line range
- ``@./file.ts#Symbol`` - symbol extraction
- ``@./src/**/*.py`` - glob (``*``, ``?`` or ``[`` in the path)
- ``@https://...`` - URL import (email addresses never match)
- ``!`cmd` `` - command inline; longer backtick runs allow nested backticks
- a top-level fence whose first line is ``#!...`` - executable code fence

Patterns are compiled once and iterated fresh per call, so parsing is
reentrant.
"""

from __future__ import annotations

import re
from re import Pattern

from .models import COMMAND_ACTION_TYPES
from .models import CONTENT_ACTION_TYPES
from .models import CommandImport
from .models import ExecutableCodeFence
from .models import FileImport
from .models import GlobImport
from .models import ImportAction
from .models import LineRange
from .models import SymbolImport
from .models import UrlImport
from .scanner import scan_document

# Path runs until whitespace; must start with ./ ../ ~/ or /
FILE_IMPORT_PATTERN: Pattern = re.compile(r"@(~?[./][^\s]+)")

URL_IMPORT_PATTERN: Pattern = re.compile(r"@(https?://[^\s]+)")

# Group 1 is the opening backtick run, closed by the same run
COMMAND_INLINE_PATTERN: Pattern = re.compile(r"!(`+)(.+?)\1", re.DOTALL)

# Opening line plus a shebang first line; the scanner decides where the fence closes
EXECUTABLE_FENCE_HEADER_PATTERN: Pattern = re.compile(r"(?:`{3,}|~{3,})(?P<info>[^\n]*)\n(?P<shebang>#![^\n]+)\n")

LINE_RANGE_PATTERN: Pattern = re.compile(r"^(.+):(\d+)-(\d+)$")

SYMBOL_PATTERN: Pattern = re.compile(r"^(.+)#([a-zA-Z_$][a-zA-Z0-9_$]*)$")


def is_glob_pattern(path: str) -> bool:
    """Check if a path contains glob metacharacters."""
    return "*" in path or "?" in path or "[" in path


def parse_line_range(path: str) -> tuple[str, LineRange | None]:
    """Split ``file.ts:10-50`` into the path and its line range.

    Examples:
        >>> parse_line_range("./file.ts:10-50")
        ('./file.ts', LineRange(start=10, end=50))
        >>> parse_line_range("./file.ts")
        ('./file.ts', None)
    """
    match = LINE_RANGE_PATTERN.match(path)
    if match:
        return match.group(1), LineRange(int(match.group(2)), int(match.group(3)))
    return path, None


def parse_symbol_extraction(path: str) -> tuple[str, str | None]:
    """Split ``file.ts#Symbol`` into the path and the symbol name.

    Examples:
        >>> parse_symbol_extraction("./types.ts#UserConfig")
        ('./types.ts', 'UserConfig')
        >>> parse_symbol_extraction("./types.ts")
        ('./types.ts', None)
    """
    match = SYMBOL_PATTERN.match(path)
    if match:
        return match.group(1), match.group(2)
    return path, None


def _classify_path(original: str, path: str, index: int) -> FileImport | GlobImport | SymbolImport:
    if is_glob_pattern(path):
        return GlobImport(pattern=path, original=original, index=index)

    file_path, symbol = parse_symbol_extraction(path)
    if symbol:
        return SymbolImport(path=file_path, symbol=symbol, original=original, index=index)

    file_path, line_range = parse_line_range(path)
    if line_range:
        return FileImport(path=file_path, line_range=line_range, original=original, index=index)

    return FileImport(path=path, original=original, index=index)


def parse_imports(content: str) -> list[ImportAction]:
    """Find all directives outside code blocks.

    Args:
        content: Document text

    Returns:
        Import actions sorted by their offset in ``content``
    """
    scan = scan_document(content)
    actions: list[ImportAction] = []

    for match in FILE_IMPORT_PATTERN.finditer(content):
        if scan.is_safe(match.start()):
            actions.append(_classify_path(match.group(0), match.group(1), match.start()))

    for match in URL_IMPORT_PATTERN.finditer(content):
        if scan.is_safe(match.start()):
            actions.append(UrlImport(url=match.group(1), original=match.group(0), index=match.start()))

    for match in COMMAND_INLINE_PATTERN.finditer(content):
        if scan.is_safe(match.start()):
            actions.append(CommandImport(command=match.group(2), original=match.group(0), index=match.start()))

    # Only closed top-level fences are executable
    for fence in scan.fences:
        block = content[fence.start : fence.end]
        match = EXECUTABLE_FENCE_HEADER_PATTERN.match(block)
        if not match:
            continue
        closing_line = block.rfind("\n") + 1
        info = match.group("info").strip()
        language = info.split()[0] if info else "txt"
        actions.append(
            ExecutableCodeFence(
                shebang=match.group("shebang"),
                language=language,
                code=block[match.end() : closing_line].strip(),
                original=block,
                index=fence.start,
            )
        )

    actions.sort(key=lambda a: a.index)
    return actions


def has_imports(content: str) -> bool:
    """Check if content contains any directive outside code blocks."""
    return bool(parse_imports(content))


def has_content_imports(content: str) -> bool:
    """Check for file, glob, symbol or URL imports."""
    return any(isinstance(a, CONTENT_ACTION_TYPES) for a in parse_imports(content))


def has_command_imports(content: str) -> bool:
    """Check for command inlines or executable code fences."""
    return any(isinstance(a, COMMAND_ACTION_TYPES) for a in parse_imports(content))
