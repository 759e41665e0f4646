"""Line-range and symbol extraction for partial file imports."""

from __future__ import annotations

import re
from pathlib import Path

from ..errors import SymbolNotFound


def extract_lines(content: str, start: int, end: int) -> str:
    """Return lines ``start``..``end`` (1-indexed, inclusive), clamped to the file."""
    lines = content.split("\n")
    start_idx = max(0, start - 1)
    end_idx = min(len(lines), end)
    return "\n".join(lines[start_idx:end_idx])


def _declaration_patterns(name: str) -> list[re.Pattern]:
    n = re.escape(name)
    export = r"^(export\s+)?(default\s+)?"
    return [
        re.compile(export + rf"interface\s+{n}\b\s*(<[^>]+>)?\s*(extends\s+[^{{]+)?\{{"),
        re.compile(export + rf"type\s+{n}\b\s*(<[^>]+>)?\s*="),
        re.compile(export + rf"(async\s+)?function\*?\s+{n}\b\s*(<[^>]+>)?\s*\("),
        re.compile(export + rf"(abstract\s+)?class\s+{n}\b\s*(<[^>]+>)?\s*(extends\s+[^{{]+)?(implements\s+[^{{]+)?\{{"),
        re.compile(export + rf"(const|let|var)\s+{n}\b\s*(:[^=]+)?\s*="),
        re.compile(export + rf"(const\s+)?enum\s+{n}\b\s*\{{"),
    ]


def extract_symbol(content: str, symbol: str, path: Path | None = None) -> str:
    """Extract a TypeScript/JavaScript declaration by name.

    Supports interface, type, function, class, const, let, var and enum.
    Accumulates lines from the declaration until brace and paren depth
    return to zero outside of string literals.

    Raises:
        SymbolNotFound: If no declaration of ``symbol`` exists
    """
    lines = content.split("\n")
    patterns = _declaration_patterns(symbol)

    start_line = -1
    brace_depth = 0
    paren_depth = 0
    in_string = False
    string_char = ""

    for i, line in enumerate(lines):
        if start_line == -1:
            stripped = line.strip()
            if stripped and any(p.search(stripped) for p in patterns):
                start_line = i
            else:
                continue

        prev = ""
        for char in line:
            if not in_string and char in "\"'`":
                in_string = True
                string_char = char
            elif in_string and char == string_char and prev != "\\":
                in_string = False
            elif not in_string:
                if char == "{":
                    brace_depth += 1
                elif char == "}":
                    brace_depth -= 1
                elif char == "(":
                    paren_depth += 1
                elif char == ")":
                    paren_depth -= 1
            prev = char

        if brace_depth == 0 and paren_depth == 0 and not in_string:
            trimmed = line.strip()
            next_line = lines[i + 1].strip() if i + 1 < len(lines) else ""
            # A continuation like `.then(...)` keeps a chained expression open
            if trimmed.endswith((";", "}")) or not next_line.startswith("."):
                return "\n".join(lines[start_line : i + 1])

    if start_line != -1:
        return "\n".join(lines[start_line:])

    raise SymbolNotFound(symbol, path)
