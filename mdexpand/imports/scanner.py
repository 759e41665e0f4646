"""Context-aware scan of markdown text.

A single forward pass tracks whether the cursor is in plain text, a fenced
code block or an inline code span. Directives are only honored inside the
resulting safe ranges, so examples in documentation never execute.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ScanContext(str, Enum):
    NORMAL = "normal"
    FENCED_CODE = "fenced_code"
    INLINE_CODE = "inline_code"


@dataclass(frozen=True)
class SafeRange:
    """Half-open ``[start, end)`` span of plain text."""

    start: int
    end: int

    def __contains__(self, index: int) -> bool:
        return self.start <= index < self.end


@dataclass(frozen=True)
class FencedBlock:
    """A closed fence: ``start`` is the opening run, ``end`` the end of the closing line."""

    start: int
    end: int


@dataclass(frozen=True)
class ScanResult:
    """Safe ranges, the offsets where code blocks and spans open, and closed fences."""

    safe_ranges: tuple[SafeRange, ...]
    unsafe_starts: frozenset[int]
    fences: tuple[FencedBlock, ...] = ()

    def is_safe(self, index: int) -> bool:
        return any(index in r for r in self.safe_ranges)


def _run_length(content: str, start: int, char: str) -> int:
    end = start
    while end < len(content) and content[end] == char:
        end += 1
    return end - start


def scan_document(content: str) -> ScanResult:
    """Scan content once and classify it into safe and unsafe spans.

    Fences open with 3+ backticks or tildes and close with an equal or longer
    run of the same character at the start of a line. Inline spans open with
    a single backtick and close at the next backtick or end of line. An
    unterminated fence makes the rest of the document unsafe.
    """
    safe_ranges: list[SafeRange] = []
    unsafe_starts: set[int] = set()
    fences: list[FencedBlock] = []
    context = ScanContext.NORMAL
    range_start = 0
    fence_char = ""
    fence_len = 0
    fence_start = 0
    i = 0
    length = len(content)

    while i < length:
        char = content[i]

        if context is ScanContext.NORMAL:
            if char in "`~":
                run = _run_length(content, i, char)
                if run >= 3:
                    if i > range_start:
                        safe_ranges.append(SafeRange(range_start, i))
                    unsafe_starts.add(i)
                    context = ScanContext.FENCED_CODE
                    fence_start = i
                    fence_char = char
                    fence_len = run
                    # Skip the info string
                    newline = content.find("\n", i + run)
                    i = length if newline == -1 else newline
                    continue

            if char == "`" and (i + 1 >= length or content[i + 1] != "`"):
                if i > range_start:
                    safe_ranges.append(SafeRange(range_start, i))
                unsafe_starts.add(i)
                context = ScanContext.INLINE_CODE
                i += 1
                continue

            i += 1

        elif context is ScanContext.FENCED_CODE:
            at_line_start = i == 0 or content[i - 1] == "\n"
            if at_line_start and char == fence_char:
                run = _run_length(content, i, fence_char)
                if run >= fence_len:
                    newline = content.find("\n", i + run)
                    fence_end = length if newline == -1 else newline
                    fences.append(FencedBlock(fence_start, fence_end))
                    i = length if newline == -1 else newline + 1
                    context = ScanContext.NORMAL
                    range_start = i
                    continue
            i += 1

        else:
            if char == "`":
                i += 1
                context = ScanContext.NORMAL
                range_start = i
                continue
            # Inline code cannot span lines
            if char == "\n":
                context = ScanContext.NORMAL
                range_start = i
            i += 1

    if context is ScanContext.NORMAL and range_start < length:
        safe_ranges.append(SafeRange(range_start, length))

    return ScanResult(tuple(safe_ranges), frozenset(unsafe_starts), tuple(fences))


def find_safe_ranges(content: str) -> list[SafeRange]:
    """Return the spans of ``content`` outside fenced and inline code."""
    return list(scan_document(content).safe_ranges)
