"""Splice resolved content back into a document - no I/O."""

from __future__ import annotations

from collections.abc import Iterable

from .models import ImportAction
from .models import ResolvedImport


def create_resolved_import(action: ImportAction, content: str) -> ResolvedImport:
    return ResolvedImport(action=action, content=content)


def inject_imports(content: str, resolved: Iterable[ResolvedImport]) -> str:
    """Replace each action's matched text with its resolved content.

    Replacements run from the highest offset down, so splicing one import
    never shifts the offsets of the imports before it.
    """
    result = content
    for item in sorted(resolved, key=lambda r: r.action.index, reverse=True):
        start = item.action.index
        end = start + len(item.action.original)
        result = result[:start] + item.content + result[end:]
    return result
