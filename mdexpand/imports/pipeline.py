"""Expand directives in markdown text.

Each call is parse -> resolve concurrently -> inject:
1. ``parse_imports`` finds directives outside code blocks (pure)
2. actions resolve in parallel under a semaphore (I/O)
3. ``inject_imports`` splices results back by offset (pure)

For the three-phase pipeline, ``expand_content_imports`` handles files,
globs, symbols and URLs first; the caller runs its template stage; then
``expand_command_imports`` runs commands with template values available.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from .injector import create_resolved_import
from .injector import inject_imports
from .models import COMMAND_ACTION_TYPES
from .models import CONTENT_ACTION_TYPES
from .models import ImportAction
from .models import ImportContext
from .models import ImportStack
from .models import ResolvedImport
from .parser import parse_imports
from .resolver import content_only_context
from .resolver import resolve_action

logger = logging.getLogger(__name__)


async def resolve_all(
    actions: Sequence[ImportAction],
    current_dir: Path,
    stack: ImportStack,
    ctx: ImportContext,
) -> list[ResolvedImport]:
    """Resolve actions concurrently, bounded by ``ctx.settings.concurrency_limit``.

    The first failure cancels the remaining siblings and propagates.
    """
    semaphore = asyncio.Semaphore(ctx.settings.concurrency_limit)

    async def resolve_one(action: ImportAction) -> ResolvedImport:
        async with semaphore:
            content = await resolve_action(action, current_dir, stack, ctx)
        return create_resolved_import(action, content)

    tasks = [asyncio.create_task(resolve_one(action)) for action in actions]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def _expand(
    content: str,
    current_dir: Path,
    stack: ImportStack | None,
    ctx: ImportContext | None,
    kinds: tuple[type, ...] | None,
) -> str:
    ctx = ctx or ImportContext()
    stack = stack or ImportStack()

    actions = parse_imports(content)
    if kinds is not None:
        actions = [a for a in actions if isinstance(a, kinds)]
    if not actions:
        return content

    resolved = await resolve_all(actions, Path(current_dir), stack, ctx)
    return inject_imports(content, resolved)


async def expand_imports(
    content: str,
    current_dir: Path,
    stack: ImportStack | None = None,
    ctx: ImportContext | None = None,
) -> str:
    """Expand every directive in ``content``.

    Args:
        content: Markdown text
        current_dir: Directory relative imports resolve against
        stack: Canonical paths already being expanded (cycle detection)
        ctx: Runtime context shared across the call tree

    Returns:
        Content with all directives replaced by their resolved text

    Raises:
        ImportExpansionError: The first failing action's error
    """
    return await _expand(content, current_dir, stack, ctx, None)


async def expand_content_imports(
    content: str,
    current_dir: Path,
    stack: ImportStack | None = None,
    ctx: ImportContext | None = None,
) -> str:
    """Phase 1: expand files, globs, symbols and URLs; leave commands untouched."""
    ctx = content_only_context(ctx or ImportContext())
    return await _expand(content, current_dir, stack, ctx, CONTENT_ACTION_TYPES)


async def expand_command_imports(
    content: str,
    current_dir: Path,
    ctx: ImportContext | None = None,
) -> str:
    """Phase 3: run command inlines and executable code fences."""
    return await _expand(content, current_dir, None, ctx, COMMAND_ACTION_TYPES)
