"""Resolve one import action to text.

File imports recurse into the imported file's own directives with the
import stack extended by the file's canonical path. Line ranges and symbol
extractions return a slice of the file without recursing.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from ..errors import CircularImport
from ..errors import ImportNotFound
from .commands import process_command_inline
from .commands import process_executable_code_fence
from .files import load_text_file
from .files import resolve_import_path
from .files import to_canonical_path
from .globs import process_glob_import
from .models import CommandImport
from .models import ExecutableCodeFence
from .models import FileImport
from .models import GlobImport
from .models import ImportAction
from .models import ImportContext
from .models import ImportStack
from .models import SymbolImport
from .models import UrlImport
from .remote import process_url_import
from .symbols import extract_lines
from .symbols import extract_symbol

logger = logging.getLogger(__name__)


async def resolve_file_import(
    action: FileImport, current_dir: Path, stack: ImportStack, ctx: ImportContext
) -> str:
    resolved_path = resolve_import_path(action.path, current_dir)

    if action.line_range:
        start, end = action.line_range.start, action.line_range.end
        logger.debug(f"Loading lines {start}-{end} from: {action.path}")
        content = await load_text_file(action.path, resolved_path, ctx.settings.max_file_size)
        ctx.track(f"{action.path}:{start}-{end}")
        return extract_lines(content, start, end)

    if not resolved_path.is_file():
        raise ImportNotFound(action.path, resolved_path)

    canonical = to_canonical_path(resolved_path)
    if canonical in stack:
        raise CircularImport(stack.chain_to(canonical))

    content = await load_text_file(action.path, resolved_path, ctx.settings.max_file_size)
    logger.info(f"Loading: {action.path}")
    ctx.track(action.path)

    # Deferred import: pipeline imports this module
    from .pipeline import expand_content_imports
    from .pipeline import expand_imports

    nested_stack = stack.push(canonical)
    if ctx.content_only:
        return await expand_content_imports(content, resolved_path.parent, nested_stack, ctx)
    return await expand_imports(content, resolved_path.parent, nested_stack, ctx)


async def resolve_symbol_import(action: SymbolImport, current_dir: Path, ctx: ImportContext) -> str:
    resolved_path = resolve_import_path(action.path, current_dir)
    logger.debug(f'Extracting symbol "{action.symbol}" from: {action.path}')
    content = await load_text_file(action.path, resolved_path, ctx.settings.max_file_size)
    ctx.track(f"{action.path}#{action.symbol}")
    return extract_symbol(content, action.symbol, resolved_path)


async def resolve_action(
    action: ImportAction, current_dir: Path, stack: ImportStack, ctx: ImportContext
) -> str:
    """Resolve a single action using its type's strategy."""
    if isinstance(action, FileImport):
        return await resolve_file_import(action, current_dir, stack, ctx)
    if isinstance(action, SymbolImport):
        return await resolve_symbol_import(action, current_dir, ctx)
    if isinstance(action, GlobImport):
        content = await process_glob_import(action.pattern, current_dir, ctx.settings)
        ctx.track(action.pattern)
        return content
    if isinstance(action, UrlImport):
        content = await process_url_import(action.url, ctx.settings, ctx.http_client, ctx.url_cache)
        ctx.track(action.url)
        return content
    if isinstance(action, CommandImport):
        return await process_command_inline(action.command, current_dir, ctx)
    if isinstance(action, ExecutableCodeFence):
        return await process_executable_code_fence(action, current_dir, ctx)
    raise TypeError(f"Unknown import action: {action!r}")


def content_only_context(ctx: ImportContext) -> ImportContext:
    """Copy of ``ctx`` that leaves commands alone in nested files."""
    return dataclasses.replace(ctx, content_only=True)
