"""Glob imports: gitignore-aware expansion with a token budget."""

from __future__ import annotations

import asyncio
import glob as globlib
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

import pathspec

from ..errors import ContextBudgetExceeded
from ..settings import ExpansionSettings
from ..tokens import count_tokens_async
from ..tokens import estimate_tokens
from ..tokens import get_context_limit
from .files import check_file_size
from .files import expand_tilde
from .files import is_binary_file

logger = logging.getLogger(__name__)

ALWAYS_IGNORED = [".git", "node_modules", ".DS_Store", "*.log"]

# Precise counting only when the estimate reaches this share of the budget
ACCURATE_COUNT_RATIO = 0.7
WARN_RATIO = 0.5


@dataclass(frozen=True)
class GlobFile:
    path: str
    content: str


def load_gitignore(start_dir: Path) -> pathspec.GitIgnoreSpec:
    """Collect .gitignore rules from ``start_dir`` upward to the repository root."""
    lines = list(ALWAYS_IGNORED)
    current = start_dir.resolve()

    while True:
        gitignore = current / ".gitignore"
        if gitignore.is_file():
            try:
                text = gitignore.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Failed to read {gitignore}: {e}")
            else:
                lines.extend(
                    line for line in text.splitlines() if line.strip() and not line.startswith("#")
                )

        if (current / ".git").exists() or current.parent == current:
            break
        current = current.parent

    return pathspec.GitIgnoreSpec.from_lines(lines)


def slugify_tag(path: str) -> str:
    """Turn a file name into a tag name: ``My File.md`` -> ``my-file``."""
    name = os.path.splitext(os.path.basename(path))[0].lower()
    name = re.sub(r"[^a-z0-9]+", "-", name).strip("-")
    if name[:1].isdigit():
        name = "_" + name
    return name or "file"


def format_files_as_xml(files: list[GlobFile]) -> str:
    parts = []
    for f in files:
        tag = slugify_tag(f.path)
        parts.append(f'<{tag} path="{f.path}">\n{f.content}\n</{tag}>')
    return "\n\n".join(parts)


def _collect_files(pattern: str, current_dir: Path, max_file_size: int) -> tuple[list[GlobFile], list[str]]:
    expanded = expand_tilde(pattern)
    ignore = load_gitignore(current_dir)

    if os.path.isabs(expanded):
        matches = globlib.glob(expanded, recursive=True)
    else:
        relative = expanded[2:] if expanded.startswith("./") else expanded
        matches = [str(current_dir / m) for m in globlib.glob(relative, root_dir=current_dir, recursive=True)]

    files: list[GlobFile] = []
    skipped_binary: list[str] = []

    for match in matches:
        file_path = Path(match)
        if not file_path.is_file():
            continue

        relative_path = os.path.relpath(file_path, current_dir)
        if ignore.match_file(relative_path.replace(os.sep, "/")):
            continue

        if is_binary_file(file_path):
            skipped_binary.append(relative_path)
            continue

        check_file_size(file_path, max_file_size)
        content = file_path.read_text(encoding="utf-8", errors="replace")
        files.append(GlobFile(path=relative_path, content=content))

    files.sort(key=lambda f: f.path)
    return files, skipped_binary


async def process_glob_import(pattern: str, current_dir: Path, settings: ExpansionSettings) -> str:
    """Expand a glob into one tagged block per matching text file.

    Binary matches are skipped with a warning. The cheap token estimate is
    refined with a precise count only near the budget.

    Raises:
        FileTooLarge: If any matching file exceeds the size ceiling
        ContextBudgetExceeded: If the files exceed the token budget
    """
    logger.debug(f"Glob pattern: {pattern} in {current_dir}")
    files, skipped_binary = await asyncio.to_thread(_collect_files, pattern, current_dir, settings.max_file_size)

    if skipped_binary:
        logger.warning(f"Skipped {len(skipped_binary)} binary file(s): {', '.join(skipped_binary)}")

    context_limit = get_context_limit(settings.model, settings.context_window)
    all_content = "\n".join(f.content for f in files)
    estimated = estimate_tokens(all_content)

    needs_accurate_count = estimated > context_limit * ACCURATE_COUNT_RATIO
    tokens = await count_tokens_async(all_content) if needs_accurate_count else estimated

    suffix = "" if needs_accurate_count else " est"
    logger.info(f"Expanding {pattern}: {len(files)} files (~{tokens:,} tokens{suffix})")

    if tokens > context_limit and not settings.force_context:
        raise ContextBudgetExceeded(pattern, tokens, context_limit, len(files))

    if context_limit * WARN_RATIO < tokens <= context_limit:
        logger.warning(f"High token count (~{tokens:,}). This may be expensive.")

    return format_files_as_xml(files)
