"""Filesystem helpers for file and glob imports."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from ..errors import BinaryImportRejected
from ..errors import FileTooLarge
from ..errors import ImportNotFound

BINARY_EXTENSIONS = frozenset({
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".webp", ".bmp", ".svg", ".tiff", ".tif",
    # Executables and libraries
    ".exe", ".dll", ".so", ".dylib", ".bin",
    # Archives
    ".zip", ".tar", ".gz", ".7z", ".rar", ".bz2", ".xz",
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # Databases
    ".sqlite", ".db", ".sqlite3",
    # Data
    ".dat", ".data",
    # Other binary formats
    ".wasm", ".pyc", ".class", ".o", ".a", ".lib",
})

BINARY_CHECK_SIZE = 8192


def expand_tilde(path: str) -> str:
    if path == "~" or path.startswith("~/"):
        return str(Path.home()) + path[1:]
    return path


def resolve_import_path(import_path: str, current_dir: Path) -> Path:
    """Resolve an import path against the importing file's directory.

    ``~`` expands to the home directory; absolute paths pass through.
    """
    expanded = Path(expand_tilde(import_path))
    if expanded.is_absolute():
        return expanded
    return Path(os.path.normpath(current_dir / expanded))


def to_canonical_path(path: Path) -> Path:
    """Resolve symlinks so aliases of one file share an identity."""
    try:
        return path.resolve(strict=True)
    except OSError:
        return path


def has_binary_extension(path: Path) -> bool:
    return path.suffix.lower() in BINARY_EXTENSIONS or path.name == ".DS_Store"


def is_binary_file(path: Path) -> bool:
    """Check the extension first, then look for a null byte in the first 8KB."""
    if has_binary_extension(path):
        return True
    with open(path, "rb") as f:
        return b"\0" in f.read(BINARY_CHECK_SIZE)


def check_file_size(path: Path, limit: int) -> int:
    """Raise FileTooLarge if ``path`` exceeds ``limit`` bytes; return its size."""
    size = path.stat().st_size
    if size > limit:
        raise FileTooLarge(path, size, limit)
    return size


def _load_text(import_path: str, resolved: Path, limit: int) -> str:
    if not resolved.is_file():
        raise ImportNotFound(import_path, resolved)
    check_file_size(resolved, limit)
    if is_binary_file(resolved):
        raise BinaryImportRejected(import_path, resolved)
    return resolved.read_text(encoding="utf-8", errors="replace")


async def load_text_file(import_path: str, resolved: Path, limit: int) -> str:
    """Existence, size and binary checks followed by a UTF-8 read, off the event loop."""
    return await asyncio.to_thread(_load_text, import_path, resolved, limit)
