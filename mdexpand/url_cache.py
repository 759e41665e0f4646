"""Disk cache for URL imports.

Each URL is stored under ~/.mdexpand/cache/ as ``<sha256>.content`` plus
``<sha256>.meta.json`` holding fetch time, TTL and validators (ETag,
Last-Modified) for conditional re-fetches.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".mdexpand" / "cache"
DEFAULT_CACHE_TTL = 3600


@dataclass
class CacheMetadata:
    url: str
    fetched_at: str
    ttl: int
    etag: str | None = None
    last_modified: str | None = None


@dataclass
class CacheLookup:
    """Result of a cache lookup."""

    hit: bool
    expired: bool = False
    content: str | None = None
    metadata: CacheMetadata | None = None


def hash_url(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


class UrlCache:
    """TTL cache of fetched URL bodies."""

    def __init__(self, cache_dir: Path | None = None, ttl: int = DEFAULT_CACHE_TTL):
        self.cache_dir = cache_dir or DEFAULT_CACHE_DIR
        self.ttl = ttl

    def _paths(self, url: str) -> tuple[Path, Path]:
        digest = hash_url(url)
        return self.cache_dir / f"{digest}.content", self.cache_dir / f"{digest}.meta.json"

    def lookup(self, url: str) -> CacheLookup:
        content_path, meta_path = self._paths(url)
        if not content_path.exists() or not meta_path.exists():
            return CacheLookup(hit=False)

        try:
            meta = CacheMetadata(**json.loads(meta_path.read_text(encoding="utf-8")))
            content = content_path.read_text(encoding="utf-8")
        except (OSError, json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Cache entry for {url} is corrupted, ignoring: {e}")
            return CacheLookup(hit=False)

        age = (datetime.now(UTC) - datetime.fromisoformat(meta.fetched_at)).total_seconds()
        expired = age >= meta.ttl
        if expired:
            logger.debug(f"Cache expired for {url} (age: {age:.0f}s, ttl: {meta.ttl}s)")
        return CacheLookup(hit=True, expired=expired, content=content, metadata=meta)

    def store(self, url: str, content: str, etag: str | None = None, last_modified: str | None = None) -> None:
        content_path, meta_path = self._paths(url)
        meta = CacheMetadata(
            url=url,
            fetched_at=datetime.now(UTC).isoformat(),
            ttl=self.ttl,
            etag=etag,
            last_modified=last_modified,
        )
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            content_path.write_text(content, encoding="utf-8")
            meta_path.write_text(json.dumps(asdict(meta), indent=2), encoding="utf-8")
            logger.debug(f"Cached {url} to {content_path}")
        except OSError as e:
            logger.warning(f"Failed to save cache: {e}")

    def clear(self) -> int:
        """Remove all cache entries; returns the number of files deleted."""
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for entry in self.cache_dir.iterdir():
            if entry.name.endswith((".content", ".meta.json")):
                entry.unlink(missing_ok=True)
                removed += 1
        return removed
