"""URL imports: fetch, validate content type, cache."""

from __future__ import annotations

import json
import logging
import re

import httpx

from ..errors import UnsupportedContentType
from ..errors import UrlFetchFailed
from ..settings import ExpansionSettings
from ..url_cache import UrlCache

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "text/markdown, application/json, text/plain, */*"

ALLOWED_CONTENT_TYPES = frozenset({
    "text/markdown",
    "text/x-markdown",
    "text/plain",
    "application/json",
    "application/x-json",
    "text/json",
})

GIST_PATTERN = re.compile(r"gist\.github\.com/([^/]+)/([a-f0-9]+)")


def to_raw_url(url: str) -> str:
    """Rewrite GitHub/Gist/GitLab page URLs to their raw-content form."""
    if "gist.github.com" in url:
        match = GIST_PATTERN.search(url)
        if match:
            return f"https://gist.githubusercontent.com/{match.group(1)}/{match.group(2)}/raw"

    if "github.com" in url and "/blob/" in url:
        return url.replace("github.com", "raw.githubusercontent.com", 1).replace("/blob/", "/", 1)

    if "gitlab.com" in url and "/-/blob/" in url:
        return url.replace("/-/blob/", "/-/raw/", 1)

    return url


def is_allowed_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    base_type = content_type.split(";")[0].strip().lower()
    return base_type in ALLOWED_CONTENT_TYPES


def infer_content_type(content: str, url: str) -> str:
    """Guess ``"json"``, ``"markdown"`` or ``"unknown"`` when headers don't say."""
    trimmed = content.strip()

    if (trimmed.startswith("{") and trimmed.endswith("}")) or (trimmed.startswith("[") and trimmed.endswith("]")):
        try:
            json.loads(trimmed)
            return "json"
        except json.JSONDecodeError:
            pass

    path = url.lower().split("?")[0].split("#")[0]
    if path.endswith((".md", ".markdown")):
        return "markdown"
    if path.endswith(".json"):
        return "json"

    if (
        trimmed.startswith("#")
        or "\n#" in trimmed
        or "\n- " in trimmed
        or "\n* " in trimmed
        or "```" in trimmed
    ):
        return "markdown"

    return "unknown"


def validate_body(url: str, content_type: str | None, body: str) -> str:
    """Accept markdown/plain/JSON bodies; reject anything else."""
    if is_allowed_content_type(content_type):
        return body.strip()
    if infer_content_type(body, url) in ("markdown", "json"):
        return body.strip()
    raise UnsupportedContentType(url, content_type)


async def _get(client: httpx.AsyncClient, url: str, headers: dict[str, str]) -> httpx.Response:
    try:
        return await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        raise UrlFetchFailed(url, str(e) or type(e).__name__) from e


async def process_url_import(
    url: str,
    settings: ExpansionSettings,
    client: httpx.AsyncClient | None = None,
    cache: UrlCache | None = None,
) -> str:
    """Fetch a URL import and return its validated body.

    Raises:
        UrlFetchFailed: On transport errors or non-2xx status
        UnsupportedContentType: If the body is not markdown, plain text or JSON
    """
    fetch_url = to_raw_url(url)
    logger.info(f"Fetching: {fetch_url}")

    cached = cache.lookup(fetch_url) if cache and settings.use_cache else None
    if cached and cached.hit and not cached.expired and cached.content is not None:
        logger.debug(f"Using cached content for {fetch_url}")
        return cached.content

    headers = {"Accept": ACCEPT_HEADER, "User-Agent": settings.user_agent}
    if cached and cached.hit and cached.metadata:
        if cached.metadata.etag:
            headers["If-None-Match"] = cached.metadata.etag
        if cached.metadata.last_modified:
            headers["If-Modified-Since"] = cached.metadata.last_modified

    if client is None:
        async with httpx.AsyncClient(follow_redirects=True, timeout=settings.url_timeout) as owned:
            response = await _get(owned, fetch_url, headers)
    else:
        response = await _get(client, fetch_url, headers)

    if response.status_code == 304 and cached and cached.content is not None:
        logger.debug(f"Not modified, reusing cache for {fetch_url}")
        if cache:
            cache.store(fetch_url, cached.content, cached.metadata.etag, cached.metadata.last_modified)
        return cached.content

    if not response.is_success:
        raise UrlFetchFailed(
            url, f"HTTP {response.status_code}: {response.reason_phrase}", status_code=response.status_code
        )

    content = validate_body(url, response.headers.get("content-type"), response.text)

    if cache and settings.use_cache:
        cache.store(
            fetch_url,
            content,
            etag=response.headers.get("etag"),
            last_modified=response.headers.get("last-modified"),
        )

    return content
