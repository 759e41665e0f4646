"""Token estimation and counting for glob imports."""

from __future__ import annotations

import asyncio
import functools
import logging
import math

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
DEFAULT_CONTEXT_WINDOW = 128_000

# Known context windows; matched by prefix so dated variants resolve too.
MODEL_CONTEXT_WINDOWS: dict[str, int] = {
    "claude": 200_000,
    "gpt-4o": 128_000,
    "gpt-4.1": 1_000_000,
    "gpt-4": 8_192,
    "gpt-3.5": 16_385,
    "o1": 200_000,
    "o3": 200_000,
    "gemini": 1_000_000,
}


def estimate_tokens(text: str) -> int:
    """Cheap character-count estimate (~4 chars per token)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def get_context_limit(model: str | None = None, override: int | None = None) -> int:
    """Pick the token budget for a model, honoring an explicit override."""
    if override:
        return override
    if model:
        name = model.lower().split("/")[-1]
        # Longest prefix wins so "gpt-4o" beats "gpt-4"
        for prefix in sorted(MODEL_CONTEXT_WINDOWS, key=len, reverse=True):
            if name.startswith(prefix):
                return MODEL_CONTEXT_WINDOWS[prefix]
    return DEFAULT_CONTEXT_WINDOW


@functools.lru_cache(maxsize=1)
def _encoding():
    import tiktoken

    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    """Precise token count using tiktoken's cl100k_base encoding."""
    return len(_encoding().encode(text, disallowed_special=()))


async def count_tokens_async(text: str) -> int:
    """Run the precise count off the event loop."""
    return await asyncio.to_thread(count_tokens, text)
