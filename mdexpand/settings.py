"""Settings for import expansion.

Settings are layered from two YAML scopes plus environment overrides:
- User global (~/.mdexpand/settings.yaml)
- Project (.mdexpand/settings.yaml)
- Environment (MDEXPAND_* variables, highest priority)

Only the ``expansion:`` mapping of each file is read.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic import Field

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_COMMAND_OUTPUT = 100_000
DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_CONCURRENCY_LIMIT = 10

# Environment variable -> settings field
ENV_OVERRIDES: dict[str, str] = {
    "MDEXPAND_MAX_FILE_SIZE": "max_file_size",
    "MDEXPAND_COMMAND_TIMEOUT": "command_timeout",
    "MDEXPAND_CONCURRENCY": "concurrency_limit",
    "MDEXPAND_CONTEXT_WINDOW": "context_window",
    "MDEXPAND_MODEL": "model",
    "MDEXPAND_FORCE_CONTEXT": "force_context",
}


class ExpansionSettings(BaseModel):
    """Limits and knobs for one expansion run."""

    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0, description="Byte ceiling per imported file")
    max_command_output: int = Field(
        default=DEFAULT_MAX_COMMAND_OUTPUT, gt=0, description="Character ceiling for command output"
    )
    command_timeout: float = Field(
        default=DEFAULT_COMMAND_TIMEOUT, gt=0, description="Seconds before a command or code fence is killed"
    )
    concurrency_limit: int = Field(
        default=DEFAULT_CONCURRENCY_LIMIT, ge=1, description="Simultaneous resolutions per nesting level"
    )
    context_window: int | None = Field(default=None, gt=0, description="Token budget for glob imports")
    model: str | None = Field(default=None, description="Model name used to pick a context window")
    force_context: bool = Field(default=False, description="Allow glob imports beyond the token budget")
    self_command: str = Field(default="mdexpand expand", description="Command used to chain markdown files")
    user_agent: str = Field(default="mdexpand/1.0", description="User-Agent header for URL imports")
    url_timeout: float = Field(default=30.0, gt=0, description="Seconds before a URL fetch is abandoned")
    cache_ttl: int = Field(default=3600, ge=0, description="Seconds a cached URL stays fresh")
    use_cache: bool = Field(default=True, description="Consult the URL cache when fetching")


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two settings dicts (overlay takes precedence)."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_settings(path: Path) -> dict[str, Any]:
    """Read the ``expansion`` section of a YAML settings file.

    Missing files yield an empty dict; unreadable or malformed files are
    logged and ignored.
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to read settings from {path}: {e}")
        return {}

    if not isinstance(data, dict):
        return {}
    section = data.get("expansion")
    return section if isinstance(section, dict) else {}


def _env_overrides(env: dict[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for var, field_name in ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        if field_name == "force_context":
            overrides[field_name] = value.lower() not in ("0", "false", "no", "off")
        else:
            overrides[field_name] = value
    return overrides


def load_settings(
    project_dir: Path | None = None,
    user_dir: Path | None = None,
    env: dict[str, str] | None = None,
) -> ExpansionSettings:
    """Load merged settings from user, project and environment scopes.

    Args:
        project_dir: Project root holding ``.mdexpand/`` (default: CWD)
        user_dir: User config directory (default: ~/.mdexpand)
        env: Environment mapping (default: os.environ)

    Returns:
        Validated ExpansionSettings

    Raises:
        pydantic.ValidationError: If a merged value is invalid
    """
    project_dir = project_dir or Path.cwd()
    user_dir = user_dir or Path.home() / ".mdexpand"
    env = dict(os.environ) if env is None else env

    merged = _read_settings(user_dir / "settings.yaml")
    merged = deep_merge(merged, _read_settings(project_dir / ".mdexpand" / "settings.yaml"))
    merged = deep_merge(merged, _env_overrides(env))

    return ExpansionSettings(**merged)
