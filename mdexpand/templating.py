"""Template helpers around the import pipeline.

Command text gets a narrow ``{{ name }}`` substitution before it runs. The
full template stage (Jinja2) runs between content imports and command
imports. Command output is wrapped in a raw block so that stage never
reinterprets template syntax printed by a program.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from jinja2 import Environment

VARIABLE_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

RAW_OPEN = "{% raw %}"
RAW_CLOSE = "{% endraw %}"

# Any tag Jinja2 accepts as the end of a raw block, whitespace control included
ENDRAW_TAG_PATTERN = re.compile(r"\{%[-+]?\s*endraw\s*[-+]?%\}")
# An end tag inside wrapped text, emitted as a string expression between raw blocks
ESCAPED_ENDRAW_PATTERN = re.compile(
    r"\{% endraw %\}\{\{ '(\{%[-+]?\s*endraw\s*[-+]?%\})' \}\}\{% raw %\}"
)
LITERAL_BLOCK_PATTERN = re.compile(
    r"\{% raw %\}\n(.*?)\n\{% endraw %\}(?!\{\{ '\{%[-+]?\s*endraw)", re.DOTALL
)

_environment = Environment(keep_trailing_newline=True, autoescape=False)


def substitute_variables(text: str, variables: Mapping[str, str]) -> str:
    """Replace ``{{ name }}`` with known values; unknown names stay as written."""
    if not variables:
        return text

    def replace(match: re.Match) -> str:
        name = match.group(1)
        return str(variables[name]) if name in variables else match.group(0)

    return VARIABLE_PATTERN.sub(replace, text)


def render_template(text: str, variables: Mapping[str, object]) -> str:
    """Render ``text`` as a Jinja2 template; undefined names render empty."""
    return _environment.from_string(text).render(**variables)


def wrap_literal(text: str) -> str:
    """Wrap ``text`` in a raw block that renders back to exactly ``text``.

    End tags inside ``text`` would close the block early, so each one is
    split out as a string expression.
    """
    escaped = ENDRAW_TAG_PATTERN.sub(lambda m: f"{RAW_CLOSE}{{{{ '{m.group(0)}' }}}}{RAW_OPEN}", text)
    return f"{RAW_OPEN}\n{escaped}\n{RAW_CLOSE}"


def unwrap_literals(text: str) -> str:
    """Strip raw markers added by ``wrap_literal``, keeping their contents."""
    return LITERAL_BLOCK_PATTERN.sub(lambda m: ESCAPED_ENDRAW_PATTERN.sub(r"\1", m.group(1)), text)
