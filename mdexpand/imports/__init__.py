"""Import resolution pipeline.

Expands ``@file``, ``@glob``, ``@url``, ``!`command` `` and executable code
fences embedded in markdown, in place.
"""

from .injector import inject_imports
from .models import CommandImport
from .models import ExecutableCodeFence
from .models import FileImport
from .models import GlobImport
from .models import ImportAction
from .models import ImportContext
from .models import ImportStack
from .models import LineRange
from .models import ResolvedImport
from .models import SymbolImport
from .models import UrlImport
from .parser import has_command_imports
from .parser import has_content_imports
from .parser import has_imports
from .parser import parse_imports
from .pipeline import expand_command_imports
from .pipeline import expand_content_imports
from .pipeline import expand_imports
from .scanner import find_safe_ranges
from .scanner import scan_document

__all__ = [
    "CommandImport",
    "ExecutableCodeFence",
    "FileImport",
    "GlobImport",
    "ImportAction",
    "ImportContext",
    "ImportStack",
    "LineRange",
    "ResolvedImport",
    "SymbolImport",
    "UrlImport",
    "expand_command_imports",
    "expand_content_imports",
    "expand_imports",
    "find_safe_ranges",
    "has_command_imports",
    "has_content_imports",
    "has_imports",
    "inject_imports",
    "parse_imports",
    "scan_document",
]
