"""
Comment directive package.

Locates and parses image directives embedded in source comments.
"""

from .base import DIALECTS, Dialect, Directive, get_dialect
from .parser import parse_directive

__all__ = [
    "DIALECTS",
    "Dialect",
    "Directive",
    "get_dialect",
    "parse_directive",
]
