"""Zettelkasten loading, query resolution and graph building."""

from .builder import build_zettelkasten, load_zettelkasten
from .errors import format_error_report, route_file
from .formats import DEFAULT_RULES, FormatRule, ZettelFormat
from .graph import ZettelGraph

__all__ = [
    "build_zettelkasten",
    "load_zettelkasten",
    "format_error_report",
    "route_file",
    "DEFAULT_RULES",
    "FormatRule",
    "ZettelFormat",
    "ZettelGraph",
]
