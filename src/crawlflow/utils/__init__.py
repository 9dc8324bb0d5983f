"""
Shared helpers for templating and nested data access
"""

from .objects import get_path, set_path, unset_path
from .templates import render_template

__all__ = ["render_template", "get_path", "set_path", "unset_path"]
