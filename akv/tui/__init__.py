"""
akv TUI — Textual front end for the akv engine.

The widgets render through ``textual.content.Content``, so an older Textual
that lacks it counts as missing:
    pip install -U akv-tui
"""

from __future__ import annotations


def check_textual() -> bool:
    """True when a Textual recent enough for the akv widgets is importable."""
    try:
        from textual.content import Content  # noqa: F401
    except ImportError:
        return False
    return True
