# src/errmark/core/__init__.py
"""Public facade for errmark.core: re-export main classes from CamelCase modules.

Keeps the CamelCase file names (Highlighter.py, TextBuffer.py, ...),
but provides flat imports for convenience and stability.
The curses host is imported directly: `from errmark.core.Viewer import Viewer`.
"""

# Re-export classes/symbols from CamelCase modules
from .PatternSet import DEFAULT_ERROR_PATTERNS, PatternSet  # noqa: F401
from .PresentationPort import (  # noqa: F401
    HighlightMark,
    LinePosition,
    MatchEntry,
    PresentationPort,
)
from .Scheduler import DeferredScheduler  # noqa: F401
from .TextBuffer import TextBuffer  # noqa: F401
from .Highlighter import (  # noqa: F401
    Direction,
    ErrorHighlighter,
    collect_all_matches,
    compute_viewport_bounds,
    scan_and_mark,
)


__all__ = [
    "DEFAULT_ERROR_PATTERNS",
    "PatternSet",
    "HighlightMark",
    "LinePosition",
    "MatchEntry",
    "PresentationPort",
    "DeferredScheduler",
    "TextBuffer",
    "Direction",
    "ErrorHighlighter",
    "collect_all_matches",
    "compute_viewport_bounds",
    "scan_and_mark",
]
