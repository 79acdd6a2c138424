# errmark/core/PatternSet.py
"""PatternSet.py
====================
The fixed collection of error-indicating matchers used by the highlighter.

A `PatternSet` is built once from an ordered sequence of plain strings and/or
precompiled regular expressions and folded into a single union regex. Plain
strings are matched literally. The compiled union holds no per-call state, so
one instance can be shared by any number of scans.
"""

import re
from typing import Iterable, Optional, Pattern, Union


Matcher = Union[str, Pattern[str]]

# Substrings that mark a log line as an error or warning.
DEFAULT_ERROR_PATTERNS: tuple[str, ...] = (
    "ERROR",
    "WARNING",
    "SEVERE",
    "Caused by:",
    "nested exception is:",
)


class PatternSet:
    """Immutable union matcher over an ordered sequence of patterns.

    An empty set (no matchers, or only empty strings) is falsy and never
    matches.

    Attributes:
        sources (tuple[str, ...]): Regex source of every matcher, in order.
    """

    __slots__ = ("_sources", "_regex")

    def __init__(self, matchers: Iterable[Matcher] = DEFAULT_ERROR_PATTERNS) -> None:
        sources: list[str] = []
        for matcher in matchers:
            if isinstance(matcher, str):
                if matcher:
                    sources.append(re.escape(matcher))
            elif isinstance(matcher, re.Pattern):
                sources.append(matcher.pattern)
            else:
                raise TypeError(
                    f"Unsupported matcher type: {type(matcher).__name__}. Expected str or re.Pattern."
                )

        self._sources: tuple[str, ...] = tuple(sources)
        self._regex: Optional[Pattern[str]] = (
            re.compile("|".join(f"(?:{src})" for src in sources)) if sources else None
        )

    @property
    def sources(self) -> tuple[str, ...]:
        return self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __bool__(self) -> bool:
        return self._regex is not None

    def __repr__(self) -> str:
        return f"PatternSet({list(self._sources)!r})"

    def search(self, text: str) -> Optional[re.Match[str]]:
        """Return the first match in `text`, or None."""
        if self._regex is None:
            return None
        return self._regex.search(text)

    def matches(self, text: str) -> bool:
        """True if `text` contains at least one pattern occurrence."""
        return self.search(text) is not None
