# errmark/core/PresentationPort.py
"""PresentationPort.py
======================
The seam between the highlighting core and whatever host displays the buffer.

The core never touches curses (or any other UI toolkit) directly. It asks the
host, through a `PresentationPort`, to create and remove marks, move the
cursor, register user commands and present a list of matches. The terminal
viewer implements this port in `errmark.ui.CursesPresentation`; tests use a
recording implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable, NamedTuple, Optional


if TYPE_CHECKING:
    from errmark.core.TextBuffer import TextBuffer


@dataclass(frozen=True)
class HighlightMark:
    """A tagged highlight over the half-open position range `[start, end)`.

    Marks compare by value, so a rebuilt mark for the same line equals the
    one it replaces.
    """

    row: int
    start: int
    end: int
    face: str = "error_line"


class LinePosition(NamedTuple):
    """A line located by navigation: its row and the offset of its start."""

    row: int
    offset: int


class MatchEntry(NamedTuple):
    """One entry of the match summary: the row and the full matched line."""

    row: int
    text: str


class PresentationPort(ABC):
    """Operations the highlighting core needs from its host."""

    @abstractmethod
    def create_mark(self, buffer: TextBuffer, start: int, end: int, face: str) -> HighlightMark:
        """Create a visual mark over `[start, end)` in `buffer` and return it."""

    @abstractmethod
    def remove_mark(self, buffer: TextBuffer, mark: HighlightMark) -> None:
        """Remove a mark previously returned by `create_mark`."""

    @abstractmethod
    def move_cursor(self, buffer: TextBuffer, position: int) -> None:
        """Move the buffer's cursor to absolute `position`."""

    @abstractmethod
    def register_command(
        self,
        name: str,
        callback: Callable[[], Any],
        label: str,
        key: Optional[str] = None,
    ) -> None:
        """Expose `callback` to the user as command `name`."""

    @abstractmethod
    def show_matches(self, buffer: TextBuffer, title: str, entries: Iterable[MatchEntry]) -> None:
        """Present `entries` as a list in a separate summary view."""
