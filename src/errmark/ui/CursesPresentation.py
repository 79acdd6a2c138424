# errmark/ui/CursesPresentation.py
"""CursesPresentation.py
========================
The `PresentationPort` implementation used by the curses viewer.

Marks are kept per buffer, keyed by row, so `DrawScreen` can paint the
visible ones with a single lookup per screen row. Commands end up in the
viewer's command registry, where the `KeyBinder` and the command menu pick
them up. The match summary is shown in the `match_list` panel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from errmark.core.PresentationPort import HighlightMark, MatchEntry, PresentationPort


if TYPE_CHECKING:
    from errmark.core.TextBuffer import TextBuffer
    from errmark.core.Viewer import Viewer


@dataclass
class Command:
    """A user command exposed through the key map and the command menu."""

    name: str
    callback: Callable[[], Any]
    label: str
    key: Optional[str] = None


class CursesPresentation(PresentationPort):
    """Presentation port backed by a `Viewer`.

    Attributes:
        viewer (Viewer): The host owning the screen, status bar and panels.
    """

    def __init__(self, viewer: Viewer) -> None:
        self.viewer = viewer
        self._marks: dict[int, dict[int, HighlightMark]] = {}

    def marks_for(self, buffer: TextBuffer) -> dict[int, HighlightMark]:
        """Row-indexed marks currently shown for `buffer`."""
        return self._marks.get(id(buffer), {})

    def create_mark(self, buffer: TextBuffer, start: int, end: int, face: str) -> HighlightMark:
        row = buffer.row_of(start)
        mark = HighlightMark(row=row, start=start, end=end, face=face)
        self._marks.setdefault(id(buffer), {})[row] = mark
        self.viewer._force_full_redraw = True
        return mark

    def remove_mark(self, buffer: TextBuffer, mark: HighlightMark) -> None:
        buffer_marks = self._marks.get(id(buffer))
        if not buffer_marks:
            return
        if buffer_marks.get(mark.row) == mark:
            del buffer_marks[mark.row]
            self.viewer._force_full_redraw = True
        if not buffer_marks:
            self._marks.pop(id(buffer), None)

    def move_cursor(self, buffer: TextBuffer, position: int) -> None:
        """Place the cursor at `position` and scroll so the row sits in the upper third."""
        row = buffer.row_of(position)
        buffer.move_cursor_to(row, position - buffer.line_start(row))

        text_area_height = max(1, buffer.visible_lines)
        desired_scroll_top = buffer.cursor_y - (text_area_height // 3)
        max_scroll_possible = max(0, buffer.line_count - text_area_height)
        buffer.scroll_top = max(0, min(desired_scroll_top, max_scroll_possible))
        self.viewer._force_full_redraw = True
        logging.debug(
            "move_cursor: cursor=(%d,%d) scroll_top=%d",
            buffer.cursor_y,
            buffer.cursor_x,
            buffer.scroll_top,
        )

    def register_command(
        self,
        name: str,
        callback: Callable[[], Any],
        label: str,
        key: Optional[str] = None,
    ) -> None:
        if name in self.viewer.commands:
            logging.warning("Command '%s' registered twice; replacing it.", name)
        self.viewer.commands[name] = Command(name, callback, label, key)

    def show_matches(self, buffer: TextBuffer, title: str, entries: Iterable[MatchEntry]) -> None:
        entries = list(entries)
        if self.viewer.panel_manager.is_panel_active():
            self.viewer.panel_manager.close_active_panel()
        self.viewer.panel_manager.show_panel("match_list", title=title, entries=entries)
