# errmark/core/TextBuffer.py
"""TextBuffer.py
====================
TextBuffer — the line-addressable text model the highlighter works on.

The buffer keeps its content as a list of lines (no trailing newlines), the
same representation the viewer draws from. On top of that it provides:

- absolute character positions for line starts and ends (lines are joined by
  a single newline),
- cursor and scroll state (`cursor_y`, `cursor_x`, `scroll_top`,
  `visible_lines`),
- a change-notification hook called with `(change_start, change_end)` after
  every mutation,
- a liveness flag, cleared by `destroy()`, so deferred work can tell that the
  buffer is gone.
"""

import bisect
import logging
from typing import Callable, Iterable, Optional


ChangeListener = Callable[[int, int], None]


class TextBuffer:
    """In-memory text buffer with positions, cursor state and change hooks.

    Attributes:
        text (list[str]): Buffer lines; an empty buffer is `[""]`.
        cursor_y (int): Cursor row.
        cursor_x (int): Cursor column.
        scroll_top (int): First visible row.
        visible_lines (int): Number of rows the host currently renders.
        filename (Optional[str]): Backing file, if any.
        encoding (str): Encoding used to read the backing file.
        alive (bool): False once the buffer has been destroyed.
    """

    def __init__(
        self,
        lines: Optional[Iterable[str]] = None,
        filename: Optional[str] = None,
        visible_lines: int = 1,
    ) -> None:
        self.text: list[str] = list(lines) if lines is not None else []
        if not self.text:
            self.text = [""]
        self.cursor_y: int = 0
        self.cursor_x: int = 0
        self.scroll_top: int = 0
        self.visible_lines: int = max(1, visible_lines)
        self.filename: Optional[str] = filename
        self.encoding: str = "utf-8"
        self.alive: bool = True
        self._listeners: list[ChangeListener] = []
        self._offsets: Optional[list[int]] = None

    def __repr__(self) -> str:
        return (
            f"TextBuffer(filename={self.filename!r}, lines={len(self.text)}, "
            f"alive={self.alive})"
        )

    # --- Read access ---
    @property
    def line_count(self) -> int:
        return len(self.text)

    def is_empty(self) -> bool:
        return self.text == [""]

    def line(self, row: int) -> str:
        return self.text[row]

    def _line_offsets(self) -> list[int]:
        """Start offsets of every line, rebuilt lazily after mutations."""
        if self._offsets is None:
            offsets = []
            pos = 0
            for line in self.text:
                offsets.append(pos)
                pos += len(line) + 1
            self._offsets = offsets
        return self._offsets

    def line_start(self, row: int) -> int:
        """Absolute position of the first character of `row`."""
        if not 0 <= row < len(self.text):
            raise IndexError(f"Row {row} out of range for {len(self.text)} lines")
        return self._line_offsets()[row]

    def line_end(self, row: int) -> int:
        """Absolute position just past the last character of `row`."""
        return self.line_start(row) + len(self.text[row])

    def end_position(self) -> int:
        return self.line_end(len(self.text) - 1)

    def row_of(self, position: int) -> int:
        """Row containing absolute `position`, clamped to the buffer."""
        if position <= 0:
            return 0
        return min(bisect.bisect_right(self._line_offsets(), position) - 1, len(self.text) - 1)

    def clamp_row(self, row: int) -> int:
        return max(0, min(row, len(self.text) - 1))

    # --- Cursor ---
    def move_cursor_to(self, row: int, col: int = 0) -> None:
        """Place the cursor, clamped to valid coordinates."""
        self.cursor_y = self.clamp_row(row)
        self.cursor_x = max(0, min(col, len(self.text[self.cursor_y])))

    def cursor_position(self) -> int:
        return self.line_start(self.cursor_y) + self.cursor_x

    def _ensure_cursor_in_bounds(self) -> None:
        self.cursor_y = self.clamp_row(self.cursor_y)
        self.cursor_x = max(0, min(self.cursor_x, len(self.text[self.cursor_y])))
        self.scroll_top = max(0, min(self.scroll_top, len(self.text) - 1))

    # --- Change hooks ---
    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify_change(self, change_start: int, change_end: int) -> None:
        self._offsets = None
        self._ensure_cursor_in_bounds()
        for listener in list(self._listeners):
            try:
                listener(change_start, change_end)
            except Exception:
                logging.exception("Buffer change listener %r failed", listener)

    # --- Mutations ---
    def set_lines(self, lines: Iterable[str]) -> None:
        """Replace the whole content."""
        self.text = list(lines) or [""]
        self._offsets = None
        self._notify_change(0, self.end_position())

    def append_lines(self, lines: Iterable[str]) -> None:
        """Append lines at the end; an empty buffer is replaced."""
        new_lines = list(lines)
        if not new_lines:
            return
        if self.is_empty():
            self.text = new_lines
            change_start = 0
        else:
            change_start = self.end_position()
            self.text.extend(new_lines)
        self._offsets = None
        self._notify_change(change_start, self.end_position())

    def insert_lines(self, row: int, lines: Iterable[str]) -> None:
        """Insert lines before `row` (`row == line_count` appends)."""
        new_lines = list(lines)
        if not new_lines:
            return
        row = max(0, min(row, len(self.text)))
        if row == len(self.text):
            self.append_lines(new_lines)
            return
        change_start = self.line_start(row)
        self.text[row:row] = new_lines
        self._offsets = None
        self._notify_change(change_start, self.line_end(row + len(new_lines) - 1))

    def replace_line(self, row: int, new_text: str) -> None:
        change_start = self.line_start(row)
        self.text[row] = new_text
        self._offsets = None
        self._notify_change(change_start, change_start + len(new_text))

    def delete_lines(self, start_row: int, end_row: int) -> None:
        """Delete rows in `[start_row, end_row)`."""
        start_row = max(0, start_row)
        end_row = min(end_row, len(self.text))
        if start_row >= end_row:
            return
        change_start = self.line_start(start_row)
        del self.text[start_row:end_row]
        if not self.text:
            self.text = [""]
        self._offsets = None
        self._notify_change(change_start, change_start)

    def destroy(self) -> None:
        """Mark the buffer dead and drop all listeners."""
        self.alive = False
        self._listeners.clear()
        logging.debug("Buffer %r destroyed", self.filename)
