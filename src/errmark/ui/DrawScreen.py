# errmark/ui/DrawScreen.py
"""DrawScreen.py
========================
DrawScreen renders the viewer with curses.

It is responsible for:
- drawing line numbers,
- displaying the visible lines with horizontal scrolling,
- painting highlight marks over whole rows,
- rendering the separator and the status bar,
- positioning the cursor.

Wide Unicode characters are measured with `wcwidth` and never split in half.
"""

import curses
import logging
import os
from typing import TYPE_CHECKING, Any

from errmark.utils.utils import (
    CALM_BG_IDX,
    WHITE_FG_IDX,
    get_char_width,
    get_string_width,
    truncate_to_width,
)


if TYPE_CHECKING:
    from errmark.core.Viewer import Viewer


## ================= class DrawScreen ==============================
class DrawScreen:
    """DrawScreen Class
    =========================
    Renders the viewer: gutter, text area, marks, separator and status bar.

    Attributes:
        MIN_WINDOW_WIDTH (int): Minimum usable terminal width.
        MIN_WINDOW_HEIGHT (int): Minimum usable terminal height.
        viewer (Viewer): The viewer being drawn.
        config (dict[str, Any]): Application configuration.
        stdscr (curses.window): The main curses window.
        colors (dict[str, int]): Semantic colour name -> curses attribute.
        _text_start_x (int): Column where the text area begins.
    """

    MIN_WINDOW_WIDTH = 20
    MIN_WINDOW_HEIGHT = 5

    def __init__(self, viewer: "Viewer", config: dict[str, Any]) -> None:
        self.viewer = viewer
        self.config = config
        self.stdscr = viewer.stdscr
        self.colors = viewer.colors
        self._text_start_x: int = 0

        self._init_status_colors()

    @property
    def buffer(self):
        return self.viewer.buffer

    def _init_status_colors(self) -> None:
        """Creates the status bar pair: white on xterm-236 where available."""
        if not curses.has_colors():
            return
        try:
            curses.use_default_colors()
        except curses.error:
            pass

        pair_norm = 15
        max_colors = curses.COLORS
        if max_colors >= 256:
            fg_idx, bg_idx = WHITE_FG_IDX, CALM_BG_IDX
        elif max_colors >= 16:
            fg_idx, bg_idx = curses.COLOR_WHITE, curses.COLOR_BLACK
        else:
            fg_idx, bg_idx = curses.COLOR_WHITE, -1

        try:
            curses.init_pair(pair_norm, fg_idx, bg_idx)
        except curses.error as exc:
            logging.warning("init_pair failed (%s) – roll back to A_REVERSE", exc)
            self.colors["status"] = curses.A_REVERSE
            return
        self.colors["status"] = curses.color_pair(pair_norm)

    def _needs_full_redraw(self) -> bool:
        resized = self.viewer.last_window_size != self.stdscr.getmaxyx()
        return resized or self.viewer._force_full_redraw

    def _safe_cut_left(self, s: str, cells_to_skip: int) -> str:
        """Drops `cells_to_skip` screen cells from the left without splitting a wide glyph."""
        skipped = 0
        res = []
        for ch in s:
            w = get_char_width(ch)
            if skipped < cells_to_skip:
                skipped += w
                continue
            res.append(ch)
        return "".join(res)

    def draw(self) -> None:
        """The main screen drawing method."""
        try:
            height, width = self.stdscr.getmaxyx()

            if height < self.MIN_WINDOW_HEIGHT or width < self.MIN_WINDOW_WIDTH:
                self._show_small_window_error(height, width)
                return

            if self._needs_full_redraw():
                self.stdscr.erase()

            self._draw_line_numbers()
            self._draw_text()
            self._draw_marks()

            separator_y = height - 2
            try:
                char_with_attr = curses.ACS_HLINE | self.colors.get("line_number", curses.A_DIM)
                self.stdscr.hline(separator_y, 0, char_with_attr, width)
            except curses.error:
                pass

            self._draw_status_bar()
            self.stdscr.noutrefresh()

        except curses.error as e:
            logging.error(f"Curses error in DrawScreen.draw(): {e}", exc_info=True)
            self.viewer._set_status_message(f"Draw error: {str(e)[:80]}...")
        except Exception as e:
            logging.exception("Unexpected error in DrawScreen.draw()")
            self.viewer._set_status_message(f"Draw error: {str(e)[:80]}...")

    def _show_small_window_error(self, height: int, width: int) -> None:
        msg = (
            f"Window too small ({width}x{height}). "
            f"Minimum is {self.MIN_WINDOW_WIDTH}x{self.MIN_WINDOW_HEIGHT}."
        )
        try:
            self.stdscr.clear()
            start_col = max(0, (width - len(msg)) // 2)
            self.stdscr.addstr(height // 2, start_col, msg[: max(0, width - 1)])
        except curses.error:
            pass

    def _draw_line_numbers(self) -> None:
        """Draws the 1-based line number gutter."""
        if not self.viewer.show_line_numbers:
            self._text_start_x = 0
            return

        _height, width = self.stdscr.getmaxyx()
        max_line_num_digits = len(str(max(1, self.buffer.line_count)))
        line_num_width = max_line_num_digits + 1

        if line_num_width >= width:
            logging.warning(
                f"Window too narrow to draw line numbers ({width} vs {line_num_width})"
            )
            self._text_start_x = 0
            return

        self._text_start_x = line_num_width
        line_num_color = self.colors.get("line_number", curses.A_DIM)
        for screen_row in range(self.buffer.visible_lines):
            line_idx = self.buffer.scroll_top + screen_row
            if line_idx < self.buffer.line_count:
                line_num_str = f"{line_idx + 1:>{max_line_num_digits}} "
            else:
                line_num_str = " " * line_num_width
            try:
                self.stdscr.addstr(screen_row, 0, line_num_str, line_num_color)
            except curses.error as e:
                logging.error(f"Curses error drawing line number at ({screen_row}, 0): {e}")

    def _draw_text(self) -> None:
        """Draws every visible line, clipped to the window and shifted by scroll_left."""
        _height, width = self.stdscr.getmaxyx()
        avail = width - self._text_start_x
        default_attr = self.colors.get("default", curses.A_NORMAL)

        for screen_row in range(self.buffer.visible_lines):
            line_idx = self.buffer.scroll_top + screen_row
            try:
                self.stdscr.move(screen_row, self._text_start_x)
                self.stdscr.clrtoeol()
            except curses.error as e:
                logging.error("Curses error while clearing line %d: %s", screen_row, e)
                continue

            if line_idx >= self.buffer.line_count or avail <= 0:
                continue

            line = self.buffer.line(line_idx).expandtabs(4)
            visible_part = self._safe_cut_left(line, self.viewer.scroll_left)
            text_to_draw = truncate_to_width(visible_part, avail)
            if not text_to_draw:
                continue
            try:
                self.stdscr.addstr(screen_row, self._text_start_x, text_to_draw, default_attr)
            except curses.error as e:
                logging.debug(
                    "addstr failed at (%d,%d): %s", screen_row, self._text_start_x, e
                )

    def _draw_marks(self) -> None:
        """Repaints the text area of every visible marked row with the mark's face."""
        marks = self.viewer.presentation.marks_for(self.buffer)
        if not marks:
            return

        _height, width = self.stdscr.getmaxyx()
        span = width - self._text_start_x
        if span <= 0:
            return

        first = self.buffer.scroll_top
        last = min(first + self.buffer.visible_lines, self.buffer.line_count)
        for row in range(first, last):
            mark = marks.get(row)
            if mark is None:
                continue
            attr = self.colors.get(mark.face, curses.A_REVERSE)
            try:
                self.stdscr.chgat(row - first, self._text_start_x, span, attr)
            except curses.error as e:
                logging.warning(f"Curses error highlighting row {row}: {e}")

    def _status_left_text(self) -> str:
        buffer = self.buffer
        fname = os.path.basename(buffer.filename) if buffer.filename else "No Name"
        return (
            f" {fname} | {buffer.encoding.upper()} | "
            f"Ln {buffer.cursor_y + 1}/{buffer.line_count} "
        )

    def _status_right_text(self) -> str:
        highlighter = self.viewer.highlighter
        if not highlighter.enabled:
            return " Errors: off "
        follow = " | follow" if self.viewer.follow_file else ""
        return f" Errors: {len(highlighter.marks)} marked{follow} "

    def _draw_status_bar(self) -> None:
        """Single-line status bar at the bottom of the screen.

        Left: file, encoding, cursor line / line count.
        Middle: the last status message.
        Right: number of marked lines in the scanned window and follow state.
        """
        try:
            height, width = self.stdscr.getmaxyx()
            if height <= 2:
                return

            y = height - 1
            c_norm = self.colors.get("status", curses.A_REVERSE)
            c_err = self.colors.get("error_line", c_norm | curses.A_BOLD)

            left = self._status_left_text()
            right = self._status_right_text()
            left_w = get_string_width(left)
            right_w = get_string_width(right)

            msg = self.viewer.status_message or "Ready"
            spacing = width - left_w - right_w
            if spacing < get_string_width(msg):
                msg = truncate_to_width(msg, max(0, spacing - 1))

            msg_w = get_string_width(msg)
            pad_left = max(0, (spacing - msg_w) // 2)
            pad_right = max(0, spacing - msg_w - pad_left)
            line = truncate_to_width(left + " " * pad_left + msg + " " * pad_right + right, width - 1)
            line += " " * max(0, width - 1 - get_string_width(line))
            self.stdscr.addstr(y, 0, line, c_norm)

            if "error" in msg.lower() and msg_w:
                self.stdscr.chgat(y, left_w + pad_left, msg_w, c_err)

        except curses.error:
            pass
        except Exception:
            logging.exception("Unexpected error in _draw_status_bar")

    def _position_cursor(self) -> None:
        """Moves the terminal cursor to the buffer cursor, keeping it on screen."""
        height, width = self.stdscr.getmaxyx()
        if height <= 2:
            return

        buffer = self.buffer
        text_area_height = max(1, height - 2)
        max_screen_row = text_area_height - 1
        if buffer.cursor_y < buffer.scroll_top:
            buffer.scroll_top = buffer.cursor_y
        elif buffer.cursor_y > buffer.scroll_top + max_screen_row:
            buffer.scroll_top = buffer.cursor_y - max_screen_row

        current_line = buffer.line(buffer.cursor_y)
        cursor_display_width = get_string_width(current_line[: buffer.cursor_x].expandtabs(4))

        final_screen_y = max(0, min(buffer.cursor_y - buffer.scroll_top, max_screen_row))
        final_screen_x = self._text_start_x + cursor_display_width - self.viewer.scroll_left
        final_screen_x = max(self._text_start_x, min(final_screen_x, width - 1))

        try:
            self.stdscr.move(final_screen_y, final_screen_x)
        except curses.error as e:
            logging.warning(
                f"Curses error positioning cursor at ({final_screen_y}, {final_screen_x}): {e}"
            )
