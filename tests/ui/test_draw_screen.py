# tests/ui/test_draw_screen.py
"""Unit tests for the `DrawScreen` renderer.
===========================================

This module validates:

- The left-cut helper that never splits wide glyphs.
- Status bar composition (file, encoding, line, mark count, follow state).
- Line number gutter and text drawing with horizontal scroll.
- Painting highlight marks over visible rows only.
- Cursor positioning and the too-small-window message.

A `MagicMock` viewer carries a real `TextBuffer` and a real
`CursesPresentation`, so mark lookups behave as in the application.
"""

import curses
from unittest.mock import MagicMock, call

import pytest

from errmark.core.TextBuffer import TextBuffer
from errmark.ui.CursesPresentation import CursesPresentation
from errmark.ui.DrawScreen import DrawScreen


@pytest.fixture
def mock_viewer() -> MagicMock:
    """A viewer double with a 6-line buffer on a 10x40 screen."""
    viewer = MagicMock()
    viewer.stdscr = MagicMock()
    viewer.stdscr.getmaxyx.return_value = (10, 40)
    viewer.buffer = TextBuffer(
        ["INFO a", "ERROR b", "INFO c", "WARNING d", "INFO e", "INFO f"],
        filename="/var/log/app.log",
        visible_lines=8,
    )
    viewer.scroll_left = 0
    viewer.show_line_numbers = True
    viewer.follow_file = False
    viewer.status_message = "Ready"
    viewer.last_window_size = (10, 40)
    viewer._force_full_redraw = False
    viewer.colors = {"default": 0, "error_line": 512, "line_number": 768}
    viewer.highlighter.enabled = True
    viewer.highlighter.marks = {}
    viewer.presentation = CursesPresentation(viewer)
    return viewer


@pytest.fixture
def drawer(mock_viewer: MagicMock) -> DrawScreen:
    return DrawScreen(mock_viewer, {})


def _mark(viewer: MagicMock, row: int) -> None:
    buf = viewer.buffer
    viewer.presentation.create_mark(buf, buf.line_start(row), buf.line_end(row), "error_line")


# ====== Helpers ======


def test_init_creates_status_pair(drawer: DrawScreen) -> None:
    curses.init_pair.assert_called_with(15, 255, 236)
    assert drawer.colors["status"] == 15 << 8


def test_safe_cut_left_skips_whole_glyphs(drawer: DrawScreen) -> None:
    assert drawer._safe_cut_left("abcdef", 2) == "cdef"
    # A double-width glyph is dropped entirely even if only one cell was asked for.
    assert drawer._safe_cut_left("日本x", 1) == "本x"
    assert drawer._safe_cut_left("abc", 0) == "abc"


# ====== Status bar ======


class TestStatusBar:
    def test_left_text(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.buffer.move_cursor_to(2)
        assert drawer._status_left_text() == " app.log | UTF-8 | Ln 3/6 "

    def test_left_text_without_file(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.buffer.filename = None
        assert drawer._status_left_text().startswith(" No Name |")

    def test_right_text_counts_marks(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.highlighter.marks = {0: object(), 10: object()}
        mock_viewer.follow_file = True
        assert drawer._status_right_text() == " Errors: 2 marked | follow "

    def test_right_text_when_disabled(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.highlighter.enabled = False
        assert drawer._status_right_text() == " Errors: off "

    def test_status_line_fills_width(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getmaxyx.return_value = (10, 80)
        drawer._draw_status_bar()

        y, x, text, attr = mock_viewer.stdscr.addstr.call_args.args
        assert (y, x) == (9, 0)
        assert len(text) == 79
        assert "Ready" in text
        assert attr == drawer.colors["status"]

    def test_message_dropped_when_no_room(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.status_message = "a long message that cannot fit"
        drawer._draw_status_bar()

        text = mock_viewer.stdscr.addstr.call_args.args[2]
        assert "message" not in text
        assert len(text) == 39

    def test_error_message_is_highlighted(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getmaxyx.return_value = (10, 80)
        mock_viewer.status_message = "Command error: x"
        drawer._draw_status_bar()

        mock_viewer.stdscr.chgat.assert_called_once()
        assert mock_viewer.stdscr.chgat.call_args.args[-1] == 512


# ====== Gutter, text and marks ======


class TestDrawing:
    def test_line_numbers(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        drawer._draw_line_numbers()

        assert drawer._text_start_x == 2
        mock_viewer.stdscr.addstr.assert_any_call(0, 0, "1 ", 768)
        mock_viewer.stdscr.addstr.assert_any_call(5, 0, "6 ", 768)
        mock_viewer.stdscr.addstr.assert_any_call(6, 0, "  ", 768)

    def test_line_numbers_hidden(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.show_line_numbers = False
        drawer._draw_line_numbers()
        assert drawer._text_start_x == 0
        mock_viewer.stdscr.addstr.assert_not_called()

    def test_text_honours_scroll(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.buffer.scroll_top = 1
        mock_viewer.scroll_left = 2
        drawer._text_start_x = 2

        drawer._draw_text()

        mock_viewer.stdscr.addstr.assert_any_call(0, 2, "ROR b", 0)
        mock_viewer.stdscr.addstr.assert_any_call(2, 2, "RNING d", 0)

    def test_long_lines_are_truncated(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.buffer.set_lines(["x" * 100])
        drawer._text_start_x = 0
        drawer._draw_text()
        text = mock_viewer.stdscr.addstr.call_args.args[2]
        assert len(text) == 40

    def test_marks_painted_on_visible_rows(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        _mark(mock_viewer, 1)
        _mark(mock_viewer, 3)
        mock_viewer.buffer.scroll_top = 1
        drawer._text_start_x = 2

        drawer._draw_marks()

        assert mock_viewer.stdscr.chgat.call_args_list == [
            call(0, 2, 38, 512),
            call(2, 2, 38, 512),
        ]

    def test_marks_outside_viewport_are_skipped(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        _mark(mock_viewer, 1)
        mock_viewer.buffer.scroll_top = 2
        drawer._draw_marks()
        mock_viewer.stdscr.chgat.assert_not_called()

    def test_unknown_face_falls_back_to_reverse(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        buf = mock_viewer.buffer
        mock_viewer.presentation.create_mark(buf, buf.line_start(0), buf.line_end(0), "nope")
        drawer._draw_marks()
        assert mock_viewer.stdscr.chgat.call_args.args[-1] == curses.A_REVERSE


# ====== draw() and cursor ======


class TestDraw:
    def test_full_frame(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        _mark(mock_viewer, 1)
        mock_viewer._force_full_redraw = True

        drawer.draw()

        mock_viewer.stdscr.erase.assert_called_once()
        mock_viewer.stdscr.hline.assert_called_once()
        mock_viewer.stdscr.noutrefresh.assert_called_once()
        mock_viewer.stdscr.chgat.assert_any_call(1, 2, 38, 512)

    def test_small_window(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getmaxyx.return_value = (3, 60)
        drawer.draw()

        mock_viewer.stdscr.clear.assert_called_once()
        assert mock_viewer.stdscr.addstr.call_args.args[2] == (
            "Window too small (60x3). Minimum is 20x5."
        )

    def test_draw_error_goes_to_status(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.noutrefresh.side_effect = RuntimeError("tty gone")
        drawer.draw()
        mock_viewer._set_status_message.assert_called_once()
        assert "Draw error" in mock_viewer._set_status_message.call_args.args[0]

    def test_position_cursor(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        drawer._text_start_x = 2
        mock_viewer.buffer.move_cursor_to(3, 4)

        drawer._position_cursor()

        mock_viewer.stdscr.move.assert_called_with(3, 6)

    def test_position_cursor_scrolls_into_view(self, drawer: DrawScreen, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getmaxyx.return_value = (5, 40)
        mock_viewer.buffer.move_cursor_to(5)

        drawer._position_cursor()

        assert mock_viewer.buffer.scroll_top == 3
        assert mock_viewer.stdscr.move.call_args.args[0] == 2
