# errmark/ui/panels.py
"""panels.py
=========

Non-blocking curses panels shown on top of the viewer.

Key Components:
---------------
- BasePanel: lifecycle and interface shared by all panels (open, close,
  draw, handle_key, resize).
- MatchListPanel: the match summary. Lists every error line of the buffer
  with its line number; Enter jumps to the selected line.
- CommandMenuPanel: lists the registered commands with their keys; Enter runs
  the selected command.

Panels are created and switched by `PanelManager`, which routes keys to the
active panel while it has focus.
"""

from __future__ import annotations

import curses
from typing import TYPE_CHECKING, Any, Optional

from wcwidth import wcswidth

from errmark.utils.logging_config import logger
from errmark.utils.utils import truncate_to_width


if TYPE_CHECKING:
    from errmark.core.PresentationPort import MatchEntry
    from errmark.core.Viewer import Viewer

CursesWindow = Any

ENTER_KEYS = (curses.KEY_ENTER, 10, 13, "\n")
CLOSE_KEYS = (27, ord("q"), curses.KEY_F10)


# ==================== BasePanel Class (Non-Blocking) ====================
class BasePanel:
    """A base class for non-blocking, interactive UI panels in the viewer."""

    def __init__(self, stdscr: CursesWindow, viewer: Viewer, **kwargs: Any) -> None:
        """Initialize the base attributes for any panel."""
        self.stdscr: CursesWindow = stdscr
        self.viewer: Viewer = viewer
        self.visible: bool = False
        self.term_height, self.term_width = self.stdscr.getmaxyx()
        self.win: Optional[CursesWindow] = None
        logger.debug(f"Base class initialized for panel '{self.__class__.__name__}'.")

    def resize(self) -> None:
        """Recalculates terminal dimensions. Extended in subclasses."""
        self.term_height, self.term_width = self.stdscr.getmaxyx()
        logger.info(
            f"Resize event in panel '{self.__class__.__name__}'. "
            f"New dims: {self.term_width}x{self.term_height}"
        )

    def open(self) -> None:
        """Make the panel visible and mark it as active."""
        self.visible = True
        logger.info(f"Panel '{self.__class__.__name__}' opened.")

    def close(self) -> None:
        """Hide the panel and mark it as inactive."""
        self.visible = False
        logger.info(f"Panel '{self.__class__.__name__}' closed.")

    def draw(self) -> None:
        """Draw one frame of the panel's content and chrome."""
        raise NotImplementedError(
            "The 'draw' method must be implemented in a child class."
        )

    def handle_key(self, key: Any) -> bool:
        """Handles a single key press directed to the panel.

        Returns:
            True if the panel consumed the key event.

        Raises:
            NotImplementedError: If the subclass does not implement this method.
        """
        raise NotImplementedError(
            "The 'handle_key' method must be implemented in a child class."
        )


# ==================== ListPanel Class ====================
class ListPanel(BasePanel):
    """A boxed, scrollable single-selection list along the bottom of the screen.

    Subclasses provide `_items()` (the display labels) and `_activate(index)`.

    Attributes:
        title (str): Shown centred in the top border.
        idx (int): Index of the selected item.
        top (int): Index of the first item in view.
    """

    HEIGHT_RATIO = 0.4
    hint = "Enter:Select  q/Esc:Close"

    def __init__(self, stdscr: CursesWindow, viewer: Viewer, title: str = "", **kwargs: Any) -> None:
        super().__init__(stdscr, viewer, **kwargs)
        self.title = title
        self.idx = 0
        self.top = 0
        self.attr_border = self.viewer.colors.get("status", curses.A_BOLD)
        self.attr_item = self.viewer.colors.get("default", curses.A_NORMAL)
        self.attr_sel = self.viewer.colors.get("panel_selection", curses.A_REVERSE | curses.A_BOLD)
        self.attr_dim = self.viewer.colors.get("line_number", curses.A_DIM)
        self._create_window()

    def _create_window(self) -> None:
        self.height = max(4, min(self.term_height - 1, int(self.term_height * self.HEIGHT_RATIO)))
        self.width = self.term_width
        self.start_y = max(0, self.term_height - 1 - self.height)
        self.win = curses.newwin(self.height, self.width, self.start_y, 0)
        self.win.keypad(True)

    def resize(self) -> None:
        super().resize()
        self._create_window()

    def open(self) -> None:
        super().open()
        curses.curs_set(0)

    def close(self) -> None:
        super().close()
        curses.curs_set(1)
        self.viewer.focus = "viewer"
        self.viewer._force_full_redraw = True

    def _items(self) -> list[str]:
        raise NotImplementedError("The '_items' method must be implemented in a child class.")

    def _activate(self, index: int) -> None:
        raise NotImplementedError("The '_activate' method must be implemented in a child class.")

    @property
    def viewport_height(self) -> int:
        return max(1, self.height - 3)

    def _move_selection(self, delta: int) -> None:
        count = len(self._items())
        if not count:
            return
        self.idx = max(0, min(count - 1, self.idx + delta))
        if self.idx < self.top:
            self.top = self.idx
        elif self.idx >= self.top + self.viewport_height:
            self.top = self.idx - self.viewport_height + 1

    def handle_key(self, key: Any) -> bool:
        if key in (curses.KEY_UP, ord("k")):
            self._move_selection(-1)
        elif key in (curses.KEY_DOWN, ord("j")):
            self._move_selection(1)
        elif key == curses.KEY_PPAGE:
            self._move_selection(-self.viewport_height)
        elif key == curses.KEY_NPAGE:
            self._move_selection(self.viewport_height)
        elif key == curses.KEY_HOME:
            self._move_selection(-len(self._items()))
        elif key == curses.KEY_END:
            self._move_selection(len(self._items()))
        elif key in ENTER_KEYS:
            if self._items():
                self._activate(self.idx)
        elif key in CLOSE_KEYS:
            self.viewer.panel_manager.close_active_panel()
        elif key == curses.KEY_RESIZE:
            self.viewer.handle_resize()
        else:
            return False
        return True

    def _draw_frame(self) -> None:
        assert self.win is not None, "self.win should not be None when drawing frame"
        self.win.attron(self.attr_border | curses.A_BOLD)
        self.win.border()
        title_display = f" {truncate_to_width(self.title, max(0, self.width - 6))} "
        if wcswidth(title_display) < self.width - 2:
            self.win.addstr(0, max(1, (self.width - wcswidth(title_display)) // 2), title_display)
        self.win.attroff(self.attr_border | curses.A_BOLD)

    def draw(self) -> None:
        if not self.visible or self.win is None:
            return
        if self.height < 4 or self.width < 4:
            return

        self.win.erase()
        self._draw_frame()

        items = self._items()
        inner_w = self.width - 2
        for n, label in enumerate(items[self.top : self.top + self.viewport_height]):
            is_selected = (self.top + n) == self.idx
            attr = self.attr_sel if is_selected else self.attr_item
            text = truncate_to_width(label, inner_w)
            text += " " * max(0, inner_w - wcswidth(text))
            try:
                self.win.addstr(n + 1, 1, text, attr)
            except curses.error:
                pass

        if len(self.hint) < self.width - 4:
            try:
                self.win.addnstr(self.height - 2, 2, self.hint, self.width - 4, self.attr_dim)
            except curses.error:
                pass

        self.win.noutrefresh()


# ==================== MatchListPanel Class ====================
class MatchListPanel(ListPanel):
    """Summary of every error line in the buffer.

    Attributes:
        entries (list[MatchEntry]): `(row, text)` pairs in buffer order.
    """

    def __init__(
        self,
        stdscr: CursesWindow,
        viewer: Viewer,
        title: str = "",
        entries: Optional[list[MatchEntry]] = None,
        **kwargs: Any,
    ) -> None:
        self.entries: list[MatchEntry] = list(entries or [])
        super().__init__(stdscr, viewer, title=title, **kwargs)
        self._preselect_cursor_row()

    def _preselect_cursor_row(self) -> None:
        """Select the first entry at or after the cursor row."""
        cursor_row = self.viewer.buffer.cursor_y
        for i, entry in enumerate(self.entries):
            if entry.row >= cursor_row:
                self._move_selection(i - self.idx)
                return

    def _items(self) -> list[str]:
        width = len(str(max((e.row + 1 for e in self.entries), default=1)))
        return [f"{entry.row + 1:>{width}}: {entry.text}" for entry in self.entries]

    def _activate(self, index: int) -> None:
        entry = self.entries[index]
        self.viewer.goto_line(entry.row)
        self.viewer.panel_manager.close_active_panel()


# ==================== CommandMenuPanel Class ====================
class CommandMenuPanel(ListPanel):
    """Lists the registered commands; Enter closes the menu and runs one."""

    def __init__(self, stdscr: CursesWindow, viewer: Viewer, **kwargs: Any) -> None:
        kwargs.setdefault("title", "Commands")
        super().__init__(stdscr, viewer, **kwargs)
        self.names: list[str] = [
            name for name in self.viewer.commands if name != "show_menu"
        ]

    def _items(self) -> list[str]:
        labels = []
        for name in self.names:
            command = self.viewer.commands[name]
            key_hint = self.viewer.key_hint(name)
            labels.append(f"{command.label:<32} {key_hint}")
        return labels

    def _activate(self, index: int) -> None:
        name = self.names[index]
        self.viewer.panel_manager.close_active_panel()
        self.viewer.run_command(name)
