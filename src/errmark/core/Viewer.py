# errmark/core/Viewer.py
"""errmark.core.Viewer
============================
Viewer: the curses host for the error highlighter.

The Viewer owns one `TextBuffer` and wires it to:

- an `ErrorHighlighter` (through `CursesPresentation`, the curses
  implementation of the presentation port),
- a `DeferredScheduler` polled by the main loop for debounced re-scans,
- `DrawScreen` for rendering, `KeyBinder` for input and `PanelManager` for
  the match list and command menu.

It opens a file (encoding detected with chardet) and, in follow mode, reloads
it as it grows so new error lines show up like in `tail -f`.

The main loop is single-threaded: read a key (with a short timeout), dispatch
it, run due deferred callbacks (debounced re-scans, follow-mode reloads),
keep the scanned window over the viewport, and redraw when something changed.
"""

import curses
import logging
import os
from typing import Any, Optional

from errmark.core.Highlighter import ErrorHighlighter
from errmark.core.Scheduler import DeferredScheduler, ScheduledCall
from errmark.core.TextBuffer import TextBuffer
from errmark.ui.CursesPresentation import Command, CursesPresentation
from errmark.ui.DrawScreen import DrawScreen
from errmark.ui.KeyBinder import KeyBinder
from errmark.ui.PanelManager import PanelManager
from errmark.utils.logging_config import logger
from errmark.utils.utils import hex_to_xterm, read_text_file


## ==================== Viewer Class ====================
class Viewer:
    """Class Viewer
    =========================
    Terminal log viewer with error-line highlighting.

    Attributes:
        stdscr (curses.window): The main curses window.
        config (dict): Merged application configuration.
        buffer (TextBuffer): The displayed text.
        scheduler (DeferredScheduler): Deferred callbacks run by the main loop.
        presentation (CursesPresentation): Presentation port for the highlighter.
        highlighter (ErrorHighlighter): The error-line highlighting mode.
        commands (dict[str, Command]): Registered user commands by name.
        colors (dict[str, int]): Semantic colour name -> curses attribute.
        status_message (str): Text shown in the middle of the status bar.
        focus (str): "viewer" or "panel".
        follow_file (bool): Reload the file as it grows.
        running (bool): Main loop flag.
    """

    # --- Status message ---
    def _set_status_message(self, message_for_statusbar: str) -> None:
        message_for_statusbar = str(message_for_statusbar)
        if self.status_message != message_for_statusbar:
            self.status_message = message_for_statusbar
            logging.debug(f"Status message set to: '{self.status_message}'")

    # -- Initialization and Setup ---
    def __init__(self, stdscr: "curses.window", config: dict[str, Any]) -> None:
        """Creates and fully initializes a `Viewer` instance."""
        self.stdscr = stdscr
        self.config: dict[str, Any] = config

        self._initialize_state()
        self._initialize_components()
        self._setup_environment()

        self.handle_resize()
        logging.info("Viewer initialized successfully.")

    def _initialize_state(self) -> None:
        viewer_cfg = self.config.get("viewer", {})
        self.buffer: TextBuffer = TextBuffer()
        self.scroll_left: int = 0
        self.status_message: str = "Ready"
        self.focus: str = "viewer"
        self.running: bool = False
        self.last_window_size: tuple[int, int] = (0, 0)
        self._force_full_redraw: bool = False
        self.commands: dict[str, Command] = {}
        self.show_line_numbers: bool = bool(viewer_cfg.get("show_line_numbers", True))
        self.follow_file: bool = bool(viewer_cfg.get("follow_file", True))
        try:
            self.reload_interval: float = float(viewer_cfg.get("reload_interval", 1.0))
            if self.reload_interval <= 0:
                raise ValueError
        except (ValueError, TypeError):
            self.reload_interval = 1.0
        try:
            self.tick_ms: int = int(viewer_cfg.get("tick_ms", 100))
            if self.tick_ms <= 0:
                raise ValueError
        except (ValueError, TypeError):
            self.tick_ms = 100
        self._file_signature: Optional[tuple[int, int]] = None
        self._reload_call: Optional[ScheduledCall] = None

    def _initialize_components(self) -> None:
        """Initializes colours, the highlighter and the UI components."""
        self.colors: dict[str, int] = {}
        self.init_colors()

        self.scheduler = DeferredScheduler()
        self.presentation = CursesPresentation(self)
        self.highlighter = ErrorHighlighter(
            self.buffer, self.presentation, self.scheduler, config=self.config
        )
        self.drawer = DrawScreen(self, self.config)
        self.panel_manager = PanelManager(self)

        self.presentation.register_command("show_menu", self.show_menu, "Command menu", "f10")
        self.presentation.register_command("quit", self.exit_viewer, "Quit", "q")
        self.highlighter.register_commands()

        # KeyBinder is initialized last; it binds every registered command.
        self.keybinder = KeyBinder(self)
        self.handle_input = self.keybinder.handle_input

        if self.config.get("highlight", {}).get("enabled", True):
            self.highlighter.enable()

    def _setup_environment(self) -> None:
        self.stdscr.keypad(True)
        try:
            curses.curs_set(1)
            curses.raw()
            curses.noecho()
        except curses.error as exc:
            logging.warning("Could not set terminal modes: %s", exc)

    # --- Colors ---
    def init_colors(self) -> None:
        """Initializes curses colour pairs with graceful degradation."""
        self.colors = {}

        if not curses.has_colors() or curses.COLORS < 8:
            logging.warning(
                "Terminal has no or limited color support (< 8). Using monochrome attributes."
            )
            self.colors = {
                "default": curses.A_NORMAL,
                "error_line": curses.A_REVERSE | curses.A_BOLD,
                "status": curses.A_REVERSE,
                "line_number": curses.A_DIM,
                "panel_selection": curses.A_REVERSE,
            }
            return

        curses.start_color()
        curses.use_default_colors()

        # name -> (fg hex, fg 8-colour, bg config key, bg hex, bg 8-colour, attr)
        color_definitions = {
            "default": ("#C9D1D9", curses.COLOR_WHITE, None, None, -1, curses.A_NORMAL),
            "error_line": (
                "#F85149", curses.COLOR_RED,
                "error_line_bg", "#3A1D1D", -1,
                curses.A_BOLD,
            ),
            "line_number": ("#817248", curses.COLOR_YELLOW, None, None, -1, curses.A_DIM),
            "panel_selection": (
                "#000000", curses.COLOR_BLACK,
                "panel_selection_bg", "#FFAB70", curses.COLOR_YELLOW,
                curses.A_NORMAL,
            ),
        }

        user_colors = self.config.get("colors", {})
        can_use_256_colors = curses.COLORS >= 256
        pair_id_counter = 1

        for name, (fg_hex, fg_8, bg_key, bg_hex, bg_8, attr) in color_definitions.items():
            if pair_id_counter >= curses.COLOR_PAIRS:
                logging.warning(f"Ran out of color pairs. Cannot initialize '{name}'.")
                self.colors[name] = attr
                continue

            if can_use_256_colors:
                fg = hex_to_xterm(str(user_colors.get(name, fg_hex)))
                bg = hex_to_xterm(str(user_colors.get(bg_key, bg_hex))) if bg_key else -1
            else:
                fg, bg = fg_8, bg_8

            try:
                curses.init_pair(pair_id_counter, fg, bg)
                self.colors[name] = curses.color_pair(pair_id_counter) | attr
                pair_id_counter += 1
            except curses.error as e:
                logging.error(f"Failed to initialize curses pair for '{name}': {e}")
                self.colors[name] = attr

    # --- Files ---
    def open_file(self, filename: str) -> bool:
        """Loads `filename` into the buffer and re-scans immediately.

        A missing file leaves an empty buffer named after it, so follow mode
        picks the file up once it appears.
        """
        if not os.path.exists(filename):
            self.buffer.filename = filename
            self.buffer.set_lines([""])
            self._file_signature = None
            self._set_status_message(f"New file: {os.path.basename(filename)} (waiting for data)")
            logging.info("File '%s' does not exist yet.", filename)
            self._schedule_reload()
            return False

        try:
            lines, encoding = read_text_file(filename)
        except (OSError, UnicodeError) as e:
            logging.error("Failed to open '%s': %s", filename, e, exc_info=True)
            self._set_status_message(f"Error opening file: {e}")
            return False

        self.buffer.filename = filename
        self.buffer.encoding = encoding
        self.buffer.set_lines(lines)
        self.buffer.move_cursor_to(0)
        self.buffer.scroll_top = 0
        self._file_signature = self._stat_signature(filename)
        self.highlighter.rescan()
        self.highlighter.cancel_pending_scan()
        self._force_full_redraw = True
        self._set_status_message(f"Opened {os.path.basename(filename)} ({encoding})")
        logger.info("Opened '%s': %d lines, encoding %s", filename, self.buffer.line_count, encoding)
        self._schedule_reload()
        return True

    @staticmethod
    def _stat_signature(filename: str) -> Optional[tuple[int, int]]:
        try:
            st = os.stat(filename)
        except OSError:
            return None
        return st.st_size, st.st_mtime_ns

    def _schedule_reload(self) -> None:
        if not self.follow_file or not self.buffer.filename or self._reload_call is not None:
            return
        self._reload_call = self.scheduler.call_later(self.reload_interval, self._reload_tick)

    def _reload_tick(self) -> None:
        self._reload_call = None
        try:
            self.check_file_changes()
        finally:
            if self.buffer.alive:
                self._schedule_reload()

    def check_file_changes(self) -> bool:
        """Reloads the followed file if its size or mtime changed.

        Returns:
            bool: True if the buffer content was updated.
        """
        filename = self.buffer.filename
        if not filename or not self.buffer.alive:
            return False
        signature = self._stat_signature(filename)
        if signature is None or signature == self._file_signature:
            return False

        try:
            lines, encoding = read_text_file(filename)
        except (OSError, UnicodeError) as e:
            logging.warning("Follow: could not re-read '%s': %s", filename, e)
            return False

        self._file_signature = signature
        self.buffer.encoding = encoding
        self._apply_reloaded_lines(lines)
        self._force_full_redraw = True
        return True

    def _apply_reloaded_lines(self, lines: list[str]) -> None:
        """Appends when the old content is a prefix of `lines`, else replaces it."""
        old = self.buffer.text
        last = len(old) - 1
        at_end = self.buffer.cursor_y >= last

        if len(lines) >= len(old) and lines[:last] == old[:last] and lines[last].startswith(old[last]):
            if lines[last] != old[last]:
                self.buffer.replace_line(last, lines[last])
            if len(lines) > len(old):
                self.buffer.append_lines(lines[len(old):])
            logging.debug("Follow: appended %d line(s)", len(lines) - len(old))
        else:
            self.buffer.set_lines(lines)
            logging.info("Follow: file rewritten, buffer replaced")

        if at_end:
            self.handle_end()

    # --- Commands ---
    def run_command(self, name: str) -> bool:
        """Runs a registered command and reports the outcome in the status bar."""
        command = self.commands.get(name)
        if command is None:
            self._set_status_message(f"Unknown command: {name}")
            return True
        try:
            result = command.callback()
        except Exception as e:
            logging.exception("Command '%s' failed", name)
            self._set_status_message(f"Command error: {str(e)[:60]}")
            return True

        if name in ("next_error", "previous_error"):
            if result is None:
                self._set_status_message("No further error line")
            else:
                self._set_status_message(f"Error line {result.row + 1}")
        elif name == "toggle_highlighting":
            state = "on" if self.highlighter.enabled else "off"
            self._set_status_message(f"Error highlighting {state}")
        elif name == "list_errors" and not result:
            self._set_status_message("No error lines")
        self._force_full_redraw = True
        return True

    def key_hint(self, name: str) -> str:
        """Human-readable key for a command, from its registration."""
        command = self.commands.get(name)
        keys = self.config.get("keybindings", {}).get(name) or (command.key if command else "")
        if isinstance(keys, list):
            keys = " / ".join(str(k) for k in keys)
        return str(keys or "")

    def show_menu(self) -> bool:
        self.panel_manager.show_panel("command_menu")
        return True

    def goto_line(self, row: int) -> bool:
        """Moves the cursor to `row` through the presentation port."""
        row = self.buffer.clamp_row(row)
        self.presentation.move_cursor(self.buffer, self.buffer.line_start(row))
        self._set_status_message(f"Line {row + 1}")
        return True

    def exit_viewer(self) -> bool:
        if not self.running:
            return False
        self.running = False
        logger.info("Main loop stop signaled.")
        return True

    def close(self) -> None:
        """Stops highlighting and releases the buffer."""
        self.highlighter.disable()
        self.buffer.destroy()
        self.scheduler.clear()

    # --- Navigation ---
    def _clamp_scroll(self) -> None:
        buffer = self.buffer
        text_area_height = max(1, buffer.visible_lines)
        if buffer.cursor_y < buffer.scroll_top:
            buffer.scroll_top = buffer.cursor_y
        elif buffer.cursor_y >= buffer.scroll_top + text_area_height:
            buffer.scroll_top = buffer.cursor_y - text_area_height + 1
        buffer.scroll_top = max(0, min(buffer.scroll_top, max(0, buffer.line_count - 1)))

    def _move_to_row(self, row: int) -> bool:
        buffer = self.buffer
        old = (buffer.cursor_y, buffer.scroll_top)
        buffer.move_cursor_to(row, buffer.cursor_x)
        self._clamp_scroll()
        return old != (buffer.cursor_y, buffer.scroll_top)

    def handle_up(self) -> bool:
        return self._move_to_row(self.buffer.cursor_y - 1)

    def handle_down(self) -> bool:
        return self._move_to_row(self.buffer.cursor_y + 1)

    def handle_page_up(self) -> bool:
        page = max(1, self.buffer.visible_lines)
        self.buffer.scroll_top = max(0, self.buffer.scroll_top - page)
        return self._move_to_row(self.buffer.cursor_y - page) or True

    def handle_page_down(self) -> bool:
        page = max(1, self.buffer.visible_lines)
        max_scroll = max(0, self.buffer.line_count - page)
        self.buffer.scroll_top = min(max_scroll, self.buffer.scroll_top + page)
        return self._move_to_row(self.buffer.cursor_y + page) or True

    def handle_home(self) -> bool:
        self.scroll_left = 0
        return self._move_to_row(0) or True

    def handle_end(self) -> bool:
        return self._move_to_row(self.buffer.line_count - 1)

    def handle_left(self) -> bool:
        if self.scroll_left == 0:
            return False
        self.scroll_left = max(0, self.scroll_left - 8)
        self._force_full_redraw = True
        return True

    def handle_right(self) -> bool:
        self.scroll_left += 8
        self._force_full_redraw = True
        return True

    def handle_escape(self) -> bool:
        if self.panel_manager.is_panel_active():
            self.panel_manager.close_active_panel()
            return True
        self._set_status_message("Ready")
        return True

    def handle_resize(self) -> bool:
        """Recomputes window-dependent state and forces a full redraw."""
        logging.debug("handle_resize called")
        try:
            self._force_full_redraw = True
            new_height, new_width = self.stdscr.getmaxyx()
            self.buffer.visible_lines = max(1, new_height - 2)
            self.last_window_size = (new_height, new_width)
            self.panel_manager.resize_active_panel()
            self._clamp_scroll()
            return True
        except Exception as e:
            logging.error(f"Error in handle_resize: {e}", exc_info=True)
            self._set_status_message("Resize error (see log)")
            return True

    # --- Main loop ---
    def run(self) -> None:
        """The main event loop. Runs until `running` is cleared by `exit_viewer`."""
        logger.info("Viewer main loop started.")
        self.running = True
        self._force_full_redraw = True
        self.stdscr.timeout(self.tick_ms)
        self._schedule_reload()

        while self.running:
            try:
                redraw_needed = self._process_events_and_input()
                self._render_screen(redraw_needed)
            except KeyboardInterrupt:
                logger.info("Main loop interrupted by KeyboardInterrupt.")
                self.running = False
            except Exception as e:
                logger.critical("Unhandled exception in main loop: %s", e, exc_info=True)
                self.running = False

        self.close()
        logger.info("Viewer main loop finished.")

    def _process_events_and_input(self) -> bool:
        """One loop iteration without rendering.

        Returns:
            bool: True if anything changed that requires a redraw.
        """
        redraw_needed = False

        key_input = self.keybinder.get_key_input()
        if key_input != curses.ERR and key_input != -1:
            if key_input == curses.KEY_RESIZE:
                redraw_needed = self.handle_resize()
            elif self._handle_input_dispatch(key_input):
                redraw_needed = True

        if self.scheduler.run_due():
            redraw_needed = True

        if self.highlighter.ensure_viewport():
            redraw_needed = True

        return redraw_needed

    def _handle_input_dispatch(self, key_input: Any) -> bool:
        if self.focus == "panel" and self.panel_manager.is_panel_active():
            return self.panel_manager.handle_key(key_input)
        return self.handle_input(key_input)

    def _render_screen(self, redraw_needed: bool) -> None:
        if not redraw_needed and not self._force_full_redraw:
            return

        self.drawer.draw()
        self.panel_manager.draw_active_panel()

        if self.focus == "viewer":
            curses.curs_set(1)
            self.drawer._position_cursor()
        else:
            curses.curs_set(0)

        curses.doupdate()
        self._force_full_redraw = False
