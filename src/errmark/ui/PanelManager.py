# errmark/ui/PanelManager.py
"""PanelManager.py
========================
This module defines the PanelManager class, which is responsible for managing
the lifecycle, visibility, and interaction of non-blocking panels within the
viewer: the match summary list and the command menu.
"""

import curses
import logging
from typing import TYPE_CHECKING, Any, Optional

from .panels import BasePanel, CommandMenuPanel, MatchListPanel


if TYPE_CHECKING:
    from errmark.core.Viewer import Viewer


## ================= PanelManager Class ===============================
class PanelManager:
    """PanelManager Class
    ==========================
    Manages the creation, focus and rendering of non-blocking UI panels.

    Attributes:
        viewer (Viewer): Reference to the main viewer instance.
        active_panel (Optional[BasePanel]): The currently active and visible panel, if any.
        registered_panels (dict[str, type[BasePanel]]): Mapping of panel names to their classes.

    Methods:
        is_panel_active() -> bool
        show_panel(name, **kwargs): Creates and shows a panel by name; toggles if already shown.
        close_active_panel(): Closes the active panel and returns focus to the viewer.
        handle_key(key) -> bool: Passes a key event to the active panel.
        draw_active_panel(): Draws the active panel, if any.
    """

    def __init__(self, viewer_instance: "Viewer"):
        self.viewer = viewer_instance
        self.active_panel: Optional[BasePanel] = None

        self.registered_panels: dict[str, type[BasePanel]] = {
            "match_list": MatchListPanel,
            "command_menu": CommandMenuPanel,
        }
        logging.info(
            "PanelManager initialised with: %s", list(self.registered_panels.keys())
        )

    def is_panel_active(self) -> bool:
        """Checks if a panel is currently active and visible."""
        return self.active_panel is not None and self.active_panel.visible

    def show_panel(self, name: str, **kwargs: Any) -> None:
        """Creates and shows a panel in non-blocking mode.
        If a panel of the same type is already active, it's closed (toggle behavior).
        If a different panel is active, it's replaced.
        """
        PanelCls = self.registered_panels.get(name)
        if not PanelCls:
            msg = f"Error: Unknown panel name '{name}'"
            self.viewer._set_status_message(msg)
            logging.error(msg)
            return

        if self.is_panel_active() and isinstance(self.active_panel, PanelCls):
            self.close_active_panel()
            return

        if self.is_panel_active():
            self.close_active_panel()

        try:
            self.active_panel = PanelCls(self.viewer.stdscr, self.viewer, **kwargs)
            self.active_panel.open()
            self.viewer.focus = "panel"
            self.viewer._force_full_redraw = True
            logging.info(f"Panel '{name}' shown and focus set to 'panel'.")
        except Exception as exc:
            logging.exception("Failed to create or show panel '%s': %s", name, exc)
            self.active_panel = None
            self.viewer._set_status_message(f"Panel error: {exc}")
            self.viewer.focus = "viewer"

    def close_active_panel(self) -> None:
        """Force-closes the currently active panel and returns focus to the viewer."""
        if self.active_panel:
            logging.info("Closing panel: %s", self.active_panel.__class__.__name__)
            try:
                self.active_panel.close()
            except Exception:
                logging.exception("Exception while closing panel")

        self.active_panel = None
        self.viewer.focus = "viewer"
        try:
            curses.curs_set(1)
        except curses.error:
            pass
        self.viewer._force_full_redraw = True

    def handle_key(self, key: int | str) -> bool:
        """Passes a key to the active panel if it's in focus.
        Returns True if the panel consumed the event.
        """
        if self.is_panel_active():
            try:
                return self.active_panel.handle_key(key)
            except Exception:
                logging.exception("Panel key-handler crashed")
                self.viewer._set_status_message("Panel error (see log)")
                return True
        return False

    def resize_active_panel(self) -> None:
        if self.is_panel_active():
            try:
                self.active_panel.resize()
            except Exception:
                logging.exception("Panel resize() crashed")

    def draw_active_panel(self) -> None:
        """Calls the draw method of the active panel."""
        if self.is_panel_active():
            try:
                self.active_panel.draw()
            except Exception:
                logging.exception("Panel draw() crashed")
