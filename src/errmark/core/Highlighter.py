# errmark/core/Highlighter.py
"""Highlighter Module
====================
The visible-region error highlighter.

`ErrorHighlighter` keeps the marks shown for one buffer in step with the lines
that match the error `PatternSet`. Only a window around the rendered rows is
scanned: one viewport height above the first visible row and one below the
last, so small scrolls are already covered. Every re-scan clears all marks and
rebuilds them; there is no incremental diffing.

Edits are debounced. A change notification schedules one re-scan after a
quiescence delay unless one is already pending for the buffer; later edits in
the same window fold into that trailing re-scan. The pending flag lives in a
per-buffer `ScanSession` that exists only while the mode is enabled. Marks at
or after the start of an edit are dropped right away, since their lines may
have moved; the trailing re-scan puts back the ones that still match.

Navigation (`find_adjacent_match`) and the match summary
(`collect_all_matches`) look at the whole buffer, not just the window.

All host interaction goes through a `PresentationPort`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Optional

from errmark.core.PatternSet import PatternSet
from errmark.core.PresentationPort import (
    HighlightMark,
    LinePosition,
    MatchEntry,
    PresentationPort,
)


if TYPE_CHECKING:
    from errmark.core.Scheduler import DeferredScheduler, ScheduledCall
    from errmark.core.TextBuffer import TextBuffer


logger = logging.getLogger("errmark")

DEFAULT_DEBOUNCE_SECONDS = 3.0
DEFAULT_FACE = "error_line"


class Direction(enum.Enum):
    FORWARD = 1
    BACKWARD = -1


def compute_viewport_bounds(
    anchor: int, viewport_height: int, line_count: Optional[int] = None
) -> tuple[int, int]:
    """Return the `[start, end)` row window to scan around the viewport.

    The window spans one viewport height above `anchor` (the first visible
    row) and one viewport height below the last visible row.

    Args:
        anchor: First visible row.
        viewport_height: Number of rendered rows; must be positive.
        line_count: When given, the window is clamped to `[0, line_count]`.

    Raises:
        ValueError: If `viewport_height` is not positive.
    """
    if viewport_height <= 0:
        raise ValueError(f"viewport_height must be positive, got {viewport_height}")

    start = max(0, anchor - viewport_height)
    end = anchor + 2 * viewport_height
    if line_count is not None:
        start = min(start, line_count)
        end = max(start, min(end, line_count))
    return start, end


def scan_and_mark(
    buffer: TextBuffer,
    start_line: int,
    end_line: int,
    pattern_set: PatternSet,
    port: PresentationPort,
    marks: dict[int, HighlightMark],
    face: str = DEFAULT_FACE,
) -> set[HighlightMark]:
    """Mark every line in `[start_line, end_line)` that contains a match.

    `marks` maps line-start positions to existing marks and is updated in
    place; a line that already has a mark is left alone.

    Returns:
        set[HighlightMark]: The marks covering matched lines in the range.
    """
    found: set[HighlightMark] = set()
    if not pattern_set:
        return found

    start_line = max(0, start_line)
    end_line = min(end_line, buffer.line_count)

    for row in range(start_line, end_line):
        if not pattern_set.matches(buffer.line(row)):
            continue
        line_start = buffer.line_start(row)
        mark = marks.get(line_start)
        if mark is None:
            mark = port.create_mark(buffer, line_start, buffer.line_end(row), face)
            marks[line_start] = mark
        found.add(mark)
    return found


def collect_all_matches(buffer: TextBuffer, pattern_set: PatternSet) -> Iterator[MatchEntry]:
    """Yield `(row, line)` for every matching line of the whole buffer."""
    if not pattern_set:
        return
    for row, line in enumerate(buffer.text):
        if pattern_set.matches(line):
            yield MatchEntry(row, line)


@dataclass
class ScanSession:
    """Per-buffer state that lives while highlighting is enabled.

    Attributes:
        scan_pending (bool): A debounced re-scan is scheduled.
        pending_call (Optional[ScheduledCall]): Handle of that re-scan.
        scanned_window (Optional[tuple[int, int]]): Rows covered by the last scan.
    """

    scan_pending: bool = False
    pending_call: Optional[ScheduledCall] = None
    scanned_window: Optional[tuple[int, int]] = None
    scans_run: int = 0
    marks: dict[int, HighlightMark] = field(default_factory=dict)


## ==================== ErrorHighlighter Class ====================
class ErrorHighlighter:
    """ErrorHighlighter Class
    ==========================
    Highlights error lines of one `TextBuffer` inside the visible region.

    Attributes:
        buffer (TextBuffer): The buffer being highlighted.
        port (PresentationPort): Host used for marks, cursor and commands.
        scheduler (DeferredScheduler): Runs the debounced re-scans.
        pattern_set (PatternSet): Matchers that identify error lines.
        debounce_seconds (float): Quiescence delay before a re-scan.
        face (str): Rendering attribute name given to created marks.
        session (Optional[ScanSession]): Present while the mode is enabled.

    Methods:
        enable() / disable() / toggle(): Mode lifecycle.
        rescan(): Clear and rebuild marks for the current viewport window.
        clear_marks(): Remove every mark this highlighter created.
        ensure_viewport(): Re-scan if the visible rows left the scanned window.
        find_adjacent_match(direction): Move to the next/previous error line.
        collect_all_matches(): Iterate all error lines of the buffer.
        list_matches(): Hand the summary to the port for display.
        on_buffer_changed(start, end): Change hook; drops stale marks and
            schedules the debounce.
        cancel_pending_scan(): Forget a scheduled re-scan after a full scan.
    """

    def __init__(
        self,
        buffer: TextBuffer,
        port: PresentationPort,
        scheduler: DeferredScheduler,
        pattern_set: Optional[PatternSet] = None,
        config: Optional[dict[str, Any]] = None,
    ) -> None:
        highlight_cfg = (config or {}).get("highlight", {})
        self.buffer = buffer
        self.port = port
        self.scheduler = scheduler
        self.pattern_set = pattern_set if pattern_set is not None else PatternSet()
        try:
            self.debounce_seconds = float(
                highlight_cfg.get("debounce_seconds", DEFAULT_DEBOUNCE_SECONDS)
            )
            if self.debounce_seconds < 0:
                raise ValueError
        except (TypeError, ValueError):
            logger.warning("Invalid highlight.debounce_seconds; using %s", DEFAULT_DEBOUNCE_SECONDS)
            self.debounce_seconds = DEFAULT_DEBOUNCE_SECONDS
        self.face: str = str(highlight_cfg.get("face", DEFAULT_FACE))
        self.session: Optional[ScanSession] = None
        self._commands_registered = False

    # --- Mode lifecycle ---
    @property
    def enabled(self) -> bool:
        return self.session is not None

    @property
    def marks(self) -> dict[int, HighlightMark]:
        """Current marks keyed by line-start position (empty when disabled)."""
        return self.session.marks if self.session else {}

    def register_commands(self) -> None:
        """Expose the mode's commands through the port (once)."""
        if self._commands_registered:
            return
        self.port.register_command("next_error", self.next_error, "Next error line", "n")
        self.port.register_command("previous_error", self.previous_error, "Previous error line", "p")
        self.port.register_command("list_errors", self.list_matches, "List all error lines", "l")
        self.port.register_command(
            "toggle_highlighting", self.toggle, "Toggle error highlighting", "h"
        )
        self._commands_registered = True

    def enable(self) -> bool:
        if self.session is not None:
            return False
        if not self.buffer.alive:
            logger.debug("enable() ignored: buffer %r is not alive", self.buffer)
            return False
        self.register_commands()
        self.session = ScanSession()
        self.buffer.add_change_listener(self.on_buffer_changed)
        self.rescan()
        logger.info("Error highlighting enabled for %r", self.buffer.filename)
        return True

    def disable(self) -> bool:
        session = self.session
        if session is None:
            return False
        self.clear_marks()
        self.buffer.remove_change_listener(self.on_buffer_changed)
        self.cancel_pending_scan()
        self.session = None
        logger.info("Error highlighting disabled for %r", self.buffer.filename)
        return True

    def toggle(self) -> bool:
        if self.enabled:
            self.disable()
        else:
            self.enable()
        return True

    # --- Scan / mark / clear ---
    def viewport_bounds(self) -> tuple[int, int]:
        return compute_viewport_bounds(
            self.buffer.scroll_top, max(1, self.buffer.visible_lines), self.buffer.line_count
        )

    def scan_and_mark(self, start_line: int, end_line: int) -> set[HighlightMark]:
        if self.session is None:
            return set()
        return scan_and_mark(
            self.buffer,
            start_line,
            end_line,
            self.pattern_set,
            self.port,
            self.session.marks,
            self.face,
        )

    def clear_marks(self) -> None:
        if self.session is None:
            return
        marks = self.session.marks
        for mark in list(marks.values()):
            self.port.remove_mark(self.buffer, mark)
        marks.clear()
        self.session.scanned_window = None

    def rescan(self) -> set[HighlightMark]:
        """Rebuild all marks for the window around the current viewport."""
        session = self.session
        if session is None or not self.buffer.alive:
            return set()
        self.clear_marks()
        start, end = self.viewport_bounds()
        found = self.scan_and_mark(start, end)
        session.scanned_window = (start, end)
        session.scans_run += 1
        logger.debug("Rescanned rows [%d, %d): %d marked line(s)", start, end, len(found))
        return found

    def ensure_viewport(self) -> bool:
        """Re-scan when visible rows are no longer inside the scanned window.

        Returns:
            bool: True if a re-scan ran.
        """
        session = self.session
        if session is None or session.scanned_window is None:
            return False
        first = self.buffer.scroll_top
        last = min(first + max(1, self.buffer.visible_lines), self.buffer.line_count)
        start, end = session.scanned_window
        if start <= first and last <= end:
            return False
        self.rescan()
        return True

    # --- Debounce ---
    def drop_marks_from(self, position: int) -> int:
        """Remove marks on lines starting at or after `position`.

        Lines before an edit keep their positions, so their marks stay valid;
        everything from the edit on may have moved or changed.

        Returns:
            int: Number of marks removed.
        """
        if self.session is None:
            return 0
        marks = self.session.marks
        stale = [start for start in marks if start >= position]
        for start in stale:
            self.port.remove_mark(self.buffer, marks.pop(start))
        return len(stale)

    def cancel_pending_scan(self) -> None:
        session = self.session
        if session is None or session.pending_call is None:
            return
        self.scheduler.cancel(session.pending_call)
        session.pending_call = None
        session.scan_pending = False

    def on_buffer_changed(self, change_start: int, change_end: int) -> None:
        session = self.session
        if session is None:
            return
        dropped = self.drop_marks_from(change_start)
        if dropped:
            logger.debug("Change at %d: dropped %d stale mark(s)", change_start, dropped)
        if session.scan_pending:
            return
        session.scan_pending = True
        session.pending_call = self.scheduler.call_later(
            self.debounce_seconds, self._run_debounced_scan, session
        )
        logger.debug(
            "Change [%d, %d): re-scan scheduled in %.2fs",
            change_start,
            change_end,
            self.debounce_seconds,
        )

    def _run_debounced_scan(self, session: ScanSession) -> None:
        session.scan_pending = False
        session.pending_call = None
        if not self.buffer.alive or session is not self.session:
            logger.debug("Debounced re-scan dropped: buffer gone or mode disabled")
            return
        self.rescan()

    # --- Navigation ---
    def find_adjacent_match(self, direction: Direction) -> Optional[LinePosition]:
        """Move the cursor to the nearest matching line in `direction`.

        The current line never matches itself: forward search starts after
        it, backward search before it.

        Returns:
            Optional[LinePosition]: The line moved to, or None (cursor untouched).
        """
        current = self.buffer.cursor_y
        if direction is Direction.FORWARD:
            rows = range(current + 1, self.buffer.line_count)
        else:
            rows = range(min(current, self.buffer.line_count) - 1, -1, -1)

        for row in rows:
            if self.pattern_set.matches(self.buffer.line(row)):
                found = LinePosition(row, self.buffer.line_start(row))
                self.port.move_cursor(self.buffer, found.offset)
                self.rescan()
                return found

        logger.debug("No error line %s row %d", direction.name.lower(), current)
        return None

    def next_error(self) -> Optional[LinePosition]:
        return self.find_adjacent_match(Direction.FORWARD)

    def previous_error(self) -> Optional[LinePosition]:
        return self.find_adjacent_match(Direction.BACKWARD)

    # --- Summary ---
    def collect_all_matches(self) -> Iterator[MatchEntry]:
        return collect_all_matches(self.buffer, self.pattern_set)

    def list_matches(self) -> int:
        """Send all matches to the port's list view; returns the count."""
        entries = list(self.collect_all_matches())
        title = f"{len(entries)} matches for errors"
        self.port.show_matches(self.buffer, title, entries)
        return len(entries)
