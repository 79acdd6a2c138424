# tests/conftest.py
"""Pytest configuration with shared fixtures for the errmark tests.

Curses calls that need an initialised terminal are patched out for every
test, so the viewer and its UI components can be built on a mocked stdscr.
"""

from __future__ import annotations

import copy
import curses
from typing import Any, Generator
from unittest.mock import MagicMock, patch

import pytest

from errmark.core.Highlighter import ErrorHighlighter
from errmark.core.PatternSet import PatternSet
from errmark.core.Scheduler import DeferredScheduler
from errmark.core.TextBuffer import TextBuffer
from errmark.utils.utils import DEFAULT_CONFIG
from tests.stubs import ManualClock, RecordingPort


SAMPLE_LINES = ["INFO start", "ERROR disk full", "INFO ok", "WARNING low mem"]


# --- Automatic mocking of curses terminal functions ---
@pytest.fixture(autouse=True)
def mock_curses_functions() -> Generator[MagicMock, None, None]:
    """Patch the curses calls that fail without `initscr()`.

    Yields:
        MagicMock: The mock returned by `curses.newwin`, for panel assertions.
    """
    window_mock = MagicMock()
    window_mock.getmaxyx.return_value = (9, 80)
    with patch.multiple(
        curses,
        curs_set=MagicMock(return_value=None),
        init_pair=MagicMock(return_value=None),
        color_pair=MagicMock(side_effect=lambda n: n << 8),
        has_colors=MagicMock(return_value=True),
        start_color=MagicMock(return_value=None),
        use_default_colors=MagicMock(return_value=None),
        newwin=MagicMock(return_value=window_mock),
        doupdate=MagicMock(return_value=None),
        raw=MagicMock(return_value=None),
        noecho=MagicMock(return_value=None),
    ), patch.object(curses, "COLORS", 256, create=True), patch.object(
        curses, "COLOR_PAIRS", 256, create=True
    ), patch.object(curses, "ACS_HLINE", ord("-"), create=True):
        yield window_mock


# --- Base fixtures for curses and configuration ---
@pytest.fixture
def mock_stdscr() -> MagicMock:
    """A mocked stdscr, 24x80, whose getch() always times out."""
    stdscr = MagicMock()
    stdscr.getmaxyx.return_value = (24, 80)
    stdscr.getch.return_value = curses.ERR
    return stdscr


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """A private copy of the embedded default configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["viewer"]["follow_file"] = False
    return config


# --- Core fixtures ---
@pytest.fixture
def sample_buffer() -> TextBuffer:
    return TextBuffer(SAMPLE_LINES, filename="sample.log", visible_lines=10)


@pytest.fixture
def port() -> RecordingPort:
    return RecordingPort()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scheduler(clock: ManualClock) -> DeferredScheduler:
    return DeferredScheduler(clock=clock)


@pytest.fixture
def pattern_set() -> PatternSet:
    return PatternSet()


@pytest.fixture
def highlighter(
    sample_buffer: TextBuffer, port: RecordingPort, scheduler: DeferredScheduler
) -> ErrorHighlighter:
    """An enabled highlighter over `SAMPLE_LINES` with a 3 s debounce."""
    hl = ErrorHighlighter(sample_buffer, port, scheduler)
    hl.enable()
    return hl


# --- Viewer fixture ---
@pytest.fixture
def viewer(mock_stdscr: MagicMock, mock_config: dict[str, Any]):
    """A fully wired Viewer on a mocked terminal."""
    from errmark.core.Viewer import Viewer

    return Viewer(mock_stdscr, mock_config)
