# tests/ui/test_keybinder.py
"""Unit tests for the `KeyBinder` class.
========================================

Covers key-string decoding, loading user overrides from `[keybindings]`,
the resulting action map (handlers plus registered commands) and ESC-sequence
reading.

The tests use a `MagicMock` viewer so no curses screen is needed.
"""

import curses
from unittest.mock import MagicMock

import pytest

from errmark.ui.CursesPresentation import Command
from errmark.ui.KeyBinder import KeyBinder


@pytest.fixture
def mock_viewer() -> MagicMock:
    """A viewer double with two registered commands and no user keybindings."""
    viewer = MagicMock()
    viewer.config = {"keybindings": {}}
    viewer.status_message = "Ready"
    viewer.tick_ms = 100
    viewer.commands = {
        "next_error": Command("next_error", MagicMock(), "Next error line", "n"),
        "list_errors": Command("list_errors", MagicMock(), "List all error lines", "l"),
    }
    for name in (
        "handle_up", "handle_down", "handle_left", "handle_right",
        "handle_page_up", "handle_page_down", "handle_home", "handle_end",
        "handle_escape", "handle_resize",
    ):
        getattr(viewer, name).__name__ = name
    return viewer


@pytest.fixture
def keybinder(mock_viewer: MagicMock) -> KeyBinder:
    return KeyBinder(mock_viewer)


# ====== _decode_keystring ======


class TestDecodeKeystring:
    @pytest.mark.parametrize(
        "spec, expected",
        [
            ("n", ord("n")),
            ("G", ord("G")),
            ("shift+g", ord("G")),
            ("ctrl+q", 17),
            ("ctrl+a", 1),
            ("esc", 27),
            ("space", ord(" ")),
            (" ", ord(" ")),
            ("up", curses.KEY_UP),
            ("PageDown", curses.KEY_NPAGE),
            ("f10", curses.KEY_F10),
            (42, 42),
        ],
    )
    def test_known_specs(self, keybinder: KeyBinder, spec, expected) -> None:
        assert keybinder._decode_keystring(spec) == expected

    def test_alt_chords_stay_strings(self, keybinder: KeyBinder) -> None:
        assert keybinder._decode_keystring("alt+x") == "alt-x"
        assert keybinder._decode_keystring("ctrl+alt+x") == "alt-ctrl+x"
        assert keybinder._decode_keystring("alt-n") == "alt-n"

    @pytest.mark.parametrize("spec", ["", "hyper+x", "ctrl+nosuchkey", 3.5])
    def test_invalid_specs_raise(self, keybinder: KeyBinder, spec) -> None:
        with pytest.raises(ValueError):
            keybinder._decode_keystring(spec)


# ====== _load_keybindings ======


class TestLoadKeybindings:
    def test_defaults_include_command_keys(self, keybinder: KeyBinder) -> None:
        assert keybinder.keybindings["next_error"] == [ord("n")]
        assert keybinder.keybindings["list_errors"] == [ord("l")]
        assert keybinder.keybindings["handle_down"] == [curses.KEY_DOWN, ord("j")]
        assert keybinder.keybindings["handle_end"] == [curses.KEY_END, ord("G")]

    def test_user_overrides(self, mock_viewer: MagicMock) -> None:
        mock_viewer.config = {
            "keybindings": {
                "next_error": "ctrl+n|]",
                "list_errors": ["L", "f3"],
                "handle_left": "",
                "handle_up": ["bogus+up", "k"],
            }
        }
        kb = KeyBinder(mock_viewer)

        assert kb.keybindings["next_error"] == [14, ord("]")]
        assert kb.keybindings["list_errors"] == [ord("L"), curses.KEY_F3]
        assert "handle_left" not in kb.keybindings
        assert kb.keybindings["handle_up"] == [ord("k")]

    def test_action_with_only_invalid_keys_is_unbound(self, mock_viewer: MagicMock) -> None:
        mock_viewer.config = {"keybindings": {"handle_up": ["nope+x"]}}
        kb = KeyBinder(mock_viewer)
        assert "handle_up" not in kb.keybindings


# ====== action map and handle_input ======


class TestHandleInput:
    def test_action_map_binds_handlers_and_commands(
        self, keybinder: KeyBinder, mock_viewer: MagicMock
    ) -> None:
        assert keybinder.action_map[curses.KEY_DOWN] is mock_viewer.handle_down
        assert keybinder.action_map[27] is mock_viewer.handle_escape
        assert keybinder.action_map[curses.KEY_RESIZE] is mock_viewer.handle_resize
        assert keybinder.action_map[ord("n")].__name__ == "next_error"

    def test_command_key_runs_command(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.run_command.return_value = True
        assert keybinder.handle_input(ord("n")) is True
        mock_viewer.run_command.assert_called_once_with("next_error")

    def test_single_char_string_is_converted(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.handle_down.return_value = True
        assert keybinder.handle_input("j") is True
        mock_viewer.handle_down.assert_called_once()

    def test_unbound_key(self, keybinder: KeyBinder) -> None:
        assert keybinder.handle_input(ord("z")) is False

    def test_status_change_counts_as_visual_change(
        self, keybinder: KeyBinder, mock_viewer: MagicMock
    ) -> None:
        def handler() -> bool:
            mock_viewer.status_message = "changed"
            return False

        handler.__name__ = "handle_up"
        keybinder.action_map[curses.KEY_UP] = handler
        assert keybinder.handle_input(curses.KEY_UP) is True

    def test_handler_exception_sets_status(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.handle_home.side_effect = RuntimeError("kaput")
        assert keybinder.handle_input(curses.KEY_HOME) is True
        mock_viewer._set_status_message.assert_called_once_with("Input handler error: kaput")


# ====== get_key_input ======


class TestGetKeyInput:
    def test_plain_key(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getch.return_value = ord("x")
        assert keybinder.get_key_input() == ord("x")

    def test_lone_escape(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getch.side_effect = [27, curses.ERR]
        assert keybinder.get_key_input() == 27
        mock_viewer.stdscr.timeout.assert_called_with(100)

    def test_arrow_sequence(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getch.side_effect = [27, ord("["), ord("B"), curses.ERR]
        assert keybinder.get_key_input() == curses.KEY_DOWN

    def test_function_key_sequence(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        seq = [27] + [ord(c) for c in "[21~"] + [curses.ERR]
        mock_viewer.stdscr.getch.side_effect = seq
        assert keybinder.get_key_input() == curses.KEY_F10

    def test_alt_chord(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getch.side_effect = [27, ord("N"), curses.ERR]
        assert keybinder.get_key_input() == "alt-n"

    def test_unknown_sequence_falls_back_to_escape(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getch.side_effect = [27, ord("["), ord("9"), ord("9"), ord("Z"), curses.ERR]
        assert keybinder.get_key_input() == 27

    def test_curses_error_means_no_key(self, keybinder: KeyBinder, mock_viewer: MagicMock) -> None:
        mock_viewer.stdscr.getch.side_effect = curses.error("no input")
        assert keybinder.get_key_input() == curses.ERR
