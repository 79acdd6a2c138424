# errmark/ui/KeyBinder.py
"""KeyBinder.py
==================
Description:
-----------------------
The KeyBinder class translates key presses into viewer actions. Keybindings
come from two places: the viewer's own navigation handlers, and the commands
registered through the presentation port (next/previous error, list errors,
toggle highlighting, ...). Both can be remapped in the `[keybindings]`
section of the configuration.

Key Features:
- Loads and parses keybinding configurations, supporting user overrides.
- Maps key codes to viewer handlers and registered commands.
- Decodes key strings with Ctrl/Shift modifiers, named and function keys.
- Reads ESC-prefixed terminal sequences into the same key codes curses uses.

Main Methods:
1. handle_input: Processes a single key event and dispatches it.
2. _load_keybindings: Resolves configured key strings into key codes.
3. _decode_keystring: Decodes a key specification into a key code.
4. _setup_action_map: Builds the key-code to callable mapping.
5. get_key_input: Reads a single key or key sequence from the terminal.
"""

import curses
import logging
import re
from typing import TYPE_CHECKING, Any, Callable, Optional

from errmark.utils.logging_config import KEY_LOGGER


if TYPE_CHECKING:
    from errmark.core.Viewer import Viewer


# ==================== KeyBinder Class ====================
class KeyBinder:
    """Class KeyBinder
    ====================
    KeyBinder manages keybindings, input handling and action mapping for the viewer.

    Attributes:
        viewer (Viewer): The viewer whose handlers and commands are bound.
        config: Viewer configuration, including user-defined keybindings.
        stdscr: The curses window used for input.
        keybindings (dict): Action name -> list of key codes.
        action_map (dict): Key code -> callable.
    """

    # Keys do NOT include the leading ESC (0x1B); get_key_input() reads after it.
    ESCAPE_SEQUENCE_MAP: dict[str, str] = {
        "[A": "up", "[B": "down", "[C": "right", "[D": "left",
        "OA": "up", "OB": "down", "OC": "right", "OD": "left",

        "[H": "home", "[F": "end", "OH": "home", "OF": "end",
        "[1~": "home", "[4~": "end",

        "[5~": "pageup", "[6~": "pagedown",

        "OP": "f1", "OQ": "f2", "OR": "f3", "OS": "f4",
        "[11~": "f1", "[12~": "f2", "[13~": "f3", "[14~": "f4",
        "[15~": "f5", "[17~": "f6", "[18~": "f7", "[19~": "f8",
        "[20~": "f9", "[21~": "f10", "[23~": "f11", "[24~": "f12",
    }

    def __init__(self, viewer: "Viewer"):
        logging.debug("KeyBinder initialized with viewer: %s", viewer)
        self.viewer = viewer
        self.config = viewer.config
        self.stdscr = viewer.stdscr

        self.keybindings = self._load_keybindings()
        self.action_map = self._setup_action_map()

    # ---------------------- Handle Input --------------------
    def handle_input(self, key: str | int) -> bool:
        """Processes a single key event and triggers the corresponding action.

        Returns:
            bool: True if the input caused a visual change, False otherwise.
        """
        KEY_LOGGER.debug("key=%r type=%s", key, type(key).__name__)

        original_status = self.viewer.status_message
        action_caused_visual_change = False

        try:
            lookup_key: str | int = key
            if isinstance(key, str) and len(key) == 1:
                lookup_key = ord(key)

            if lookup_key in self.action_map:
                action = self.action_map[lookup_key]
                logging.debug(
                    f"handle_input: Key '{key}' found in action_map. Calling: {action.__name__}"
                )
                if action():
                    action_caused_visual_change = True
            else:
                logging.debug(
                    "Unhandled input: %r (type: %s)", key, type(key).__name__
                )

            if self.viewer.status_message != original_status:
                action_caused_visual_change = True

            return action_caused_visual_change

        except Exception as e_handler:
            logging.exception("Input handler error.")
            self.viewer._set_status_message(f"Input handler error: {str(e_handler)[:50]}")
            return True

    def _default_keybindings(self) -> dict[str, list[int | str]]:
        """Fallback bindings for handlers and for every registered command."""
        defaults: dict[str, list[int | str]] = {
            "quit": ["q", "ctrl+q"],
            "show_menu": ["f10", "m"],
            "handle_up": ["up", "k"],
            "handle_down": ["down", "j"],
            "handle_left": ["left"],
            "handle_right": ["right"],
            "handle_page_up": ["pageup"],
            "handle_page_down": ["pagedown", "space"],
            "handle_home": ["home", "g"],
            "handle_end": ["end", "shift+g"],
            "cancel_operation": ["esc"],
        }
        for name, command in self.viewer.commands.items():
            if name not in defaults and command.key:
                defaults[name] = [command.key]
        return defaults

    def _load_keybindings(self) -> dict[str, list[int | str]]:
        """Loads the keybinding configuration.

        User values from `[keybindings]` replace the defaults per action. A
        value may be a string, a list, or a `"a|b"` alternative string; an
        empty value disables the action.

        Returns:
            dict[str, list[int | str]]: Action name -> key codes.
        """
        default_keybindings = self._default_keybindings()
        user_keybindings_config: dict[str, object] = self.config.get("keybindings", {})
        parsed_keybindings: dict[str, list[int | str]] = {}

        for action in list(default_keybindings) + [
            a for a in user_keybindings_config if a not in default_keybindings
        ]:
            key_value_spec: object = user_keybindings_config.get(
                action, default_keybindings.get(action)
            )

            if not key_value_spec:
                logging.debug("Keybinding for action %r is disabled or empty.", action)
                continue

            specs_to_process: list[int | str]
            if isinstance(key_value_spec, list):
                specs_to_process = key_value_spec  # type: ignore[assignment]
            elif isinstance(key_value_spec, str) and "|" in key_value_spec:
                specs_to_process = [s.strip() for s in key_value_spec.split("|")]
            else:
                specs_to_process = [key_value_spec]  # type: ignore[list-item]

            key_codes_for_action: list[int | str] = []
            for key_spec_item in specs_to_process:
                try:
                    key_code = self._decode_keystring(key_spec_item)
                except ValueError as e:
                    logging.error(
                        "Error parsing keybinding item %r for action %r: %s. "
                        "This binding will be ignored.",
                        key_spec_item, action, e,
                    )
                    continue
                if key_code not in key_codes_for_action:
                    key_codes_for_action.append(key_code)

            if key_codes_for_action:
                parsed_keybindings[action] = key_codes_for_action
            else:
                logging.warning(
                    "No valid key codes found for action %r after parsing. It will not be bound.",
                    action,
                )

        logging.debug("Loaded keybindings (action -> key codes): %s", parsed_keybindings)
        return parsed_keybindings

    def _decode_keystring(self, key_input: str | int) -> int | str:
        """Decodes a key specification string or integer into a key code.

        Args:
            key_input: e.g. ``"n"``, ``"ctrl+q"``, ``"shift+g"``, ``"f10"`` or an int.

        Returns:
            int | str: The resolved key code, or an ``"alt-<key>"`` identifier.

        Raises:
            ValueError: If the key string is invalid or contains unknown modifiers.
        """
        if isinstance(key_input, int):
            return key_input

        if not isinstance(key_input, str):
            raise ValueError(
                f"Invalid key_input type: {type(key_input)}. Expected str or int."
            )

        original_key_string = key_input
        s = key_input.strip().lower()
        if not s:
            if key_input == " ":
                return ord(" ")
            raise ValueError("Key string cannot be empty.")

        parts = s.split("+")
        if "alt" in parts[:-1]:
            other_mods = sorted(m for m in parts[:-1] if m != "alt")
            prefix = "+".join(other_mods) + "+" if other_mods else ""
            return f"alt-{prefix}{parts[-1]}"
        if s.startswith("alt-"):
            return s

        named_keys_map: dict[str, int] = {
            "left": curses.KEY_LEFT,
            "right": curses.KEY_RIGHT,
            "up": curses.KEY_UP,
            "down": curses.KEY_DOWN,
            "home": curses.KEY_HOME,
            "end": getattr(curses, "KEY_END", curses.KEY_LL),
            "pageup": curses.KEY_PPAGE,
            "pgup": curses.KEY_PPAGE,
            "pagedown": curses.KEY_NPAGE,
            "pgdn": curses.KEY_NPAGE,
            "delete": curses.KEY_DC,
            "del": curses.KEY_DC,
            "backspace": curses.KEY_BACKSPACE,
            "insert": curses.KEY_IC,
            "tab": 9,
            "enter": curses.KEY_ENTER,
            "return": curses.KEY_ENTER,
            "space": ord(" "),
            "esc": 27,
            "escape": 27,
        }
        named_keys_map.update(
            {f"f{i}": getattr(curses, f"KEY_F{i}", 264 + i) for i in range(1, 13)}
        )

        if s in named_keys_map:
            return named_keys_map[s]

        # Keep the original case of single characters ("G" stays uppercase).
        if len(original_key_string.strip()) == 1:
            return ord(original_key_string.strip())

        base_key_str = parts[-1].strip()
        modifiers = set(p.strip() for p in parts[:-1])

        base_code: int
        if base_key_str in named_keys_map:
            base_code = named_keys_map[base_key_str]
        elif len(base_key_str) == 1:
            base_code = ord(base_key_str)
        else:
            raise ValueError(
                f"Unknown base key '{base_key_str}' in '{original_key_string}'"
            )

        if "ctrl" in modifiers:
            modifiers.remove("ctrl")
            if "a" <= base_key_str <= "z" and len(base_key_str) == 1:
                base_code = ord(base_key_str) - ord("a") + 1
            elif base_key_str == "\\":
                base_code = 28
            elif base_key_str == "]":
                base_code = 29

        if "shift" in modifiers:
            modifiers.remove("shift")
            if (
                "a" <= base_key_str <= "z"
                and len(base_key_str) == 1
                and base_code == ord(base_key_str)
            ):
                base_code = ord(base_key_str.upper())

        if modifiers:
            raise ValueError(
                f"Unknown or unhandled modifiers {list(modifiers)} in '{original_key_string}'"
            )

        return base_code

    def _command_action(self, name: str) -> Callable[[], bool]:
        def action() -> bool:
            return self.viewer.run_command(name)

        action.__name__ = name
        return action

    def _setup_action_map(self) -> dict[int | str, Callable[..., Any]]:
        """Constructs the mapping from key codes to viewer handlers and commands."""
        logging.debug("Setting up action map for KeyBinder.")
        action_to_method_map: dict[str, Callable[..., Any]] = {
            "handle_up": self.viewer.handle_up,
            "handle_down": self.viewer.handle_down,
            "handle_left": self.viewer.handle_left,
            "handle_right": self.viewer.handle_right,
            "handle_page_up": self.viewer.handle_page_up,
            "handle_page_down": self.viewer.handle_page_down,
            "handle_home": self.viewer.handle_home,
            "handle_end": self.viewer.handle_end,
            "cancel_operation": self.viewer.handle_escape,
        }
        for name in self.viewer.commands:
            action_to_method_map.setdefault(name, self._command_action(name))

        final_key_action_map: dict[int | str, Callable[..., Any]] = {
            curses.KEY_RESIZE: self.viewer.handle_resize,
        }

        for action_name, key_code_list in self.keybindings.items():
            method_callable = action_to_method_map.get(action_name)
            if not method_callable:
                logging.warning(
                    f"Action '{action_name}' in keybindings but no corresponding method. Ignored."
                )
                continue

            for key_code in key_code_list:
                existing = final_key_action_map.get(key_code)
                if existing is not None and existing.__name__ != method_callable.__name__:
                    logging.warning(
                        f"Keybinding for action '{action_name}' (key: {key_code}) is overwriting "
                        f"an existing mapping for method '{existing.__name__}'."
                    )
                final_key_action_map[key_code] = method_callable

        final_map_log_str = {k: v.__name__ for k, v in final_key_action_map.items()}
        logging.debug(f"Final constructed action map: {final_map_log_str}")
        return final_key_action_map

    def get_key_input(self, window: Optional[Any] = None) -> int | str:
        """Read a single key or key sequence from the terminal.

        Returns:
            int | str:
            - curses key code (int) for known keys,
            - "alt-<char>" for Alt/Meta chords,
            - 27 for a lone ESC,
            - curses.ERR on timeout or curses errors,
            - -1 for unexpected exceptions.
        """
        target = window or self.stdscr

        try:
            ch = target.getch()
            if ch != 27:
                return ch

            seq = ""
            target.nodelay(True)
            try:
                while True:
                    nx = target.getch()
                    if nx == curses.ERR:
                        break
                    if 0 <= nx <= 255:
                        seq += chr(nx)
                    else:
                        seq += f"<{nx}>"
            finally:
                target.nodelay(False)
                target.timeout(self.viewer.tick_ms)

            if not seq:
                return 27

            if seq[0] == "\x1b":
                seq = seq[1:]

            if len(seq) == 1 and seq.isprintable():
                return f"alt-{seq.lower()}"

            mapped = self.ESCAPE_SEQUENCE_MAP.get(seq)
            if not mapped:
                cleaned = "".join(re.findall(r"[\[O0-9;~A-Za-z]", seq))
                mapped = self.ESCAPE_SEQUENCE_MAP.get(cleaned)

            if mapped:
                code = self._decode_keystring(mapped)
                logging.debug("get_key_input: ESC %r -> %r -> code %r", seq, mapped, code)
                return code

            logging.warning("get_key_input: unknown escape sequence: ESC + %r", seq)
            return 27

        except curses.error:
            return curses.ERR
        except Exception:
            logging.exception("get_key_input: unexpected error")
            return -1
