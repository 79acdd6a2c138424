# errmark/utils/utils.py
"""
errmark.utils.utils.py
======================

Core utility functions for the errmark log viewer.

Key functionalities include:
- Automatic User Configuration: creates and loads the user configuration
  files (`config.toml`, `.env`) in `~/.config/errmark` (or the directory named
  by `ERRMARK_CONFIG_DIR`) so the first run works without setup.
- Layered Configuration Loading: starts from the embedded default
  configuration and recursively merges user settings from `config.toml`.
- File Reading: reads log files with encoding detection via `chardet`.
- Helper Utilities: dictionary deep-merge, colour conversion and terminal
  cell-width helpers.

The viewer is always runnable: missing or broken user configuration falls
back to the embedded defaults.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import chardet
import toml
from wcwidth import wcwidth

logger = logging.getLogger("errmark")

# --- Constants ---
CALM_BG_IDX = 236
WHITE_FG_IDX = 255
CHARDET_SAMPLE_SIZE = 1024 * 20
CHARDET_MIN_CONFIDENCE = 0.75

ENV_TEMPLATE = """# Environment switches for errmark
# Set to 1 to write raw key presses to keytrace.log
ERRMARK_KEYTRACE=
"""

# Hardcoded mirror of the bundled `config.toml`.
# It is the last fallback, so the viewer can ALWAYS start.
DEFAULT_CONFIG: Dict[str, Any] = {
    "highlight": {
        "enabled": True,
        "debounce_seconds": 3.0,
        "face": "error_line",
    },
    "viewer": {
        "follow_file": True,
        "reload_interval": 1.0,
        "tick_ms": 100,
        "show_line_numbers": True,
    },
    "colors": {
        "error_line": "#F85149",
        "error_line_bg": "#3A1D1D",
        "line_number": "#817248",
        "status": "#C9D1D9",
        "panel_selection": "#000000",
        "panel_selection_bg": "#FFAB70",
    },
    "keybindings": {
        "next_error": "n",
        "previous_error": "p",
        "list_errors": "l",
        "toggle_highlighting": "h",
        "show_menu": ["f10", "m"],
        "quit": ["q", "ctrl+q"],
        "handle_up": ["up", "k"],
        "handle_down": ["down", "j"],
        "handle_page_up": ["pageup"],
        "handle_page_down": ["pagedown", "space"],
        "handle_home": ["home", "g"],
        "handle_end": ["end", "shift+g"],
        "cancel_operation": "esc",
    },
    "logging": {
        "file_level": "DEBUG",
        "console_level": "WARNING",
        "log_to_console": False,
        "separate_error_log": False,
    },
}


# --- Helper Functions ---

def get_project_root() -> Path:
    """Determines the project's root directory for finding template files."""
    return Path(__file__).resolve().parents[3]


def get_config_dir() -> Path:
    """Returns the user configuration directory, honouring `ERRMARK_CONFIG_DIR`."""
    override = os.environ.get("ERRMARK_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "errmark"


def ensure_user_config_exists() -> None:
    """Checks for user config files and creates them from templates if missing."""
    try:
        config_dir = get_config_dir()
        user_config_path = config_dir / "config.toml"
        user_env_path = config_dir / ".env"

        config_dir.mkdir(parents=True, exist_ok=True)

        if not user_config_path.exists():
            source_config_path = get_project_root() / "config.toml"
            if source_config_path.exists():
                shutil.copy(source_config_path, user_config_path)
                logger.info(f"Created user config template at: {user_config_path}")

        if not user_env_path.exists():
            user_env_path.write_text(ENV_TEMPLATE, encoding="utf-8")
            logger.info(f"Created user .env template at: {user_env_path}")

    except Exception as e:
        logger.critical(f"Could not create user configuration files: {e}", exc_info=True)


def load_config() -> Dict[str, Any]:
    """
    Loads and merges configurations, ensuring the viewer can always run.
    """
    final_config = deep_merge({}, DEFAULT_CONFIG)
    logger.debug("Loaded embedded default configuration.")

    ensure_user_config_exists()

    user_config_path = get_config_dir() / "config.toml"
    if user_config_path.is_file():
        try:
            user_config = toml.load(user_config_path)
            final_config = deep_merge(final_config, user_config)
            logger.info(f"Successfully loaded and merged user config from {user_config_path}")
        except Exception as e:
            logger.error(f"Could not parse user config '{user_config_path}': {e}. Using defaults.")

    return final_config


def deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Recursively merges the `override` dictionary into the `base` dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def hex_to_xterm(hex_color: str) -> int:
    """
    Converts a hexadecimal color string to the nearest xterm-256 color index.
    """
    hex_color = hex_color.lstrip("#")
    if len(hex_color) != 6:
        return WHITE_FG_IDX
    try:
        r, g, b = (int(hex_color[i:i+2], 16) for i in (0, 2, 4))
    except ValueError:
        return WHITE_FG_IDX

    if r == g == b:
        if r < 8: return 16
        if r > 248: return 231
        return round(((r - 8) / 247) * 24) + 232

    return int(
        16
        + (36 * round(r / 255 * 5))
        + (6 * round(g / 255 * 5))
        + round(b / 255 * 5)
    )


def get_char_width(ch: str) -> int:
    """Width in terminal cells of one code point; non-printables count as 1."""
    w = wcwidth(ch)
    return 1 if w < 0 else w


def get_string_width(text: str) -> int:
    return sum(get_char_width(ch) for ch in text)


def truncate_to_width(s: str, max_width: int) -> str:
    """Return `s` clipped to `max_width` cells without splitting wide glyphs."""
    result: List[str] = []
    consumed = 0
    for ch in s:
        w = get_char_width(ch)
        if consumed + w > max_width:
            break
        result.append(ch)
        consumed += w
    return "".join(result)


def _encodings_to_try(encoding_guess: Optional[str], confidence: float) -> List[Tuple[str, str]]:
    """Ordered, de-duplicated (encoding, errors) attempts for a chardet guess."""
    ordered: List[Tuple[str, str]] = []
    if encoding_guess and confidence >= CHARDET_MIN_CONFIDENCE:
        ordered.append((encoding_guess, "strict"))
    ordered.extend([("utf-8", "strict"), ("latin-1", "strict")])
    if encoding_guess and confidence < CHARDET_MIN_CONFIDENCE:
        ordered.append((encoding_guess, "replace"))
    ordered.append(("utf-8", "replace"))

    unique: List[Tuple[str, str]] = []
    for pair in ordered:
        if pair not in unique:
            unique.append(pair)
    return unique


def read_text_file(path: str) -> Tuple[List[str], str]:
    """
    Reads a text file into lines, detecting its encoding with chardet.

    Returns:
        (lines, encoding): Lines without newline characters (`[""]` for an
        empty file) and the encoding that decoded the file.

    Raises:
        OSError: If the file cannot be opened.
        UnicodeError: If no candidate encoding could decode the content.
    """
    with open(path, "rb") as f_binary:
        raw_data = f_binary.read()

    if not raw_data:
        return [""], "utf-8"

    chardet_result = chardet.detect(raw_data[:CHARDET_SAMPLE_SIZE])
    encoding_guess = chardet_result.get("encoding")
    confidence = chardet_result.get("confidence") or 0.0
    logger.debug(
        f"Chardet detected encoding '{encoding_guess}' with confidence {confidence:.2f} for '{path}'."
    )

    for encoding, errors in _encodings_to_try(encoding_guess, confidence):
        try:
            lines = raw_data.decode(encoding, errors=errors).splitlines()
        except (UnicodeDecodeError, LookupError) as e_read:
            logger.debug(f"Failed to decode '{path}' as {encoding} (errors={errors}): {e_read}")
            continue
        return (lines or [""]), encoding

    raise UnicodeError(f"Could not decode '{path}'")
