# termstream/config.py
"""Render configuration.

Settings are resolved from, lowest to highest priority:
1. Built-in defaults
2. Config file: <config_dir>/config.yaml (or .yml / .json)
3. Environment variables TERMSTREAM_<KEY> (optionally loaded from a
   .env file)
4. NO_COLOR disables highlighting; COLORFGBG picks the light theme when
   light_theme is not configured explicitly

The config directory is TERMSTREAM_CONFIG_DIR, defaulting to
~/.config/termstream. It also holds user theme files (dark.yaml,
light.yaml).

Example config.yaml:

    highlight: true
    light_theme: false
    wrap: auto          # no | auto | <max width>
    wrap_code: false
    tick_rate_ms: 50
    cursor_fix: true
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .render.markdown import RenderOptions
from .render.stream import CursorQuirk, exact_width_wrap_quirk
from .render.theme import light_theme_from_colorfgbg, load_theme

logger = logging.getLogger(__name__)

ENV_PREFIX = "TERMSTREAM_"
CONFIG_FILE_NAMES = ("config.yaml", "config.yml", "config.json")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def get_env_name(key: str) -> str:
    """Environment variable for a config key, e.g. wrap -> TERMSTREAM_WRAP."""
    return f"{ENV_PREFIX}{key.upper()}"


def get_config_dir() -> Path:
    value = os.environ.get(get_env_name("config_dir"))
    if value:
        return Path(value).expanduser()
    return Path.home() / ".config" / "termstream"


def parse_bool(value: Union[str, bool, int]) -> bool:
    """Parse a boolean setting.

    Raises:
        ConfigError: If the value is not a recognised boolean.
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean value: {value!r}")


@dataclass
class RenderConfig:
    """User-facing rendering settings.

    Attributes:
        highlight: Syntax-highlight the output.
        light_theme: Use the light highlighting theme.
        wrap: None (no wrapping), "auto" or a maximum width.
        wrap_code: Also wrap lines inside code blocks.
        tick_rate_ms: Spinner / key polling period.
        cursor_fix: Correct the exact-width wrap cursor quirk.
        config_dir: Directory holding config and theme files.
    """
    highlight: bool = True
    light_theme: bool = False
    wrap: Optional[str] = None
    wrap_code: bool = False
    tick_rate_ms: int = 50
    cursor_fix: bool = True
    config_dir: Optional[Path] = None

    @classmethod
    def load(
        cls,
        config_dir: Optional[Union[str, Path]] = None,
        env_file: Optional[str] = None,
    ) -> "RenderConfig":
        """Load configuration from file and environment.

        Args:
            config_dir: Config directory; defaults to get_config_dir().
            env_file: Optional .env file loaded before reading the
                environment. Existing variables are not overridden.

        Raises:
            ConfigError: On unreadable files or invalid values.
        """
        if env_file:
            load_dotenv(env_file)

        directory = Path(config_dir).expanduser() if config_dir else get_config_dir()
        config = cls(config_dir=directory)

        for name in CONFIG_FILE_NAMES:
            path = directory / name
            if path.is_file():
                config.apply(_read_config_file(path))
                break

        config.apply_env()
        config.setup_highlight()
        config.setup_light_theme()
        return config

    def apply(self, data: Dict[str, Any]) -> None:
        """Apply settings from a parsed config file."""
        if "highlight" in data:
            self.highlight = parse_bool(data["highlight"])
        if "light_theme" in data:
            self.light_theme = parse_bool(data["light_theme"])
        if "wrap" in data:
            # YAML reads a bare `no` as False
            value = data["wrap"]
            self.set_wrap("no" if value is False or value is None else str(value))
        if "wrap_code" in data:
            self.wrap_code = parse_bool(data["wrap_code"])
        if "tick_rate_ms" in data:
            self.set_tick_rate(data["tick_rate_ms"])
        if "cursor_fix" in data:
            self.cursor_fix = parse_bool(data["cursor_fix"])

    def apply_env(self) -> None:
        """Apply TERMSTREAM_* environment overrides (except light_theme)."""
        for key in ("highlight", "wrap_code", "cursor_fix"):
            value = os.environ.get(get_env_name(key))
            if value is not None:
                setattr(self, key, parse_bool(value))
        wrap = os.environ.get(get_env_name("wrap"))
        if wrap is not None:
            self.set_wrap(wrap)
        tick_rate = os.environ.get(get_env_name("tick_rate_ms"))
        if tick_rate is not None:
            self.set_tick_rate(tick_rate)

    def set_wrap(self, value: str) -> None:
        """Set the wrapping mode: "no", "auto" or a positive width.

        Raises:
            ConfigError: For any other value.
        """
        value = value.strip()
        if value == "no":
            self.wrap = None
        elif value == "auto":
            self.wrap = value
        else:
            try:
                width = int(value)
            except ValueError:
                raise ConfigError("Invalid wrap value") from None
            if width <= 0:
                raise ConfigError("Invalid wrap value")
            self.wrap = str(width)

    def set_tick_rate(self, value: Any) -> None:
        try:
            tick_rate = int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid tick_rate_ms value: {value!r}") from None
        if tick_rate <= 0:
            raise ConfigError(f"Invalid tick_rate_ms value: {value!r}")
        self.tick_rate_ms = tick_rate

    def setup_highlight(self) -> None:
        """Honour the NO_COLOR convention."""
        value = os.environ.get("NO_COLOR")
        if value is None:
            return
        try:
            no_color = parse_bool(value)
        except ConfigError:
            # Any non-empty NO_COLOR value means "no colour"
            no_color = bool(value)
        if no_color:
            self.highlight = False

    def setup_light_theme(self) -> None:
        """Pick the light theme from the environment unless already set."""
        if self.light_theme:
            return
        value = os.environ.get(get_env_name("light_theme"))
        if value is not None:
            self.light_theme = parse_bool(value)
            return
        colorfgbg = os.environ.get("COLORFGBG")
        if colorfgbg:
            light = light_theme_from_colorfgbg(colorfgbg)
            if light is not None:
                self.light_theme = light

    @property
    def tick_rate(self) -> float:
        """Tick period in seconds."""
        return self.tick_rate_ms / 1000.0

    @property
    def cursor_quirk(self) -> Optional[CursorQuirk]:
        return exact_width_wrap_quirk if self.cursor_fix else None

    def render_options(self, is_terminal: bool = True) -> RenderOptions:
        """Build the options for a MarkdownRender.

        Wrapping only applies when the output is a terminal.

        Raises:
            ConfigError: If a user theme file is invalid.
        """
        theme = load_theme(self.light_theme, self.config_dir) if self.highlight else None
        wrap = self.wrap if is_terminal else None
        return RenderOptions(theme=theme, wrap=wrap, wrap_code=self.wrap_code)


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Parse a YAML or JSON config file into a dict."""
    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid config at {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    logger.debug("Loaded config from %s", path)
    return data
