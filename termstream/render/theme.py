# termstream/render/theme.py
"""Highlighting themes for the Markdown renderer.

A theme maps Pygments token types to a foreground colour plus bold and
underline attributes. Colours may carry an alpha channel (#RRGGBBAA);
partially transparent foregrounds are blended against the theme
background before being sent to the terminal, since terminals have no
notion of alpha.

Theme discovery order (first found wins):
1. <config_dir>/dark.yaml|dark.yml|dark.json (or light.*)
2. Built-in theme derived from a Pygments style (monokai / default)

Theme file format (YAML or JSON):

    base: monokai            # optional Pygments style to start from
    background: "#272822"
    code: "#e6db74"          # colour for code blocks of unknown language
    tokens:
      Keyword: {fg: "#f92672", bold: true}
      Comment: "#75715e99"   # shorthand for {fg: ...}
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pygments.styles import get_style_by_name
from pygments.token import Token, _TokenType, string_to_tokentype
from pygments.util import ClassNotFound
from rich.color import Color
from rich.style import Style

from ..errors import ConfigError

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

# Pygments style behind each built-in theme
BUILTIN_THEMES = {
    "dark": "monokai",
    "light": "default",
}

THEME_FILE_SUFFIXES = (".yaml", ".yml", ".json")

# Regex for validating hex colors, with optional alpha
HEX_COLOR_PATTERN = re.compile(r'^#?([0-9A-Fa-f]{6})([0-9A-Fa-f]{2})?$')

_FALLBACK_CODE_STYLE = Style(color="yellow")


def is_hex_color(value: str) -> bool:
    """Check if a string is a #RRGGBB or #RRGGBBAA colour."""
    return bool(HEX_COLOR_PATTERN.match(value))


def parse_hex_color(value: str) -> RGBA:
    """Convert a hex colour string to an RGBA tuple.

    Args:
        value: "#FF5500" or "#FF550080" (leading # optional).

    Returns:
        Tuple of (R, G, B, A) integers 0-255; alpha defaults to 255.

    Raises:
        ValueError: If the string is not a hex colour.
    """
    match = HEX_COLOR_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid hex color: {value!r}")
    rgb, alpha = match.groups()
    return (
        int(rgb[0:2], 16),
        int(rgb[2:4], 16),
        int(rgb[4:6], 16),
        int(alpha, 16) if alpha else 0xff,
    )


def blend_fg_color(fg: RGBA, bg: RGBA) -> RGBA:
    """Blend a translucent foreground over the background.

    Each channel is linearly interpolated, weighted by the foreground
    alpha. Opaque colours pass through unchanged.
    """
    if fg[3] == 0xff:
        return fg
    ratio = fg[3]
    r = (fg[0] * ratio + bg[0] * (255 - ratio)) // 255
    g = (fg[1] * ratio + bg[1] * (255 - ratio)) // 255
    b = (fg[2] * ratio + bg[2] * (255 - ratio)) // 255
    return (min(r, 255), min(g, 255), min(b, 255), 0xff)


@dataclass(frozen=True)
class TokenStyle:
    """Style of one token type.

    Attributes:
        fg: Foreground colour (RGBA) or None for the terminal default.
        bold: Render in bold.
        underline: Render underlined.
    """
    fg: Optional[RGBA] = None
    bold: bool = False
    underline: bool = False


@dataclass
class Theme:
    """Token styles plus the background used for alpha blending."""
    name: str
    background: RGBA = (0, 0, 0, 0xff)
    token_styles: Dict[_TokenType, TokenStyle] = field(default_factory=dict)
    code_color: Optional[RGBA] = None
    _rich_styles: Dict[_TokenType, Style] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def token_style(self, ttype: _TokenType) -> TokenStyle:
        """Resolve a token's style, inheriting from parent token types."""
        node = ttype
        while node is not None:
            style = self.token_styles.get(node)
            if style is not None:
                return style
            node = node.parent
        return TokenStyle()

    def style_for(self, ttype: _TokenType) -> Style:
        """Rich style for a token type, with the foreground blended."""
        style = self._rich_styles.get(ttype)
        if style is None:
            spec = self.token_style(ttype)
            color = None
            if spec.fg is not None:
                r, g, b, _ = blend_fg_color(spec.fg, self.background)
                color = Color.from_rgb(r, g, b)
            style = Style(color=color, bold=spec.bold, underline=spec.underline)
            self._rich_styles[ttype] = style
        return style

    def code_style(self) -> Style:
        """Flat style for code blocks whose language is unknown."""
        if self.code_color is None:
            return _FALLBACK_CODE_STYLE
        r, g, b, _ = blend_fg_color(self.code_color, self.background)
        return Style(color=Color.from_rgb(r, g, b))

    @classmethod
    def from_pygments(cls, style_name: str) -> "Theme":
        """Build a theme from a Pygments style.

        Raises:
            ConfigError: If Pygments has no style of that name.
        """
        try:
            style_cls = get_style_by_name(style_name)
        except ClassNotFound as e:
            raise ConfigError(f"Unknown pygments style: {style_name}") from e

        token_styles: Dict[_TokenType, TokenStyle] = {}
        for ttype, info in style_cls:
            fg = None
            color = info.get("color")
            if color and is_hex_color(color):
                fg = parse_hex_color(color)
            token_styles[ttype] = TokenStyle(
                fg=fg,
                bold=bool(info.get("bold")),
                underline=bool(info.get("underline")),
            )

        background = (0, 0, 0, 0xff)
        if style_cls.background_color and is_hex_color(style_cls.background_color):
            background = parse_hex_color(style_cls.background_color)

        theme = cls(name=style_name, background=background, token_styles=token_styles)
        theme.code_color = theme.token_style(Token.Literal.String).fg
        return theme

    @classmethod
    def from_dict(cls, data: Dict[str, Any], name: str = "custom") -> "Theme":
        """Build a theme from parsed theme-file data.

        Raises:
            ConfigError: If a colour or token name is invalid.
        """
        if not isinstance(data, dict):
            raise ConfigError("Theme must be a mapping")

        base = data.get("base")
        if base:
            theme = cls.from_pygments(str(base))
            theme.name = name
        else:
            theme = cls(name=name)

        try:
            if "background" in data:
                theme.background = parse_hex_color(str(data["background"]))
            if "code" in data:
                theme.code_color = parse_hex_color(str(data["code"]))

            for token_name, spec in (data.get("tokens") or {}).items():
                ttype = _parse_token_name(str(token_name))
                if isinstance(spec, str):
                    spec = {"fg": spec}
                if not isinstance(spec, dict):
                    raise ConfigError(f"Invalid style for token {token_name}")
                fg = spec.get("fg")
                theme.token_styles[ttype] = TokenStyle(
                    fg=parse_hex_color(str(fg)) if fg else None,
                    bold=bool(spec.get("bold", False)),
                    underline=bool(spec.get("underline", False)),
                )
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if theme.code_color is None:
            theme.code_color = theme.token_style(Token.Literal.String).fg
        theme._rich_styles.clear()
        return theme

    @classmethod
    def from_file(cls, path: Path) -> "Theme":
        """Load a theme from a YAML or JSON file.

        Raises:
            ConfigError: If the file cannot be read or parsed.
        """
        try:
            content = path.read_text(encoding="utf-8")
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Invalid theme at {path}: {e}") from e

        try:
            return cls.from_dict(data or {}, name=path.stem)
        except ConfigError as e:
            raise ConfigError(f"Invalid theme at {path}: {e}") from e


def _parse_token_name(name: str) -> _TokenType:
    """Convert "Keyword.Constant" or "Token.Keyword" to a token type."""
    if name == "Token":
        return Token
    if name.startswith("Token."):
        name = name[len("Token."):]
    return string_to_tokentype(name)


def find_theme_file(config_dir: Optional[Path], mode: str) -> Optional[Path]:
    """Locate a user theme file for "dark" or "light" mode."""
    if config_dir is None:
        return None
    for suffix in THEME_FILE_SUFFIXES:
        path = Path(config_dir) / f"{mode}{suffix}"
        if path.is_file():
            return path
    return None


def load_theme(light: bool = False, config_dir: Optional[Path] = None) -> Theme:
    """Load the theme for the given mode.

    A user theme file in `config_dir` wins over the built-in theme.

    Args:
        light: Use the light theme instead of the dark one.
        config_dir: Directory searched for dark.* / light.* theme files.

    Returns:
        The loaded Theme.

    Raises:
        ConfigError: If a user theme file exists but is invalid.
    """
    mode = "light" if light else "dark"
    path = find_theme_file(config_dir, mode)
    if path is not None:
        logger.debug("Loading %s theme from %s", mode, path)
        return Theme.from_file(path)
    return Theme.from_pygments(BUILTIN_THEMES[mode])


def light_theme_from_colorfgbg(colorfgbg: str) -> Optional[bool]:
    """Decide between light and dark theme from the COLORFGBG variable.

    COLORFGBG is "fg;bg" or "fg;default;bg" with 256-colour indexes.

    Returns:
        True for a light background, False for a dark one, None if the
        value cannot be interpreted.
    """
    parts = colorfgbg.split(";")
    if len(parts) == 2:
        bg = parts[1]
    elif len(parts) == 3:
        bg = parts[2]
    else:
        return None
    try:
        index = int(bg)
    except ValueError:
        return None
    if not 0 <= index <= 255:
        return None
    r, g, b = Color.from_ansi(index).get_truecolor()
    luminance = 0.2126 * r + 0.7152 * g + 0.0722 * b
    return luminance > 128.0
