# termstream/render/markdown.py
"""Line-oriented Markdown rendering for streamed model output.

Text is classified one physical line at a time as prose or fenced code,
then highlighted and wrapped for the terminal. Classification is a pure
transition over RenderState, which gives the renderer two paths built
from the same function:

- render(): commits the new state after every line (finished lines)
- render_line(): peeks at the state without committing (the partial
  line that is still being redrawn)

Each line is highlighted on its own with no lexer state carried over
from previous lines, so a partial line always renders the same way as
its finished counterpart would start.

Usage:
    render = MarkdownRender(RenderOptions(theme=load_theme(), wrap="auto"))
    committed = render.render("Some **bold** text\\n```python")
    pending = render.render_line("print('hi')")
"""

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from rich.color import ColorSystem
from rich.console import Console
from rich.text import Text

from ..errors import ConfigError
from ..terminal import Terminal
from .syntaxes import MARKDOWN_SYNTAX, find_syntax, get_lexer, sniff_syntax
from .theme import Theme

logger = logging.getLogger(__name__)

FENCE = "```"


class LineType(Enum):
    """Classification of the most recently finished line."""
    NORMAL = "normal"
    CODE_BEGIN = "code_begin"
    CODE_INNER = "code_inner"
    CODE_END = "code_end"


@dataclass(frozen=True)
class RenderState:
    """Classifier state between lines.

    Attributes:
        line_type: Type of the last committed line.
        code_syntax: Syntax of the open code block, if resolved.
    """
    line_type: LineType = LineType.NORMAL
    code_syntax: Optional[str] = None


@dataclass
class RenderOptions:
    """Rendering configuration, fixed for the lifetime of a render.

    Attributes:
        theme: Highlighting theme, or None to disable highlighting.
        wrap: "auto" to wrap at the terminal width, a number for a
            maximum width, or None to disable wrapping.
        wrap_code: Whether code block lines are wrapped too.
    """
    theme: Optional[Theme] = None
    wrap: Optional[str] = None
    wrap_code: bool = False


def detect_code_block(line: str) -> Optional[str]:
    """Check whether a line is a code fence.

    Returns:
        The fence's language tag ("" when absent), or None if the line
        is not a fence.
    """
    if not line.startswith(FENCE):
        return None
    lang = []
    for char in line[len(FENCE):]:
        if not char.isalnum():
            break
        lang.append(char)
    return "".join(lang)


def check_line(state: RenderState, line: str) -> Tuple[RenderState, bool]:
    """Classify the next physical line.

    Args:
        state: State after the previous line.
        line: The line to classify, without its newline.

    Returns:
        Tuple of (state after this line, whether the line is code).
    """
    line_type = state.line_type
    code_syntax = state.code_syntax
    is_code = False

    lang = detect_code_block(line)
    if lang is not None:
        if line_type in (LineType.NORMAL, LineType.CODE_END):
            line_type = LineType.CODE_BEGIN
            code_syntax = find_syntax(lang) if lang else None
        else:
            line_type = LineType.CODE_END
            code_syntax = None
    elif line_type == LineType.CODE_END:
        line_type = LineType.NORMAL
    elif line_type in (LineType.CODE_BEGIN, LineType.CODE_INNER):
        if code_syntax is None:
            code_syntax = sniff_syntax(line)
        line_type = LineType.CODE_INNER
        is_code = True

    return RenderState(line_type=line_type, code_syntax=code_syntax), is_code


def resolve_wrap_width(wrap: Optional[str], columns: Optional[int]) -> Optional[int]:
    """Turn the wrap option into a column count.

    Args:
        wrap: None, "auto" or a positive number as a string.
        columns: Terminal width, or None if unknown.

    Returns:
        The wrap width, or None when wrapping is disabled.

    Raises:
        ConfigError: If `wrap` is not "auto" or a number.
    """
    if wrap is None or columns is None:
        return None
    if wrap == "auto":
        return columns
    try:
        value = int(wrap)
    except ValueError:
        raise ConfigError("Invalid wrap value") from None
    if value <= 0:
        raise ConfigError("Invalid wrap value")
    return min(columns, value)


class MarkdownRender:
    """Stateful line renderer: classification, highlighting, wrapping."""

    def __init__(self, options: RenderOptions, columns: Optional[int] = None):
        """Create a renderer.

        Args:
            options: Theme and wrapping options.
            columns: Terminal width used to resolve the wrap option.
                Queried from the environment when None.
        """
        self.options = options
        if columns is None and options.wrap is not None:
            columns = Terminal().size()[0]
        self.wrap_width = resolve_wrap_width(options.wrap, columns)
        self._state = RenderState()
        # Never written to; used for measuring and styling only
        self._console = Console(
            file=io.StringIO(),
            force_terminal=True,
            color_system="truecolor",
            highlight=False,
            width=max(columns or 80, 1),
        )

    @property
    def state(self) -> RenderState:
        return self._state

    def render(self, text: str) -> str:
        """Render finished lines, advancing the classifier state.

        Args:
            text: One or more lines separated by "\\n".

        Returns:
            The rendered lines joined by "\\n".
        """
        return "\n".join(self._render_line_mut(line) for line in text.split("\n"))

    def render_line(self, line: str) -> str:
        """Render a line without committing the classifier state."""
        state, is_code = check_line(self._state, line)
        if is_code:
            return self.highlight_code_line(line, state.code_syntax)
        return self.highlight_line(line, MARKDOWN_SYNTAX, False)

    def _render_line_mut(self, line: str) -> str:
        state, is_code = check_line(self._state, line)
        if is_code:
            output = self.highlight_code_line(line, state.code_syntax)
        else:
            output = self.highlight_line(line, MARKDOWN_SYNTAX, False)
        self._state = state
        return output

    def highlight_line(self, line: str, syntax: str, is_code: bool) -> str:
        """Highlight one line with a syntax, then wrap it.

        Leading whitespace is kept verbatim in front of the highlighted
        remainder. Without a theme, or if highlighting fails, the line
        passes through unstyled.
        """
        text = None
        theme = self.options.theme
        if theme is not None:
            trimmed = line.lstrip()
            indent = line[:len(line) - len(trimmed)]
            try:
                text = Text(indent)
                for ttype, value in get_lexer(syntax).get_tokens(trimmed):
                    text.append(value, style=theme.style_for(ttype))
            except Exception as e:
                logger.debug("Highlighting with %s failed: %s", syntax, e)
                text = None
        if text is None:
            text = Text(line)
        return self.wrap_line(text, is_code)

    def highlight_code_line(self, line: str, code_syntax: Optional[str]) -> str:
        if code_syntax is not None:
            return self.highlight_line(line, code_syntax, True)
        text = Text()
        theme = self.options.theme
        # A span rather than the base style: rendering only emits spans
        text.append(line, style=theme.code_style() if theme is not None else None)
        return self.wrap_line(text, True)

    def wrap_line(self, text: Text, is_code: bool) -> str:
        """Wrap a styled line to the wrap width and render it as ANSI.

        Code lines are left intact unless wrap_code is set, even when
        they overflow the terminal.
        """
        if self.wrap_width is None or (is_code and not self.options.wrap_code):
            return self._to_ansi(text)
        lines = text.wrap(self._console, self.wrap_width, overflow="fold")
        rows = []
        for row in lines:
            row.rstrip()
            rows.append(self._to_ansi(row))
        return "\n".join(rows)

    def _to_ansi(self, text: Text) -> str:
        parts = []
        for segment in text.render(self._console):
            if segment.style:
                parts.append(segment.style.render(segment.text, color_system=ColorSystem.TRUECOLOR))
            else:
                parts.append(segment.text)
        return "".join(parts)
