# termstream/display_width.py
"""Display width utilities for terminal row accounting.

Measures how many terminal columns rendered text occupies, ignoring
ANSI escape sequences and accounting for wide (CJK), ambiguous-width
and zero-width characters.
"""

import os
import re
import unicodedata

import wcwidth

# CSI sequences (SGR colours, cursor movement) and OSC hyperlinks
_ANSI_ESCAPE_PATTERN = re.compile(r'\x1b\[[0-9;?]*[A-Za-z~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)')


def _get_ambiguous_width() -> int:
    """Get the width to use for East Asian Ambiguous characters.

    Reads from TERMSTREAM_AMBIGUOUS_WIDTH environment variable.
    Default is 1 (standard Western terminals).
    Set to 2 for CJK terminals or terminals with ambiguous width = wide.
    """
    value = os.environ.get("TERMSTREAM_AMBIGUOUS_WIDTH", "1")
    return 2 if value.strip() == "2" else 1


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return _ANSI_ESCAPE_PATTERN.sub('', text)


def display_width(text: str) -> int:
    """Calculate the display width of a string in terminal columns.

    Escape sequences count as zero columns. Fullwidth and Wide
    characters count as 2, Ambiguous ones per TERMSTREAM_AMBIGUOUS_WIDTH,
    zero-width and non-printable characters as 0.

    Args:
        text: The string to measure, possibly containing ANSI codes.

    Returns:
        The display width in terminal columns.
    """
    ambiguous_width = _get_ambiguous_width()
    width = 0
    for char in strip_ansi(text):
        wc = wcwidth.wcwidth(char)
        if wc <= 0:
            continue
        eaw = unicodedata.east_asian_width(char)
        if eaw in ('F', 'W'):
            width += 2
        elif eaw == 'A':
            width += ambiguous_width
        else:
            width += 1
    return width


def need_rows(text: str, columns: int) -> int:
    """Number of terminal rows a single rendered line occupies.

    An empty line still occupies one row.

    Args:
        text: Rendered line without newlines.
        columns: Terminal width.

    Returns:
        ceil(max(width, 1) / columns).
    """
    columns = max(1, columns)
    width = max(display_width(text), 1)
    return (width + columns - 1) // columns
