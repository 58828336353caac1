"""Pytest fixtures for render tests.

ScreenTerminal feeds everything the renderer writes through a pyte
virtual screen, so tests can assert on what a user would actually see
after cursor movement, erasing and auto-wrap have been applied.
"""

import io
import time
from contextlib import contextmanager
from typing import Iterable, Optional

import pyte
import pytest

from termstream.terminal import Terminal


class ScreenTerminal(Terminal):
    """Terminal backed by a pyte screen instead of a TTY.

    Like a TTY in raw mode, a bare "\\n" moves down without returning
    to column 0. Keys are served from a scripted list.
    """

    def __init__(self, columns: int = 20, lines: int = 40, keys: Iterable[str] = ()):
        super().__init__(output=io.StringIO())
        self.screen = pyte.Screen(columns, lines)
        self.stream = pyte.Stream(self.screen)
        self.keys = list(keys)
        self.raw_mode_count = 0
        self.written = []

    def is_terminal(self) -> bool:
        return True

    def size(self):
        return self.screen.columns, self.screen.lines

    @contextmanager
    def raw_mode(self):
        self.raw_mode_count += 1
        yield self

    def _write(self, data: str) -> None:
        self.written.append(data)
        self.stream.feed(data)

    def cursor_position(self, timeout: float = 2.0):
        self.flush()
        # A pending wrap is reported as the last column, like xterm does
        x = min(self.screen.cursor.x, self.screen.columns - 1)
        return x, self.screen.cursor.y

    def poll_key(self, timeout: float) -> Optional[str]:
        if self.keys:
            return self.keys.pop(0)
        time.sleep(min(timeout, 0.005))
        return None

    def lines(self):
        """Visible text with trailing blank lines and padding removed."""
        rows = [row.rstrip() for row in self.screen.display]
        while rows and not rows[-1]:
            rows.pop()
        return rows


@pytest.fixture
def make_terminal():
    """Factory for ScreenTerminal instances."""
    return ScreenTerminal
