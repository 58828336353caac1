# termstream/terminal.py
"""ANSI terminal control for the streaming renderer.

Output operations are queued and written in one go on flush(), so a
redraw reaches the terminal as a single write. Input is read from the
controlling TTY in raw mode: the cursor position report and the key
poller share one input buffer, so keys typed while a position query is
in flight are not lost.

Usage:
    term = Terminal()
    with term.raw_mode():
        col, row = term.cursor_position()
        term.move_to(0, row)
        term.clear_from_cursor_down()
        term.print("hello")
        term.flush()
        key = term.poll_key(0.05)   # "ctrl-c", "ctrl-d", "a", ... or None
"""

import logging
import os
import re
import select
import shutil
import sys
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional, TextIO, Tuple

from .errors import TerminalError

logger = logging.getLogger(__name__)

CSI = "\x1b["

# Cursor Position Report: ESC [ row ; col R (1-based)
_CPR_PATTERN = re.compile(rb'\x1b\[(\d+);(\d+)R')
_CSI_KEY_PATTERN = re.compile(rb'\x1b\[[0-9;]*[A-Za-z~]')

_CONTROL_KEYS = {
    b'\x03': 'ctrl-c',
    b'\x04': 'ctrl-d',
    b'\r': 'enter',
    b'\n': 'enter',
    b'\t': 'tab',
    b'\x7f': 'backspace',
}

_CSI_KEYS = {
    b'A': 'up',
    b'B': 'down',
    b'C': 'right',
    b'D': 'left',
}


class Terminal:
    """Thin wrapper over an ANSI terminal attached to stdin/stdout."""

    def __init__(self, output: Optional[TextIO] = None, input_fd: Optional[int] = None):
        self._output = output if output is not None else sys.stdout
        self._input_fd = input_fd
        self._queued: List[str] = []
        self._pending_input = b""

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    def is_terminal(self) -> bool:
        """Whether the output stream is an interactive terminal."""
        isatty = getattr(self._output, "isatty", None)
        return bool(isatty and isatty())

    def size(self) -> Tuple[int, int]:
        """Return (columns, rows) of the terminal."""
        try:
            size = os.get_terminal_size(self._output.fileno())
        except (AttributeError, ValueError, OSError):
            size = shutil.get_terminal_size()
        return size.columns, size.lines

    @property
    def output(self) -> TextIO:
        return self._output

    @property
    def input_fd(self) -> int:
        if self._input_fd is None:
            self._input_fd = sys.stdin.fileno()
        return self._input_fd

    @contextmanager
    def raw_mode(self) -> Iterator["Terminal"]:
        """Put the input TTY in raw mode for the duration of the block.

        The previous settings are restored on every exit path, including
        exceptions raised inside the block.
        """
        import termios
        import tty

        fd = self.input_fd
        try:
            old_settings = termios.tcgetattr(fd)
        except termios.error as e:
            raise TerminalError(f"Failed to enable raw mode: {e}") from e
        try:
            tty.setraw(fd)
            yield self
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

    # ------------------------------------------------------------------
    # Queued output
    # ------------------------------------------------------------------

    def print(self, text: str) -> None:
        if text:
            self._queued.append(text)

    def newline(self) -> None:
        self._queued.append("\n")

    def move_to(self, col: int, row: int) -> None:
        """Move to an absolute 0-based position."""
        self._queued.append(f"{CSI}{row + 1};{col + 1}H")

    def move_to_column(self, col: int) -> None:
        self._queued.append(f"{CSI}{col + 1}G")

    def move_left(self, count: int) -> None:
        if count > 0:
            self._queued.append(f"{CSI}{count}D")

    def scroll_up(self, count: int) -> None:
        if count > 0:
            self._queued.append(f"{CSI}{count}S")

    def clear_from_cursor_down(self) -> None:
        self._queued.append(f"{CSI}J")

    def hide_cursor(self) -> None:
        self._queued.append(f"{CSI}?25l")

    def show_cursor(self) -> None:
        self._queued.append(f"{CSI}?25h")

    def flush(self) -> None:
        """Write all queued output and flush the stream."""
        data = "".join(self._queued)
        self._queued.clear()
        try:
            if data:
                self._write(data)
            self._output.flush()
        except OSError as e:
            raise TerminalError(f"Failed to write to terminal: {e}") from e

    def _write(self, data: str) -> None:
        self._output.write(data)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def cursor_position(self, timeout: float = 2.0) -> Tuple[int, int]:
        """Query the terminal for the cursor position.

        Must be called in raw mode, otherwise the report is echoed and
        line-buffered by the TTY.

        Returns:
            0-based (col, row).

        Raises:
            TerminalError: If no report arrives within `timeout` seconds.
        """
        self._queued.append(f"{CSI}6n")
        self.flush()

        deadline = time.monotonic() + timeout
        buf = b""
        while True:
            match = _CPR_PATTERN.search(buf)
            if match:
                # Keystrokes around the report belong to the key poller
                self._pending_input += buf[:match.start()] + buf[match.end():]
                row, col = int(match.group(1)), int(match.group(2))
                return col - 1, row - 1
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._pending_input += buf
                raise TerminalError("Timed out reading the cursor position")
            buf += self._read_input(remaining)

    def poll_key(self, timeout: float) -> Optional[str]:
        """Wait up to `timeout` seconds for a key press.

        Returns:
            A key name ("ctrl-c", "ctrl-d", "enter", "up", ...) or the
            typed character, None if nothing arrived.
        """
        if not self._pending_input:
            self._pending_input = self._read_input(max(0.0, timeout))
            if not self._pending_input:
                return None
        key, self._pending_input = _decode_key(self._pending_input)
        return key

    def _read_input(self, timeout: float) -> bytes:
        fd = self.input_fd
        try:
            ready, _, _ = select.select([fd], [], [], timeout)
            if not ready:
                return b""
            return os.read(fd, 1024)
        except (OSError, ValueError) as e:
            raise TerminalError(f"Failed to read terminal input: {e}") from e


def _decode_key(data: bytes) -> Tuple[str, bytes]:
    """Split the first key off a raw input buffer.

    Returns:
        Tuple of (key name, remaining bytes).
    """
    if data.startswith(b'\x1b'):
        match = _CSI_KEY_PATTERN.match(data)
        if match:
            final = data[match.end() - 1:match.end()]
            return _CSI_KEYS.get(final, 'escape'), data[match.end():]
        return 'escape', data[1:]

    head = data[:1]
    if head in _CONTROL_KEYS:
        return _CONTROL_KEYS[head], data[1:]

    # One UTF-8 character is at most four bytes
    for size in range(1, min(4, len(data)) + 1):
        try:
            return data[:size].decode('utf-8'), data[size:]
        except UnicodeDecodeError:
            continue
    logger.debug("Undecodable terminal input: %r", data[:4])
    return 'unknown', data[1:]
