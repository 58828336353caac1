# termstream/render/stream.py
"""Live redraw of a streamed reply.

The render thread owns the terminal. Once per tick it drains the event
channel, erases the still-growing last line, prints any lines that were
completed by the new text, and redraws the partial line in place.

Row accounting: `buffer` is the text after the last newline and
`buffer_rows` the number of terminal rows its rendered (wrapped,
highlighted) form occupies. Before each redraw the cursor is moved back
to the first of those rows; if that row has already scrolled off the
top of the screen, the screen is scrolled up to bring it back to row 0.
"""

import logging
import sys
import time
from typing import Callable, Optional, TextIO, Tuple

from ..abort_signal import AbortSignal
from ..display_width import display_width, need_rows
from ..events import DoneEvent, EventChannel, gather_events
from ..terminal import Terminal
from .markdown import MarkdownRender
from .spinner import Spinner

logger = logging.getLogger(__name__)

# Seconds between spinner frames and key polls
TICK_RATE = 0.05

# (col, row, buffer, columns) -> whether the reported row is one too far
CursorQuirk = Callable[[int, int, str, int], bool]


def exact_width_wrap_quirk(col: int, row: int, buffer: str, columns: int) -> bool:
    """Detect the exact-width wrap off-by-one.

    Some terminals (kitty among them) report the cursor at column 0 of
    the next row after a line that exactly fills the terminal width,
    where others keep it in the last column of the same row. Without a
    correction the last line would be drawn twice.
    """
    return col == 0 and row > 0 and display_width(buffer) == columns


def split_line_tail(text: str) -> Tuple[str, str]:
    """Split text at its last newline into (complete lines, partial line).

    Returns ("", text) when there is no newline.
    """
    head, sep, tail = text.rpartition("\n")
    if not sep:
        return "", text
    return head, tail


def print_block(terminal: Terminal, text: str, columns: int) -> int:
    """Print every line of `text` as a committed row.

    Raw mode disables the TTY's newline translation, so each newline is
    followed by an explicit move back to column 0.

    Returns:
        The number of lines printed.
    """
    count = 0
    for line in text.split("\n"):
        terminal.print(line)
        terminal.newline()
        terminal.move_left(columns)
        count += 1
    return count


def raw_stream(
    channel: EventChannel,
    abort: AbortSignal,
    writer: Optional[TextIO] = None,
    poll_interval: float = TICK_RATE,
) -> None:
    """Pass-through mode for non-interactive output.

    Every fragment is written verbatim as it arrives, until DoneEvent
    or cancellation.
    """
    writer = writer if writer is not None else sys.stdout
    while not abort.aborted():
        event = channel.recv(timeout=poll_interval)
        if event is None:
            continue
        if isinstance(event, DoneEvent):
            break
        writer.write(event.content)
        writer.flush()


def markdown_stream(
    channel: EventChannel,
    render: MarkdownRender,
    abort: AbortSignal,
    terminal: Terminal,
    tick_rate: float = TICK_RATE,
    cursor_quirk: Optional[CursorQuirk] = exact_width_wrap_quirk,
    spinner: Optional[Spinner] = None,
) -> None:
    """Render the event stream as Markdown, redrawing in place.

    Raw mode is enabled for the duration of the stream and restored on
    every exit path.
    """
    with terminal.raw_mode():
        engine = RedrawEngine(
            channel,
            render,
            abort,
            terminal,
            tick_rate=tick_rate,
            cursor_quirk=cursor_quirk,
            spinner=spinner,
        )
        engine.run()


class RedrawEngine:
    """Consumes reply events and keeps the terminal in sync with them."""

    def __init__(
        self,
        channel: EventChannel,
        render: MarkdownRender,
        abort: AbortSignal,
        terminal: Terminal,
        tick_rate: float = TICK_RATE,
        cursor_quirk: Optional[CursorQuirk] = exact_width_wrap_quirk,
        spinner: Optional[Spinner] = None,
    ):
        self.channel = channel
        self.render = render
        self.abort = abort
        self.terminal = terminal
        self.tick_rate = tick_rate
        self.cursor_quirk = cursor_quirk
        self.spinner = spinner if spinner is not None else Spinner()
        self.columns = max(1, terminal.size()[0])
        self.buffer = ""
        self.buffer_rows = 1

    def run(self) -> None:
        """Run until DoneEvent, cancellation or error.

        The spinner is stopped on every exit path so the cursor is
        visible again.
        """
        try:
            self._loop()
        finally:
            self.spinner.stop(self.terminal)

    def _loop(self) -> None:
        last_tick = time.monotonic()
        while True:
            if self.abort.aborted():
                logger.debug("Render loop aborted")
                return

            self.spinner.step(self.terminal)

            batch = gather_events(self.channel)
            if batch.text:
                self.spinner.stop(self.terminal)
                self.draw(batch.text)
            if batch.done:
                logger.debug("Render loop done")
                return

            timeout = max(0.0, self.tick_rate - (time.monotonic() - last_tick))
            key = self.terminal.poll_key(timeout)
            if key == "ctrl-c":
                self.abort.set_ctrlc()
                return
            if key == "ctrl-d":
                self.abort.set_ctrld()
                return

            if time.monotonic() - last_tick >= self.tick_rate:
                last_tick = time.monotonic()

    def draw(self, text: str) -> None:
        """Apply one batch of text to the screen."""
        terminal = self.terminal
        col, row = terminal.cursor_position()
        if self.cursor_quirk is not None and self.cursor_quirk(col, row, self.buffer, self.columns):
            row -= 1

        if row + 1 >= self.buffer_rows:
            terminal.move_to(0, row + 1 - self.buffer_rows)
        else:
            terminal.scroll_up(self.buffer_rows - row - 1)
            terminal.move_to(0, 0)

        # The new text may re-wrap the old buffer differently
        terminal.clear_from_cursor_down()

        if "\n" in text:
            head, self.buffer = split_line_tail(self.buffer + text)
            print_block(terminal, self.render.render(head), self.columns)
        else:
            self.buffer += text

        output = self.render.render_line(self.buffer)
        if "\n" in output:
            head, tail = split_line_tail(output)
            self.buffer_rows = print_block(terminal, head, self.columns)
            terminal.print(tail)
            self.buffer_rows += need_rows(tail, self.columns)
        else:
            terminal.print(output)
            self.buffer_rows = need_rows(output, self.columns)

        terminal.flush()
