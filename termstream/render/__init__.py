# termstream/render/__init__.py
"""Streaming render entry points.

render_stream() wires one request together: it creates the event
channel and reply handler, starts the render thread, hands the handler
to the client and waits for the render thread to finish before
returning the accumulated reply.
"""

import logging
import sys
import threading
import traceback
from typing import TYPE_CHECKING, Optional, TextIO

from rich.console import Console
from rich.text import Text

from ..abort_signal import AbortSignal
from ..errors import ReplySendError
from ..events import EventChannel
from ..reply_handler import ReplyHandler
from ..terminal import Terminal
from .markdown import LineType, MarkdownRender, RenderOptions, RenderState
from .stream import markdown_stream, raw_stream
from .theme import Theme, load_theme

if TYPE_CHECKING:
    from ..client import StreamingClient
    from ..config import RenderConfig

logger = logging.getLogger(__name__)

__all__ = [
    "LineType",
    "MarkdownRender",
    "RenderOptions",
    "RenderState",
    "Theme",
    "load_theme",
    "render_error",
    "render_stream",
]


def render_stream(
    input: str,
    client: "StreamingClient",
    config: "RenderConfig",
    abort: AbortSignal,
    terminal: Optional[Terminal] = None,
) -> str:
    """Stream a reply to the terminal and return its full text.

    The Markdown redraw engine is used when the output is an
    interactive terminal, plain pass-through otherwise. Cancellation
    (Ctrl+C / Ctrl+D) is not an error: whatever arrived so far is
    returned.

    Args:
        input: The prompt handed to the client.
        client: Producer of the reply fragments.
        config: Render configuration.
        abort: Cancellation token shared with the client.
        terminal: Terminal to draw on; defaults to stdin/stdout.

    Returns:
        The concatenation of every fragment the client produced.

    Raises:
        Whatever the client raised; the render thread has stopped
        touching the terminal by then.
    """
    terminal = terminal if terminal is not None else Terminal()
    interactive = terminal.is_terminal()
    channel = EventChannel()
    handler = ReplyHandler(channel, abort)

    def run() -> None:
        try:
            if interactive:
                columns = terminal.size()[0]
                render = MarkdownRender(config.render_options(is_terminal=True), columns)
                markdown_stream(
                    channel,
                    render,
                    abort,
                    terminal,
                    tick_rate=config.tick_rate,
                    cursor_quirk=config.cursor_quirk,
                )
            else:
                raw_stream(channel, abort, writer=terminal.output, poll_interval=config.tick_rate)
        except Exception as e:
            logger.exception("Render thread failed")
            render_error(e, config.highlight)
        finally:
            channel.close()

    thread = threading.Thread(target=run, name="termstream-render", daemon=True)
    thread.start()
    try:
        client.send_message_streaming(input, handler)
    except Exception:
        _stop_render(handler)
        thread.join()
        if handler.get_buffer():
            _end_line(terminal)
        raise
    _stop_render(handler)
    thread.join()
    _end_line(terminal)
    return handler.get_buffer()


def _stop_render(handler: ReplyHandler) -> None:
    """Make sure the render thread sees Done, whatever the client did.

    A second Done is ignored by the renderer, and a renderer that has
    already stopped cannot receive one.
    """
    try:
        handler.done()
    except ReplySendError as e:
        logger.debug("Render thread already stopped: %s", e)


def _end_line(terminal: Terminal) -> None:
    """Commit the last partial line once the stream is over."""
    terminal.newline()
    terminal.flush()


def render_error(err: BaseException, highlight: bool, file: Optional[TextIO] = None) -> None:
    """Print an error and its cause chain to stderr.

    Args:
        err: The exception to report.
        highlight: Print in red.
        file: Output stream, defaults to sys.stderr.
    """
    message = format_error(err)
    console = Console(
        file=file if file is not None else sys.stderr,
        highlight=False,
        no_color=not highlight,
        soft_wrap=True,
    )
    console.print(Text(message, style="red" if highlight else ""))


def format_error(err: BaseException) -> str:
    """Format "message" plus a "Caused by:" list of chained exceptions."""
    lines = ["".join(traceback.format_exception_only(type(err), err)).strip()]
    causes = []
    seen = {id(err)}
    cause = err.__cause__ or err.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        causes.append(str(cause) or type(cause).__name__)
        cause = cause.__cause__ or cause.__context__
    if causes:
        lines.append("")
        lines.append("Caused by:")
        for index, text in enumerate(causes):
            lines.append(f"    {index}: {text}")
    return "\n".join(lines)
