"""Preview how a Markdown document renders while streaming.

Usage:
    python -m termstream README.md
    cat answer.md | python -m termstream --wrap 80 --delay 0.02

The document is cut into token-sized fragments and streamed through the
same renderer a live model reply goes through. Ctrl+C / Ctrl+D stop the
stream early.

Set TERMSTREAM_TRACE_LOG to a file path to capture debug logging; the
terminal itself is never used for log output.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .abort_signal import create_abort_signal
from .client import EchoClient
from .config import RenderConfig
from .errors import TermstreamError
from .render import render_error, render_stream
from .terminal import Terminal

logger = logging.getLogger("termstream")


def setup_logging() -> None:
    """Route termstream logging to TERMSTREAM_TRACE_LOG, or nowhere."""
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.setLevel(logging.NOTSET)

    path = os.environ.get("TERMSTREAM_TRACE_LOG")
    if path:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(
            "[%(asctime)s] %(threadName)s %(name)s %(levelname)s: %(message)s"
        ))
        logger.setLevel(logging.DEBUG)
    else:
        handler = logging.NullHandler()
    logger.addHandler(handler)
    logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="termstream",
        description="Stream a Markdown document to the terminal the way a model reply is rendered",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="-",
        help="Markdown file to stream (default: stdin)"
    )
    parser.add_argument(
        "--wrap",
        type=str,
        help="Wrapping mode: 'no', 'auto' or a maximum width"
    )
    parser.add_argument(
        "--wrap-code",
        action="store_true",
        help="Also wrap lines inside code blocks"
    )
    parser.add_argument(
        "--no-highlight",
        action="store_true",
        help="Disable syntax highlighting"
    )
    parser.add_argument(
        "--light-theme",
        action="store_true",
        help="Use the light highlighting theme"
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=0.01,
        help="Seconds between streamed fragments (default: 0.01)"
    )
    parser.add_argument(
        "--env-file",
        help="Path to a .env file with TERMSTREAM_* settings"
    )
    return parser


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _open_terminal() -> Terminal:
    """Terminal on stdout; keys come from the controlling TTY if stdin is piped."""
    if sys.stdin.isatty() or not sys.stdout.isatty():
        return Terminal()
    try:
        return Terminal(input_fd=os.open("/dev/tty", os.O_RDONLY))
    except OSError as e:
        logger.debug("No controlling terminal for key input: %s", e)
        return Terminal()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    highlight = not args.no_highlight
    try:
        config = RenderConfig.load(env_file=args.env_file)
        if args.wrap is not None:
            config.set_wrap(args.wrap)
        if args.wrap_code:
            config.wrap_code = True
        if args.no_highlight:
            config.highlight = False
        if args.light_theme:
            config.light_theme = True
        highlight = config.highlight

        document = _read_input(args.file)
        client = EchoClient(delay=args.delay)
        abort = create_abort_signal()
        render_stream(document, client, config, abort, terminal=_open_terminal())
    except (TermstreamError, OSError) as e:
        logger.exception("termstream failed")
        render_error(e, highlight)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
