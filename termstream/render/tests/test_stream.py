"""Tests for the redraw engine and pass-through mode."""

import io
import random

import pytest

from termstream.abort_signal import AbortSignal
from termstream.events import DoneEvent, EventChannel, TextEvent
from termstream.render.markdown import MarkdownRender, RenderOptions
from termstream.render.stream import (
    RedrawEngine,
    exact_width_wrap_quirk,
    markdown_stream,
    print_block,
    raw_stream,
    split_line_tail,
)
from termstream.render.theme import load_theme
from termstream.terminal import Terminal

from .conftest import ScreenTerminal

DOCUMENT = (
    "# Streaming demo\n"
    "\n"
    "Some prose that is long enough to need wrapping at twenty columns.\n"
    "```python\n"
    "def f(x):\n"
    "    return x * 2  # a comment that overflows the terminal\n"
    "```\n"
    "xxxxxxxxxxxxxxxxxxxx\n"
    "日本語 text\n"
    "tail without newline"
)


class QuirkyScreenTerminal(ScreenTerminal):
    """Reports column 0 of the next row after an exact-width line."""

    def cursor_position(self, timeout=2.0):
        self.flush()
        if self.screen.cursor.x == self.screen.columns:
            return 0, self.screen.cursor.y + 1
        return super().cursor_position(timeout)


def _engine(terminal, options=None, cursor_quirk=exact_width_wrap_quirk, channel=None, abort=None):
    options = options or RenderOptions()
    render = MarkdownRender(options, columns=terminal.size()[0])
    return RedrawEngine(
        channel or EventChannel(),
        render,
        abort or AbortSignal(),
        terminal,
        tick_rate=0.01,
        cursor_quirk=cursor_quirk,
    )


def _draw_chunks(chunks, options=None, columns=20):
    terminal = ScreenTerminal(columns=columns)
    engine = _engine(terminal, options)
    for chunk in chunks:
        engine.draw(chunk)
    return terminal


def _random_chunks(text, seed):
    rng = random.Random(seed)
    chunks = []
    pos = 0
    while pos < len(text):
        size = rng.randint(1, 7)
        chunks.append(text[pos:pos + size])
        pos += size
    return chunks


class TestHelpers:

    def test_split_line_tail(self):
        assert split_line_tail("a\nb\nc") == ("a\nb", "c")
        assert split_line_tail("a\n") == ("a", "")
        assert split_line_tail("abc") == ("", "abc")

    def test_print_block(self):
        output = io.StringIO()
        terminal = Terminal(output=output)
        assert print_block(terminal, "a\nb", 80) == 2
        terminal.flush()
        assert output.getvalue() == "a\n\x1b[80Db\n\x1b[80D"

    def test_quirk_predicate(self):
        assert exact_width_wrap_quirk(0, 5, "x" * 80, 80)
        assert not exact_width_wrap_quirk(0, 0, "x" * 80, 80)
        assert not exact_width_wrap_quirk(0, 5, "x" * 79, 80)
        assert not exact_width_wrap_quirk(3, 5, "x" * 80, 80)

    def test_quirk_predicate_ignores_escapes(self):
        assert exact_width_wrap_quirk(0, 1, "\x1b[31m" + "x" * 10 + "\x1b[0m", 10)


class TestDraw:

    def test_hello_world(self):
        terminal = _draw_chunks(["He", "llo\n", "World"])
        assert terminal.lines() == ["Hello", "World"]

    def test_partial_line_is_redrawn_in_place(self):
        terminal = _draw_chunks(["ab", "cd", "ef"])
        assert terminal.lines() == ["abcdef"]
        assert (terminal.screen.cursor.x, terminal.screen.cursor.y) == (6, 0)

    def test_buffer_tracks_last_line(self):
        terminal = ScreenTerminal()
        engine = _engine(terminal)
        engine.draw("one\ntw")
        assert engine.buffer == "tw"
        assert engine.buffer_rows == 1
        engine.draw("o\n")
        assert engine.buffer == ""

    def test_wrapped_partial_line_rows(self):
        terminal = ScreenTerminal(columns=10)
        engine = _engine(terminal, RenderOptions(wrap="auto"))
        engine.draw("aaaa bbbb cccc dd")
        assert engine.buffer_rows == 2
        engine.draw("d eeee")
        assert terminal.lines() == ["aaaa bbbb", "cccc ddd", "eeee"]

    def test_overflowing_code_line_is_wrapped_by_terminal(self):
        terminal = ScreenTerminal(columns=10)
        engine = _engine(terminal, RenderOptions(wrap="auto"))
        engine.draw("```\n" + "y" * 15)
        assert engine.buffer_rows == 2
        engine.draw("y\n```\nz")
        assert terminal.lines() == ["```", "y" * 10, "y" * 6, "```", "z"]

    def test_partial_line_taller_than_screen(self):
        """Rows scrolled off the top are brought back before redrawing."""
        text = "".join(chr(ord("a") + i % 26) for i in range(48))

        whole = ScreenTerminal(columns=10, lines=3)
        _engine(whole).draw(text)

        chunked = ScreenTerminal(columns=10, lines=3)
        engine = _engine(chunked)
        engine.draw(text[:45])
        assert engine.buffer_rows == 5
        engine.draw(text[45:])

        assert "\x1b[2S" in "".join(chunked.written)
        assert chunked.screen.display == whole.screen.display
        assert chunked.lines()[-1] == text[40:]

    def test_code_block_is_highlighted_on_screen(self):
        theme = load_theme()
        terminal = _draw_chunks(["```rust\nfn ma", "in() {}\n```"], RenderOptions(theme=theme))
        assert terminal.lines() == ["```rust", "fn main() {}", "```"]
        r, g, b, _ = theme.token_style(_keyword()).fg
        assert terminal.screen.buffer[1][0].fg == f"{r:02x}{g:02x}{b:02x}"

    @pytest.mark.parametrize("seed", [1, 2, 3, 4])
    def test_chunk_boundaries_do_not_matter(self, seed):
        """The final screen is the same however the text is split."""
        options = RenderOptions(theme=load_theme(), wrap="auto")
        whole = _draw_chunks([DOCUMENT], options).screen.display
        chunked = _draw_chunks(_random_chunks(DOCUMENT, seed), options).screen.display
        assert chunked == whole

    def test_single_characters(self):
        options = RenderOptions(wrap="auto")
        whole = _draw_chunks([DOCUMENT], options).lines()
        assert _draw_chunks(list(DOCUMENT), options).lines() == whole
        assert whole[0] == "# Streaming demo"
        assert whole[-1] == "tail without newline"


class TestCursorQuirk:

    def test_exact_width_line_is_not_duplicated(self):
        terminal = QuirkyScreenTerminal(columns=10)
        engine = _engine(terminal)
        engine.draw("x" * 10)
        engine.draw("\nnext")
        assert terminal.lines() == ["x" * 10, "next"]

    def test_without_correction_the_line_is_duplicated(self):
        terminal = QuirkyScreenTerminal(columns=10)
        engine = _engine(terminal, cursor_quirk=None)
        engine.draw("x" * 10)
        engine.draw("\nnext")
        assert terminal.lines() == ["x" * 10, "x" * 10, "next"]


class TestRun:

    def test_run_until_done(self):
        terminal = ScreenTerminal()
        channel = EventChannel()
        for fragment in ("He", "llo\n", "World"):
            channel.send(TextEvent(fragment))
        channel.send(DoneEvent())
        _engine(terminal, channel=channel).run()
        assert terminal.lines() == ["Hello", "World"]
        assert not terminal.screen.cursor.hidden

    def test_text_after_done_is_not_rendered(self):
        terminal = ScreenTerminal()
        channel = EventChannel()
        channel.send(TextEvent("shown"))
        channel.send(DoneEvent())
        channel.send(TextEvent(" hidden"))
        _engine(terminal, channel=channel).run()
        assert terminal.lines() == ["shown"]

    def test_ctrl_c_cancels(self):
        terminal = ScreenTerminal(keys=["ctrl-c"])
        abort = AbortSignal()
        _engine(terminal, abort=abort).run()
        assert abort.aborted_ctrlc()
        assert not abort.aborted_ctrld()
        # Spinner is erased and the cursor restored
        assert terminal.lines() == []
        assert not terminal.screen.cursor.hidden

    def test_ctrl_d_cancels(self):
        terminal = ScreenTerminal(keys=["a", "ctrl-d"])
        abort = AbortSignal()
        _engine(terminal, abort=abort).run()
        assert abort.aborted_ctrld()
        assert not abort.aborted_ctrlc()

    def test_preset_abort_returns_immediately(self):
        terminal = ScreenTerminal()
        channel = EventChannel()
        channel.send(TextEvent("never drawn"))
        abort = AbortSignal()
        abort.set_ctrlc()
        _engine(terminal, channel=channel, abort=abort).run()
        assert terminal.lines() == []

    def test_spinner_shown_while_waiting(self):
        terminal = ScreenTerminal(keys=[None, None, "ctrl-c"])
        engine = _engine(terminal)
        # Stop before the spinner is erased to look at it
        engine.spinner.stop = lambda term: None
        engine.run()
        assert terminal.lines()[0].startswith("⠹ Generating")
        assert terminal.screen.cursor.hidden

    def test_markdown_stream_uses_raw_mode(self):
        terminal = ScreenTerminal()
        channel = EventChannel()
        channel.send(TextEvent("done"))
        channel.send(DoneEvent())
        render = MarkdownRender(RenderOptions(), columns=20)
        markdown_stream(channel, render, AbortSignal(), terminal, tick_rate=0.01)
        assert terminal.raw_mode_count == 1
        assert terminal.lines() == ["done"]


class TestRawStream:

    def test_writes_fragments_verbatim(self):
        channel = EventChannel()
        for fragment in ("# Title\n", "```rust\n", "fn"):
            channel.send(TextEvent(fragment))
        channel.send(DoneEvent())
        writer = io.StringIO()
        raw_stream(channel, AbortSignal(), writer=writer, poll_interval=0.01)
        assert writer.getvalue() == "# Title\n```rust\nfn"

    def test_stops_on_abort(self):
        channel = EventChannel()
        channel.send(TextEvent("x"))
        abort = AbortSignal()
        abort.set_ctrld()
        writer = io.StringIO()
        raw_stream(channel, abort, writer=writer, poll_interval=0.01)
        assert writer.getvalue() == ""


def _keyword():
    from pygments.token import Keyword
    return Keyword
