"""Tests for the waiting spinner."""

import io

from termstream.render.spinner import Spinner
from termstream.terminal import Terminal


def _terminal():
    output = io.StringIO()
    return Terminal(output=output), output


class TestSpinnerFrames:

    def test_first_frame(self):
        assert Spinner().frame() == "⠋ Generating   "

    def test_dots_grow_every_five_frames(self):
        spinner = Spinner()
        spinner.index = 5
        assert spinner.frame() == "⠴ Generating.  "
        spinner.index = 15
        assert spinner.frame() == "⠴ Generating..."
        spinner.index = 20
        assert spinner.frame() == "⠋ Generating   "

    def test_frames_have_constant_width(self):
        spinner = Spinner(message=" Thinking")
        widths = set()
        for index in range(40):
            spinner.index = index
            widths.add(len(spinner.frame()))
        assert widths == {len("⠋ Thinking...")}


class TestSpinnerDrawing:

    def test_first_step_hides_cursor(self):
        terminal, output = _terminal()
        spinner = Spinner()
        spinner.step(terminal)
        assert output.getvalue() == "\x1b[1G⠋ Generating   \x1b[?25l"
        assert spinner.index == 1

    def test_later_steps_overwrite(self):
        terminal, output = _terminal()
        spinner = Spinner()
        spinner.step(terminal)
        output.truncate(0)
        output.seek(0)
        spinner.step(terminal)
        assert output.getvalue() == "\x1b[1G⠙ Generating   "

    def test_stop_clears_and_shows_cursor(self):
        terminal, output = _terminal()
        spinner = Spinner()
        spinner.step(terminal)
        spinner.stop(terminal)
        assert output.getvalue().endswith("\x1b[1G\x1b[J\x1b[?25h")
        assert spinner.stopped

    def test_stop_is_idempotent(self):
        terminal, output = _terminal()
        spinner = Spinner()
        spinner.stop(terminal)
        first = output.getvalue()
        spinner.stop(terminal)
        assert output.getvalue() == first

    def test_step_after_stop_draws_nothing(self):
        terminal, output = _terminal()
        spinner = Spinner()
        spinner.stop(terminal)
        before = output.getvalue()
        spinner.step(terminal)
        assert output.getvalue() == before
