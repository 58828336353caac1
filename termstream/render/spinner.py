# termstream/render/spinner.py
"""Waiting indicator shown until the first text of a reply arrives."""

from ..terminal import Terminal


class Spinner:
    """Rotating glyph with a slowly growing "..." tail.

    Drawn at column 0 on every tick, overwriting itself. The cursor is
    hidden on the first frame and shown again by stop().
    """

    FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

    def __init__(self, message: str = " Generating"):
        self.message = message
        self.index = 0
        self.stopped = False

    def frame(self) -> str:
        """Text of the current frame, e.g. "⠙ Generating.  "."""
        glyph = self.FRAMES[self.index % len(self.FRAMES)]
        dots = "." * ((self.index // 5) % 4)
        return f"{glyph}{self.message}{dots:<3}"

    def step(self, terminal: Terminal) -> None:
        """Draw the next frame. No-op once stopped."""
        if self.stopped:
            return
        terminal.move_to_column(0)
        terminal.print(self.frame())
        if self.index == 0:
            terminal.hide_cursor()
        terminal.flush()
        self.index += 1

    def stop(self, terminal: Terminal) -> None:
        """Erase the spinner and show the cursor. Idempotent."""
        if self.stopped:
            return
        self.stopped = True
        terminal.move_to_column(0)
        terminal.clear_from_cursor_down()
        terminal.show_cursor()
        terminal.flush()
