# termstream/abort_signal.py
"""Cooperative cancellation shared between the caller, renderer and client.

The token carries two independent flags, one per cancellation key. The
render loop sets them from the keyboard poller, the client races its
blocking read against them, and the reply handler consults them to tell
an expected shutdown from a lost renderer.

Example:
    abort = create_abort_signal()

    # In the render thread
    if key == "ctrl-c":
        abort.set_ctrlc()

    # In the REPL, between prompts
    if abort.aborted_ctrld():
        exit_repl()
    abort.reset()
"""

import threading
import time
from typing import Optional


class AbortSignal:
    """Thread-safe pair of Ctrl+C / Ctrl+D cancellation flags.

    Each flag is an independent threading.Event, so setting and reading
    never block and no ordering exists between the two flags. Flags are
    only cleared by reset(), which the REPL calls between prompts.
    """

    def __init__(self):
        self._ctrlc = threading.Event()
        self._ctrld = threading.Event()

    def aborted(self) -> bool:
        """True once either flag has been set."""
        return self._ctrlc.is_set() or self._ctrld.is_set()

    def aborted_ctrlc(self) -> bool:
        return self._ctrlc.is_set()

    def aborted_ctrld(self) -> bool:
        return self._ctrld.is_set()

    def set_ctrlc(self) -> None:
        self._ctrlc.set()

    def set_ctrld(self) -> None:
        self._ctrld.set()

    def reset(self) -> None:
        """Clear both flags for the next request/response cycle.

        Warning: only call this when no thread of the previous cycle is
        still consulting the token.
        """
        self._ctrlc.clear()
        self._ctrld.clear()

    def wait(self, timeout: Optional[float] = None, interval: float = 0.1) -> bool:
        """Block until the token is aborted or the timeout expires.

        Args:
            timeout: Maximum seconds to wait. None means wait forever.
            interval: Polling period in seconds.

        Returns:
            True if aborted, False if the timeout expired first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.aborted():
            if deadline is None:
                wait_for = interval
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                wait_for = min(interval, remaining)
            # Either flag wakes us; ctrlc is the common one so block on it.
            self._ctrlc.wait(wait_for)
        return True

    def __repr__(self) -> str:
        return (
            f"AbortSignal(ctrlc={self.aborted_ctrlc()}, "
            f"ctrld={self.aborted_ctrld()})"
        )


def create_abort_signal() -> AbortSignal:
    """Factory function to create a fresh AbortSignal."""
    return AbortSignal()
