# termstream/client.py
"""Producer side of a streamed reply.

A streaming client turns a provider's wire format into plain text
fragments and feeds them to a ReplyHandler. The renderer does not care
how the fragments are produced; any object with a
send_message_streaming(input, handler) method will do.

BaseStreamingClient supplies the cancellation race: the actual request
runs on a worker thread while the calling thread watches the abort
token, so Ctrl+C unblocks the caller even while a network read hangs.
"""

import logging
import re
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Protocol, runtime_checkable

from .errors import ClientError
from .reply_handler import ReplyHandler

logger = logging.getLogger(__name__)

# Up to four visible characters plus trailing whitespace, roughly the
# size of a model token
_TOKEN_PATTERN = re.compile(r'\S{1,4}\s*|\s+')


@runtime_checkable
class StreamingClient(Protocol):
    """Anything that can stream a reply into a ReplyHandler."""

    def send_message_streaming(self, input: str, handler: ReplyHandler) -> None:
        """Stream the reply to `input`, ending with handler.done()."""
        ...


class BaseStreamingClient(ABC):
    """Races the request against the handler's abort token.

    Subclasses implement _send_message_streaming_inner(), which may
    block; it is run on a daemon worker thread. handler.done() is sent
    on both branches of the race.
    """

    abort_poll_interval = 0.1

    def send_message_streaming(self, input: str, handler: ReplyHandler) -> None:
        """Stream the reply, returning early if the user cancels.

        Raises:
            ClientError: If the request fails before cancellation.
            ReplySendError: If the renderer vanished unexpectedly.
        """
        abort = handler.get_abort_token()
        finished = threading.Event()
        failure: List[BaseException] = []

        def worker() -> None:
            try:
                self._send_message_streaming_inner(input, handler)
            except Exception as e:
                failure.append(e)
            finally:
                finished.set()

        thread = threading.Thread(target=worker, name="termstream-client", daemon=True)
        thread.start()

        while not finished.wait(self.abort_poll_interval):
            if abort.aborted():
                logger.debug("Abort requested, abandoning the request")
                handler.done()
                return

        handler.done()
        if failure:
            raise ClientError("Failed to get answer") from failure[0]

    @abstractmethod
    def _send_message_streaming_inner(self, input: str, handler: ReplyHandler) -> None:
        """Perform the request, calling handler.text() per fragment."""


def tokenize(text: str) -> List[str]:
    """Split text into small fragments whose concatenation is `text`."""
    return _TOKEN_PATTERN.findall(text)


class EchoClient(BaseStreamingClient):
    """Dry-run client that streams its input back.

    Useful for previewing how a Markdown document renders while
    streaming, without any network access.
    """

    def __init__(self, delay: float = 0.01, fragments: Optional[List[str]] = None):
        """
        Args:
            delay: Seconds to wait before each fragment.
            fragments: Explicit fragments to send instead of tokenizing
                the input.
        """
        self.delay = delay
        self.fragments = fragments

    def _send_message_streaming_inner(self, input: str, handler: ReplyHandler) -> None:
        abort = handler.get_abort_token()
        fragments = self.fragments if self.fragments is not None else tokenize(input)
        for fragment in fragments:
            if self.delay > 0:
                if abort.wait(self.delay, interval=self.delay):
                    return
            elif abort.aborted():
                return
            handler.text(fragment)
