# termstream/reply_handler.py
"""Producer-facing half of a streamed reply.

The network layer only ever sees a ReplyHandler: it calls text() for
every fragment and done() once. The handler keeps its own copy of all
text so the caller gets the full answer back even if rendering failed
part-way through.
"""

import logging

from .abort_signal import AbortSignal
from .errors import ChannelClosedError, ReplySendError
from .events import DoneEvent, EventChannel, ReplyEvent, TextEvent

logger = logging.getLogger(__name__)


class ReplyHandler:
    """Buffers reply text and forwards events to the render thread."""

    def __init__(self, channel: EventChannel, abort: AbortSignal):
        self._channel = channel
        self._abort = abort
        self._parts = []

    def text(self, fragment: str) -> None:
        """Record a fragment and forward it to the renderer.

        Empty fragments are ignored.

        Raises:
            ReplySendError: If the renderer stopped reading while the
                token is not aborted.
        """
        logger.debug("ReplyText: %r", fragment)
        if not fragment:
            return
        self._parts.append(fragment)
        self._send(TextEvent(fragment), "Failed to send text event")

    def done(self) -> None:
        """Tell the renderer that no more text will arrive."""
        logger.debug("ReplyDone")
        self._send(DoneEvent(), "Failed to send done event")

    def get_buffer(self) -> str:
        """Return every fragment received so far, concatenated."""
        return "".join(self._parts)

    def get_abort_token(self) -> AbortSignal:
        return self._abort

    def _send(self, event: ReplyEvent, context: str) -> None:
        try:
            self._channel.send(event)
        except ChannelClosedError as e:
            # A cancelled renderer legitimately stops reading.
            if self._abort.aborted():
                logger.debug("Dropping event after abort: %s", e)
                return
            raise ReplySendError(context) from e
