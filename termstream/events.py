# termstream/events.py
"""Stream events and the channel that carries them to the render thread.

The channel is multi-producer / single-consumer and strictly FIFO. The
consumer closes it when it stops reading, after which producers get a
ChannelClosedError instead of silently queueing into the void.
"""

import queue
import threading
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from .errors import ChannelClosedError


@dataclass(frozen=True)
class TextEvent:
    """A fragment of model output."""
    content: str


@dataclass(frozen=True)
class DoneEvent:
    """The producer has finished; no more text follows."""


ReplyEvent = Union[TextEvent, DoneEvent]


@dataclass(frozen=True)
class EventBatch:
    """All events drained in one draw cycle, coalesced.

    Attributes:
        text: Concatenation of every TextEvent payload, in arrival order.
        done: Whether a DoneEvent closed the batch.
    """
    text: str = ""
    done: bool = False


class EventChannel:
    """Unbounded FIFO queue of ReplyEvents with receiver-side close."""

    def __init__(self):
        self._queue: "queue.SimpleQueue[ReplyEvent]" = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: ReplyEvent) -> None:
        """Enqueue an event.

        Raises:
            ChannelClosedError: If the receiver has closed the channel.
        """
        with self._lock:
            if self._closed:
                raise ChannelClosedError()
            self._queue.put(event)

    def close(self) -> None:
        """Stop accepting events. Called by the consumer on exit."""
        with self._lock:
            self._closed = True

    def try_recv(self) -> Optional[ReplyEvent]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def recv(self, timeout: Optional[float] = None) -> Optional[ReplyEvent]:
        """Wait up to `timeout` seconds for the next event, None on timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def try_iter(self) -> Iterator[ReplyEvent]:
        """Yield every event currently queued without blocking."""
        while True:
            event = self.try_recv()
            if event is None:
                return
            yield event


def gather_events(channel: EventChannel) -> EventBatch:
    """Drain the channel into a single batch.

    Draining stops at the first DoneEvent so that nothing sent after it
    is ever rendered.
    """
    texts = []
    done = False
    for event in channel.try_iter():
        if isinstance(event, DoneEvent):
            done = True
            break
        texts.append(event.content)
    return EventBatch(text="".join(texts), done=done)
