"""Tests for ReplyHandler."""

import pytest

from termstream.abort_signal import AbortSignal
from termstream.errors import ChannelClosedError, ReplySendError
from termstream.events import DoneEvent, EventChannel, TextEvent
from termstream.reply_handler import ReplyHandler


@pytest.fixture
def channel():
    return EventChannel()


@pytest.fixture
def abort():
    return AbortSignal()


class TestReplyHandler:

    def test_text_is_buffered_and_forwarded(self, channel, abort):
        handler = ReplyHandler(channel, abort)
        handler.text("Hello, ")
        handler.text("world")
        assert handler.get_buffer() == "Hello, world"
        assert list(channel.try_iter()) == [TextEvent("Hello, "), TextEvent("world")]

    def test_empty_fragment_is_ignored(self, channel, abort):
        handler = ReplyHandler(channel, abort)
        handler.text("")
        assert handler.get_buffer() == ""
        assert channel.try_recv() is None

    def test_done_sends_done_event(self, channel, abort):
        handler = ReplyHandler(channel, abort)
        handler.done()
        assert channel.try_recv() == DoneEvent()

    def test_abort_token_is_shared(self, channel, abort):
        handler = ReplyHandler(channel, abort)
        assert handler.get_abort_token() is abort

    def test_closed_channel_without_abort_raises(self, channel, abort):
        handler = ReplyHandler(channel, abort)
        channel.close()
        with pytest.raises(ReplySendError) as exc_info:
            handler.text("lost")
        assert str(exc_info.value) == "Failed to send text event"
        assert isinstance(exc_info.value.__cause__, ChannelClosedError)

    def test_closed_channel_done_without_abort_raises(self, channel, abort):
        handler = ReplyHandler(channel, abort)
        channel.close()
        with pytest.raises(ReplySendError, match="done event"):
            handler.done()

    def test_closed_channel_after_abort_is_silent(self, channel, abort):
        """A cancelled renderer stops reading; that is not an error."""
        handler = ReplyHandler(channel, abort)
        channel.close()
        abort.set_ctrlc()
        handler.text("late")
        handler.done()
        # Text still counts towards the returned answer
        assert handler.get_buffer() == "late"
