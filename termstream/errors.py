# termstream/errors.py
"""Exception types shared by the streaming renderer.

All exceptions derive from TermstreamError so callers can catch the
whole family at the REPL boundary. User cancellation is deliberately
absent: Ctrl+C / Ctrl+D end a stream successfully.
"""


class TermstreamError(Exception):
    """Base class for all termstream errors."""


class ChannelClosedError(TermstreamError):
    """Raised when sending into an event channel whose receiver has gone."""

    def __init__(self, message: str = "Event channel is closed"):
        super().__init__(message)


class ReplySendError(TermstreamError):
    """Raised when the reply handler cannot forward an event to the renderer."""


class TerminalError(TermstreamError):
    """Raised when a terminal control operation fails."""


class ConfigError(TermstreamError):
    """Raised for invalid render configuration values."""


class ClientError(TermstreamError):
    """Raised when a streaming client fails to produce an answer."""
