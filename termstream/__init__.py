# termstream package
#
# Streaming terminal renderer for LLM output. The public surface:
#
#   from termstream import (
#       AbortSignal, ReplyHandler, EventChannel,
#       RenderConfig, render_stream, EchoClient,
#   )
#
# Lazy loading: imports are deferred via __getattr__ so that importing the
# package for AbortSignal alone does not pull in rich and pygments.

# Mapping from public name -> (module_path, attribute_name)
_LAZY_IMPORTS = {
    # Cancellation
    "AbortSignal": (".abort_signal", "AbortSignal"),
    "create_abort_signal": (".abort_signal", "create_abort_signal"),
    # Events
    "EventChannel": (".events", "EventChannel"),
    "TextEvent": (".events", "TextEvent"),
    "DoneEvent": (".events", "DoneEvent"),
    "ReplyHandler": (".reply_handler", "ReplyHandler"),
    # Clients
    "StreamingClient": (".client", "StreamingClient"),
    "BaseStreamingClient": (".client", "BaseStreamingClient"),
    "EchoClient": (".client", "EchoClient"),
    # Configuration and rendering
    "RenderConfig": (".config", "RenderConfig"),
    "MarkdownRender": (".render.markdown", "MarkdownRender"),
    "RenderOptions": (".render.markdown", "RenderOptions"),
    "render_stream": (".render", "render_stream"),
    "render_error": (".render", "render_error"),
    # Errors
    "TermstreamError": (".errors", "TermstreamError"),
    "ConfigError": (".errors", "ConfigError"),
    "ClientError": (".errors", "ClientError"),
    "ReplySendError": (".errors", "ReplySendError"),
    "TerminalError": (".errors", "TerminalError"),
}


def __getattr__(name):
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        import importlib
        module = importlib.import_module(module_path, __name__)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = list(_LAZY_IMPORTS)

__version__ = "0.1.0"
