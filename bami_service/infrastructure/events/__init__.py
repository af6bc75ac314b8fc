from .sinks import EventSink, QueueSink
from .channel import EventChannel, KEEPALIVE_FRAME, format_sse_frame

__all__ = ["EventSink", "QueueSink", "EventChannel", "KEEPALIVE_FRAME", "format_sse_frame"]
