"""Analysis stream decoding package."""

from .frames import DEFAULT_EVENT_KIND, FrameDecoder, StreamEvent, decode_stream

__all__ = ["DEFAULT_EVENT_KIND", "FrameDecoder", "StreamEvent", "decode_stream"]
