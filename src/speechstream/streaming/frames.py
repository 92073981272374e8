"""Incremental decoder for `event:`/`data:` framed analysis streams."""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Optional

logger = logging.getLogger(__name__)

DEFAULT_EVENT_KIND = "message"


@dataclass(frozen=True)
class StreamEvent:
    """A decoded frame: the announced event kind and its JSON object payload."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)

    def asdict(self) -> dict[str, Any]:
        return {"event": self.kind, "data": dict(self.payload)}


class FrameDecoder:
    """Stateful decoder turning raw stream chunks into `StreamEvent`s.

    Chunks may break anywhere, including inside a line or inside a multi-byte
    UTF-8 sequence. Only complete lines are interpreted; the partial tail is
    held until more input arrives or `close()` is called.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._pending_kind: Optional[str] = None

    def feed(self, chunk: bytes | str) -> list[StreamEvent]:
        """Consume a chunk and return the events completed by it."""

        if isinstance(chunk, bytes):
            text = self._decoder.decode(chunk)
        else:
            text = chunk
        if not text:
            return []

        self._buffer += text
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._process_lines(lines)

    def close(self) -> list[StreamEvent]:
        """Signal end of input and process whatever line is still buffered."""

        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not tail:
            return []
        return self._process_lines(tail.split("\n"))

    def _process_lines(self, lines: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for raw_line in lines:
            event = self._process_line(raw_line.strip())
            if event is not None:
                events.append(event)
        return events

    def _process_line(self, line: str) -> Optional[StreamEvent]:
        if line.startswith("event:"):
            self._pending_kind = line[len("event:") :].strip() or None
            return None
        if not line.startswith("data:"):
            return None

        kind = self._pending_kind or DEFAULT_EVENT_KIND
        self._pending_kind = None

        raw_payload = line[len("data:") :].strip()
        if not raw_payload:
            return None
        try:
            payload = json.loads(raw_payload)
        except json.JSONDecodeError:
            logger.debug("Dropping malformed %s frame: %.80s", kind, raw_payload)
            return None
        if not isinstance(payload, dict):
            logger.debug("Dropping non-object %s frame payload", kind)
            return None
        return StreamEvent(kind=kind, payload=payload)


async def decode_stream(
    chunks: AsyncIterable[bytes | str],
) -> AsyncIterator[StreamEvent]:
    """Lazily decode an async chunk source into events, in order."""

    decoder = FrameDecoder()
    iterator = chunks.__aiter__()
    try:
        async for chunk in iterator:
            for event in decoder.feed(chunk):
                yield event
        for event in decoder.close():
            yield event
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()


__all__ = ["DEFAULT_EVENT_KIND", "FrameDecoder", "StreamEvent", "decode_stream"]
