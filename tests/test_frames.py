"""Tests for the event frame decoder."""

from __future__ import annotations

import asyncio

import pytest

from speechstream.streaming import FrameDecoder, StreamEvent, decode_stream

TEXT_FRAME = b'event: text\ndata: {"text":"hi"}\n\n'


async def _chunks(*chunks: bytes):
    for chunk in chunks:
        yield chunk


async def _collect(*chunks: bytes) -> list[StreamEvent]:
    return [event async for event in decode_stream(_chunks(*chunks))]


class TestFrameDecoder:
    def test_single_frame(self):
        decoder = FrameDecoder()
        assert decoder.feed(TEXT_FRAME) == [StreamEvent("text", {"text": "hi"})]

    def test_frame_split_mid_line(self):
        decoder = FrameDecoder()

        first = decoder.feed(TEXT_FRAME[:20])
        second = decoder.feed(TEXT_FRAME[20:])

        assert first == []
        assert second == [StreamEvent(kind="text", payload={"text": "hi"})]

    def test_every_split_point_yields_one_event(self):
        for split in range(1, len(TEXT_FRAME)):
            decoder = FrameDecoder()
            events = decoder.feed(TEXT_FRAME[:split]) + decoder.feed(TEXT_FRAME[split:])
            assert events == [StreamEvent("text", {"text": "hi"})], split

    def test_multibyte_character_split_across_chunks(self):
        frame = 'event: text\ndata: {"text":"café — ok"}\n'.encode("utf-8")
        split = frame.index("é".encode("utf-8")) + 1
        decoder = FrameDecoder()

        events = decoder.feed(frame[:split]) + decoder.feed(frame[split:])

        assert events == [StreamEvent("text", {"text": "café — ok"})]

    def test_missing_event_line_defaults_to_message(self):
        decoder = FrameDecoder()
        assert decoder.feed(b'data: {"a": 1}\n') == [StreamEvent("message", {"a": 1})]

    def test_event_kind_resets_after_data_line(self):
        decoder = FrameDecoder()
        events = decoder.feed(b'event: start\ndata: {"total_images": 2}\ndata: {"x": 1}\n')
        assert [event.kind for event in events] == ["start", "message"]

    def test_malformed_payload_dropped_and_stream_continues(self):
        decoder = FrameDecoder()
        events = decoder.feed(
            b"event: text\ndata: {not json\n"
            b"event: text\ndata: [1, 2]\n"
            b"event: text\ndata:\n"
            b'event: complete\ndata: {"message_id": "m1"}\n'
        )
        assert events == [StreamEvent("complete", {"message_id": "m1"})]

    def test_malformed_payload_still_resets_kind(self):
        decoder = FrameDecoder()
        events = decoder.feed(b'event: error\ndata: oops\ndata: {"text": "x"}\n')
        assert events == [StreamEvent("message", {"text": "x"})]

    def test_crlf_and_comment_lines(self):
        decoder = FrameDecoder()
        events = decoder.feed(b': keepalive\r\nevent: text\r\ndata: {"text": "a"}\r\n\r\n')
        assert events == [StreamEvent("text", {"text": "a"})]

    def test_accepts_text_chunks(self):
        decoder = FrameDecoder()
        assert decoder.feed('event: text\ndata: {"text": "b"}\n') == [
            StreamEvent("text", {"text": "b"})
        ]

    def test_close_processes_unterminated_line(self):
        decoder = FrameDecoder()
        assert decoder.feed(b'event: complete\ndata: {"hypothesis": "done"}') == []
        assert decoder.close() == [StreamEvent("complete", {"hypothesis": "done"})]

    def test_asdict(self):
        event = StreamEvent("progress", {"step": "ocr"})
        assert event.asdict() == {"event": "progress", "data": {"step": "ocr"}}


class TestDecodeStream:
    @pytest.mark.asyncio
    async def test_events_in_order(self):
        events = await _collect(
            b'event: start\ndata: {"total_images": 1}\n\n',
            b'event: text\ndata: {"text": "The "}\n\nevent: te',
            b'xt\ndata: {"text": "end."}\n\n',
            b'event: complete\ndata: {"message_id": "m", "hypothesis": "The end."}\n\n',
        )

        assert [event.kind for event in events] == ["start", "text", "text", "complete"]
        assert events[2].payload == {"text": "end."}

    @pytest.mark.asyncio
    async def test_split_frame_yields_single_event(self):
        events = await _collect(TEXT_FRAME[:15], TEXT_FRAME[15:])
        assert events == [StreamEvent("text", {"text": "hi"})]

    @pytest.mark.asyncio
    async def test_cancellation_closes_source(self):
        closed = asyncio.Event()
        first_read = asyncio.Event()

        async def source():
            try:
                yield TEXT_FRAME
                first_read.set()
                await asyncio.sleep(3600)
                yield TEXT_FRAME
            finally:
                closed.set()

        received: list[StreamEvent] = []

        async def consume():
            async for event in decode_stream(source()):
                received.append(event)

        task = asyncio.create_task(consume())
        await asyncio.wait_for(first_read.wait(), timeout=1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert closed.is_set()
        assert received == [StreamEvent("text", {"text": "hi"})]
