"""Tests for the line framer and frame writer."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from remindd.protocol.errors import TransportError
from remindd.protocol.framer import ByteSink, FrameWriter, LineFramer


class _Sink:
    """Collects written bytes; drain yields to the loop to expose interleaving."""

    def __init__(self) -> None:
        self.chunks: list[bytes] = []

    def write(self, data: bytes) -> None:
        self.chunks.append(data)

    async def drain(self) -> None:
        await asyncio.sleep(0)


def _reader(*chunks: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    if eof:
        reader.feed_eof()
    return reader


async def _collect(framer: LineFramer) -> list[bytes]:
    return [frame async for frame in framer]


class TestLineFramer:
    async def test_splits_lines(self) -> None:
        frames = await _collect(LineFramer(_reader(b'{"a":1}\n{"b":2}\n')))
        assert frames == [b'{"a":1}', b'{"b":2}']

    async def test_reassembles_partial_reads(self) -> None:
        frames = await _collect(LineFramer(_reader(b'{"me', b'thod":', b'"ping"}\n')))
        assert frames == [b'{"method":"ping"}']

    async def test_strips_carriage_return_and_skips_blank_lines(self) -> None:
        frames = await _collect(LineFramer(_reader(b"\n\r\n{}\r\n  \n[]\n")))
        assert frames == [b"{}", b"[]"]

    async def test_trailing_remainder_emitted_at_eof(self) -> None:
        frames = await _collect(LineFramer(_reader(b'{"ok":1}\n{"id":1,')))
        assert frames == [b'{"ok":1}', b'{"id":1,']

    async def test_empty_stream(self) -> None:
        assert await _collect(LineFramer(_reader())) == []

    async def test_waits_for_newline(self) -> None:
        reader = _reader(b'{"partial":', eof=False)
        framer = LineFramer(reader)
        task = asyncio.create_task(framer.read_frame())
        await asyncio.sleep(0.01)
        assert not task.done()
        reader.feed_data(b"true}\n")
        assert await asyncio.wait_for(task, timeout=1) == b'{"partial":true}'

    async def test_oversized_frame_without_newline_fails(self) -> None:
        framer = LineFramer(_reader(b"x" * 64, eof=False), max_frame_bytes=16)
        with pytest.raises(TransportError, match="exceeds"):
            await framer.read_frame()

    async def test_oversized_line_fails(self) -> None:
        framer = LineFramer(_reader(b"y" * 32 + b"\n"), max_frame_bytes=16)
        with pytest.raises(TransportError):
            await framer.read_frame()

    async def test_read_error_is_transport_error(self) -> None:
        reader = MagicMock()
        reader.read = AsyncMock(side_effect=ConnectionResetError("gone"))
        with pytest.raises(TransportError, match="Read failed"):
            await LineFramer(reader).read_frame()


class TestFrameWriter:
    def test_sink_protocol(self) -> None:
        assert isinstance(_Sink(), ByteSink)

    async def test_writes_newline_terminated_frame(self) -> None:
        sink = _Sink()
        await FrameWriter(sink).write(b'{"id":1}')
        assert sink.chunks == [b'{"id":1}\n']

    async def test_concurrent_writes_do_not_interleave(self) -> None:
        sink = _Sink()
        writer = FrameWriter(sink)
        payloads = [f'{{"id":{i}}}'.encode() for i in range(50)]
        await asyncio.gather(*(writer.write(p) for p in payloads))
        assert sorted(sink.chunks) == sorted(p + b"\n" for p in payloads)
        assert all(chunk.count(b"\n") == 1 for chunk in sink.chunks)

    async def test_rejects_embedded_newline(self) -> None:
        with pytest.raises(ValueError, match="newline"):
            await FrameWriter(_Sink()).write(b"a\nb")

    async def test_closed_writer_refuses(self) -> None:
        writer = FrameWriter(_Sink())
        await writer.close()
        assert writer.closed
        with pytest.raises(TransportError, match="closed"):
            await writer.write(b"{}")

    async def test_broken_pipe_is_transport_error(self) -> None:
        sink = MagicMock()
        sink.write = MagicMock(side_effect=BrokenPipeError("pipe"))
        sink.drain = AsyncMock()
        with pytest.raises(TransportError, match="Write failed"):
            await FrameWriter(sink).write(b"{}")
