"""Newline-delimited JSON framing over asyncio streams.

:class:`LineFramer` turns a byte stream into complete frames;
:class:`FrameWriter` emits whole frames, one writer at a time.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Protocol, runtime_checkable

from remindd.protocol.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAME_BYTES = 1024 * 1024
_READ_CHUNK = 64 * 1024


@runtime_checkable
class ByteSink(Protocol):
    """The subset of :class:`asyncio.StreamWriter` the writer needs."""

    def write(self, data: bytes) -> None: ...
    async def drain(self) -> None: ...


class LineFramer:
    """Async iterator of complete frames read from *reader*.

    Partial reads are buffered until a newline arrives.  A non-blank
    remainder at EOF is yielded as a final frame.  A line that grows past
    *max_frame_bytes* without a newline raises :class:`TransportError`.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        *,
        max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
    ) -> None:
        self._reader = reader
        self._max_frame_bytes = max_frame_bytes
        self._buffer = bytearray()
        self._eof = False

    def __aiter__(self) -> LineFramer:
        return self

    async def __anext__(self) -> bytes:
        frame = await self.read_frame()
        if frame is None:
            raise StopAsyncIteration
        return frame

    async def read_frame(self) -> bytes | None:
        """Return the next frame, or ``None`` once the stream is exhausted."""
        while True:
            frame = self._pop_line()
            if frame is not None:
                if frame.strip():
                    return frame
                continue

            if self._eof:
                remainder = bytes(self._buffer)
                self._buffer.clear()
                if remainder.strip():
                    logger.debug("Stream ended mid-frame (%d bytes)", len(remainder))
                    return remainder
                return None

            if len(self._buffer) > self._max_frame_bytes:
                msg = f"Frame exceeds {self._max_frame_bytes} bytes without a newline"
                raise TransportError(msg)

            try:
                chunk = await self._reader.read(_READ_CHUNK)
            except (OSError, ValueError) as exc:
                raise TransportError(f"Read failed: {exc}") from exc
            if not chunk:
                self._eof = True
            else:
                self._buffer.extend(chunk)

    def _pop_line(self) -> bytes | None:
        index = self._buffer.find(b"\n")
        if index < 0:
            return None
        if index > self._max_frame_bytes:
            msg = f"Frame exceeds {self._max_frame_bytes} bytes"
            raise TransportError(msg)
        line = bytes(self._buffer[:index])
        del self._buffer[: index + 1]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line


class FrameWriter:
    """Writes whole frames to *sink*, serialized by a single lock."""

    def __init__(self, sink: ByteSink) -> None:
        self._sink = sink
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, payload: bytes) -> None:
        """Write *payload* followed by a newline, then drain."""
        if b"\n" in payload:
            msg = "Frame payload must not contain a newline"
            raise ValueError(msg)
        async with self._lock:
            if self._closed:
                msg = "Writer closed"
                raise TransportError(msg)
            try:
                self._sink.write(payload + b"\n")
                await self._sink.drain()
            except (OSError, RuntimeError) as exc:
                raise TransportError(f"Write failed: {exc}") from exc

    async def close(self) -> None:
        """Refuse further writes; waits for an in-progress write to finish."""
        async with self._lock:
            self._closed = True


async def open_stdio() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Connect the process's stdin/stdout to asyncio streams."""
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return reader, writer
