"""The read loop tying framer, codec, dispatcher and writer together.

Frames are read sequentially; each one is handled in its own task so
slow provider calls never block reading.  Responses are written as they
complete and correlate to requests by id only.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Union

from remindd.protocol.codec import BatchEntry, decode, encode, error_response
from remindd.protocol.errors import InternalError, RpcError, TransportError
from remindd.protocol.models import JsonRpcResponse

if TYPE_CHECKING:
    from remindd.protocol.dispatcher import Dispatcher
    from remindd.protocol.framer import FrameWriter, LineFramer

logger = logging.getLogger(__name__)

Reply = Union[JsonRpcResponse, list[JsonRpcResponse]]


class RpcServer:
    """Serves one connection.

    Usage::

        server = RpcServer(dispatcher, LineFramer(reader), FrameWriter(writer))
        await server.serve()          # returns at EOF
        await server.drain(timeout=5)
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        framer: LineFramer,
        writer: FrameWriter,
    ) -> None:
        self._dispatcher = dispatcher
        self._framer = framer
        self._writer = writer
        self._tasks: set[asyncio.Task[None]] = set()
        self._accepting = True

    @property
    def accepting(self) -> bool:
        return self._accepting

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def serve(self) -> None:
        """Read and dispatch frames until EOF or :meth:`stop_accepting`.

        Raises:
            TransportError: The stream cannot be framed any further.
        """
        async for frame in self._framer:
            if not self._accepting:
                logger.debug("Ignoring frame received after stop")
                break
            self._spawn(frame)
        logger.info("Input stream closed")

    def stop_accepting(self) -> None:
        """Stop taking new frames; in-flight requests keep running."""
        self._accepting = False

    async def drain(self, timeout: float) -> int:
        """Wait up to *timeout* seconds for in-flight requests.

        Returns the number of requests cancelled because they did not finish
        in time.
        """
        pending = set(self._tasks)
        if not pending:
            return 0
        logger.info("Draining %d in-flight request(s)", len(pending))
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if still_running:
            logger.warning("Cancelling %d request(s) after %.1fs", len(still_running), timeout)
            await self._cancel(still_running)
        return len(still_running)

    async def cancel_all(self) -> int:
        """Cancel every in-flight request immediately."""
        pending = set(self._tasks)
        await self._cancel(pending)
        return len(pending)

    async def respond(self, frame: bytes) -> Reply | None:
        """Decode *frame* and compute its reply (``None`` when nothing is owed)."""
        try:
            decoded = decode(frame)
        except RpcError as exc:
            return error_response(exc)

        if isinstance(decoded, list):
            replies = await asyncio.gather(*(self._respond_one(entry) for entry in decoded))
            batch = [reply for reply in replies if reply is not None]
            return batch or None
        return await self._respond_one(decoded)

    async def _respond_one(self, entry: BatchEntry) -> JsonRpcResponse | None:
        if isinstance(entry, RpcError):
            return error_response(entry)
        return await self._dispatcher.handle(entry)

    def _spawn(self, frame: bytes) -> None:
        task = asyncio.create_task(self._process(frame))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process(self, frame: bytes) -> None:
        reply: Reply | None
        try:
            reply = await self.respond(frame)
        except Exception:
            logger.exception("Unhandled error while answering a frame")
            reply = error_response(InternalError())
        if reply is None:
            return
        try:
            payload = encode(reply)
        except (TypeError, ValueError):
            logger.exception("Unserializable reply")
            payload = encode(_internal_error_for(reply))
        try:
            await self._writer.write(payload)
        except TransportError as exc:
            logger.error("Dropping reply: %s", exc)

    @staticmethod
    async def _cancel(tasks: set[asyncio.Task[None]]) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def _internal_error_for(reply: Reply) -> Reply:
    if isinstance(reply, list):
        return [JsonRpcResponse.failure(item.id, InternalError().to_error()) for item in reply]
    return JsonRpcResponse.failure(reply.id, InternalError().to_error())
