"""Frames to JSON-RPC envelopes and back.

``decode`` never guesses an id: a frame that is not valid JSON is answered
with ``id: null``.  Envelope errors are keyed to the request id whenever
that id is itself well-typed.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Union

from remindd.protocol.errors import InvalidRequestError, ParseError, RpcError
from remindd.protocol.models import (
    JSONRPC_VERSION,
    JsonRpcRequest,
    JsonRpcResponse,
    RequestId,
)

logger = logging.getLogger(__name__)

_MISSING = object()

BatchEntry = Union[JsonRpcRequest, RpcError]
Decoded = Union[JsonRpcRequest, list[BatchEntry]]
Encodable = Union[JsonRpcRequest, JsonRpcResponse, list[JsonRpcResponse]]


def decode(frame: bytes) -> Decoded:
    """Parse one frame into a request, or a batch of requests.

    Raises:
        ParseError: The frame is not UTF-8 JSON.
        InvalidRequestError: The JSON is not a request envelope (or is an
            empty batch).
    """
    try:
        text = frame.decode("utf-8")
    except UnicodeDecodeError as exc:
        logger.warning("Dropping non UTF-8 frame (%d bytes): %s", len(frame), exc)
        raise ParseError(data={"detail": "frame is not valid UTF-8"}) from exc

    try:
        raw: Any = json.loads(text)
    except (ValueError, RecursionError) as exc:
        # ValueError also covers integer literals past the digit limit
        logger.warning("Unparseable frame %r: %s", _preview(text), exc)
        raise ParseError() from exc

    if isinstance(raw, list):
        if not raw:
            raise InvalidRequestError(data={"detail": "empty batch"})
        entries: list[BatchEntry] = []
        for item in raw:
            try:
                entries.append(decode_envelope(item))
            except RpcError as exc:
                entries.append(exc)
        return entries

    return decode_envelope(raw)


def decode_envelope(raw: Any) -> JsonRpcRequest:
    """Validate an already-parsed JSON value as a request envelope."""
    if not isinstance(raw, dict):
        raise InvalidRequestError(data={"detail": "request must be an object"})

    raw_id = raw.get("id", _MISSING)
    request_id: RequestId | None = None
    if raw_id is not _MISSING:
        if not _is_valid_id(raw_id):
            raise InvalidRequestError(data={"detail": "id must be an integer or a string"})
        request_id = raw_id

    if raw.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError(
            data={"detail": "jsonrpc must be exactly '2.0'"},
            request_id=request_id,
        )

    method = raw.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequestError(
            data={"detail": "method must be a non-empty string"},
            request_id=request_id,
        )

    params = raw.get("params")
    if "params" in raw and not isinstance(params, dict):
        raise InvalidRequestError(
            data={"detail": "params must be an object"},
            request_id=request_id,
        )

    return JsonRpcRequest(method=method, id=request_id, params=params)


def encode(message: Encodable) -> bytes:
    """Serialize a message as compact UTF-8 JSON (no trailing newline)."""
    payload: Any
    if isinstance(message, list):
        payload = [item.to_wire() for item in message]
    else:
        payload = message.to_wire()
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def error_response(exc: RpcError) -> JsonRpcResponse:
    """Build the response answering *exc*."""
    return JsonRpcResponse.failure(exc.request_id, exc.to_error())


def _is_valid_id(value: Any) -> bool:
    # bool is an int subclass but not a valid id
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, str))


def _preview(text: str, limit: int = 120) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
