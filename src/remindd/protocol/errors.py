"""Error taxonomy for the JSON-RPC layer.

Every per-request failure is an :class:`RpcError` carrying a stable wire
code.  :class:`TransportError` is separate: it is never answered on the
wire, it ends the connection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from remindd.protocol.models import JsonRpcError, RequestId

# ---------------------------------------------------------------------------
# Wire codes
# ---------------------------------------------------------------------------

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

ACCESS_DENIED = -32001
NOT_FOUND = -32002
NOT_READY = -32003
PROVIDER_UNAVAILABLE = -32004


class TransportError(Exception):
    """The byte stream cannot be framed any further (connection-fatal)."""


class RpcError(Exception):
    """Base error for all failures answered with a JSON-RPC error object."""

    code: int = INTERNAL_ERROR
    default_message: str = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        *,
        data: Any = None,
        request_id: RequestId | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.data = data
        self.request_id = request_id
        super().__init__(self.message)

    def to_error(self) -> JsonRpcError:
        """Build the wire error object."""
        from remindd.protocol.models import JsonRpcError

        return JsonRpcError(code=self.code, message=self.message, data=self.data)


class ParseError(RpcError):
    """The frame is not valid JSON."""

    code = PARSE_ERROR
    default_message = "Parse error"


class InvalidRequestError(RpcError):
    """The JSON is not a valid JSON-RPC 2.0 request envelope."""

    code = INVALID_REQUEST
    default_message = "Invalid Request"


class MethodNotFoundError(RpcError):
    """No handler is registered for the requested method."""

    code = METHOD_NOT_FOUND
    default_message = "Method not found"

    def __init__(self, method: str, **kwargs: Any) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}", **kwargs)


class InvalidParamsError(RpcError):
    """Parameters do not match the method or tool schema."""

    code = INVALID_PARAMS
    default_message = "Invalid params"


class InternalError(RpcError):
    """An invariant was violated while handling a request."""

    code = INTERNAL_ERROR
    default_message = "Internal error"


class AccessDeniedError(RpcError):
    """Access to the reminders store has not been granted."""

    code = ACCESS_DENIED
    default_message = "Access to reminders denied"


class NotFoundError(RpcError):
    """The referenced reminder or list does not exist."""

    code = NOT_FOUND
    default_message = "Not found"


class NotReadyError(RpcError):
    """The session has not completed capability negotiation."""

    code = NOT_READY
    default_message = "Server not initialized"


class ProviderUnavailableError(RpcError):
    """The reminders backend could not be reached."""

    code = PROVIDER_UNAVAILABLE
    default_message = "Reminders backend unavailable"
