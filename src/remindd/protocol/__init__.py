"""JSON-RPC protocol layer."""

from remindd.protocol.codec import decode, encode
from remindd.protocol.dispatcher import Dispatcher
from remindd.protocol.errors import RpcError, TransportError
from remindd.protocol.framer import FrameWriter, LineFramer
from remindd.protocol.models import JsonRpcError, JsonRpcRequest, JsonRpcResponse, ToolDescriptor
from remindd.protocol.server import RpcServer
from remindd.protocol.session import Authorization, Phase, SessionState
from remindd.protocol.tools import REMINDER_TOOLS

__all__ = [
    "REMINDER_TOOLS",
    "Authorization",
    "Dispatcher",
    "FrameWriter",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "LineFramer",
    "Phase",
    "RpcError",
    "RpcServer",
    "SessionState",
    "ToolDescriptor",
    "TransportError",
    "decode",
    "encode",
]
