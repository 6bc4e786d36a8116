"""Server side of seamrpc: registry, dispatcher and HTTP binding."""

from seamrpc.server.call_log import CallLog
from seamrpc.server.dispatcher import RpcServer, current_context
from seamrpc.server.registry import FunctionRegistry, RegisteredFunction

__all__ = [
    "CallLog",
    "FunctionRegistry",
    "RegisteredFunction",
    "RpcServer",
    "current_context",
]
