"""Client side of seamrpc."""

from seamrpc.client.client import UNSET, RpcClient, bind_client, current_client, rpc_call
from seamrpc.client.transport import HttpTransport, LocalTransport, Transport

__all__ = [
    "UNSET",
    "HttpTransport",
    "LocalTransport",
    "RpcClient",
    "Transport",
    "bind_client",
    "current_client",
    "rpc_call",
]
