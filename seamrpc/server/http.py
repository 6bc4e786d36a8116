"""FastAPI binding of the dispatcher: one POST endpoint per server."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import Response

from seamrpc.core.serialization import encode
from seamrpc.server.dispatcher import RpcServer

if TYPE_CHECKING:
    from seamrpc.config.schema import ServerConfig

ContextFactory = Callable[[Request], Awaitable[Any] | Any]


def create_rpc_router(
    server: RpcServer,
    *,
    path: str = "/api/rpc",
    context_factory: ContextFactory | None = None,
    expose_call_log: bool = False,
) -> APIRouter:
    """
    Router with the RPC endpoint.

    The endpoint always answers 200 with the encoded response envelope;
    failures travel inside the envelope. ``context_factory`` builds the
    opaque per-request context (e.g. a session) handed to the dispatcher.
    """
    router = APIRouter()
    rpc_path = "/" + path.strip("/")

    @router.post(rpc_path)
    async def rpc_endpoint(request: Request) -> Response:
        body = await request.body()
        context = None
        if context_factory is not None:
            outcome = context_factory(request)
            context = await outcome if inspect.isawaitable(outcome) else outcome
        text = await server.handle(body, context=context)
        return Response(content=text, media_type="application/json")

    if expose_call_log and server.call_log is not None:
        call_log = server.call_log

        @router.get(f"{rpc_path}/_logs")
        async def rpc_logs() -> Response:
            # entries hold decoded params, timestamps included
            return Response(content=encode(call_log.entries()), media_type="application/json")

        @router.get(f"{rpc_path}/_stats")
        async def rpc_stats() -> Response:
            return Response(content=encode(call_log.stats()), media_type="application/json")

    return router


def create_rpc_app(
    server: RpcServer,
    config: ServerConfig | None = None,
    *,
    context_factory: ContextFactory | None = None,
) -> FastAPI:
    """Standalone FastAPI app serving the RPC endpoint."""
    path = config.path if config is not None else "/api/rpc"
    expose = bool(config.expose_call_log) if config is not None else False
    app = FastAPI(title="seamrpc")
    app.include_router(
        create_rpc_router(server, path=path, context_factory=context_factory, expose_call_log=expose)
    )
    return app
