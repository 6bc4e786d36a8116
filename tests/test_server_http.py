from datetime import datetime, timezone

import httpx
import pytest

from seamrpc.client import HttpTransport, RpcClient
from seamrpc.config.schema import ServerConfig
from seamrpc.core.serialization import decode, encode
from seamrpc.server.call_log import CallLog
from seamrpc.server.dispatcher import RpcServer, current_context
from seamrpc.server.http import create_rpc_app
from seamrpc.utils.exceptions import ErrorKind, RpcError


def _asgi_client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_post_returns_200_for_success_and_failure(server):
    app = create_rpc_app(server)
    async with _asgi_client(app) as http:
        ok = await http.post(
            "/api/rpc",
            content=encode({"id": "1", "method": "math.add", "params": [1, 2], "timestamp": 1}),
        )
        bad = await http.post("/api/rpc", content="{broken")
    assert ok.status_code == 200
    assert ok.headers["content-type"].startswith("application/json")
    assert decode(ok.text)["result"] == 3
    assert bad.status_code == 200
    assert decode(bad.text)["error"]["code"] == "DESERIALIZATION_ERROR"


@pytest.mark.asyncio
async def test_custom_path_and_context_factory(registry):
    async def _whoami():
        return current_context()

    registry.register("whoami", _whoami)
    server = RpcServer(registry)

    async def _context(request):
        return request.headers.get("x-user")

    app = create_rpc_app(server, ServerConfig(path="/rpc/"), context_factory=_context)
    async with _asgi_client(app) as http:
        resp = await http.post(
            "/rpc",
            content=encode({"id": "1", "method": "whoami", "params": [], "timestamp": 1}),
            headers={"x-user": "ann"},
        )
    assert decode(resp.text)["result"] == "ann"


@pytest.mark.asyncio
async def test_call_log_endpoints_only_when_enabled(registry):
    server = RpcServer(registry, call_log=CallLog(5))
    hidden = create_rpc_app(server, ServerConfig())
    shown = create_rpc_app(server, ServerConfig(expose_call_log=True))
    async with _asgi_client(shown) as http:
        await http.post("/api/rpc", content=encode({"id": "1", "method": "math.add", "params": [1], "timestamp": 1}))
        logs = await http.get("/api/rpc/_logs")
        stats = await http.get("/api/rpc/_stats")
    assert logs.status_code == 200
    assert logs.json()[0]["method"] == "math.add"
    assert stats.json()["totalCalls"] == 1
    async with _asgi_client(hidden) as http:
        assert (await http.get("/api/rpc/_logs")).status_code in (404, 405)


@pytest.mark.asyncio
async def test_http_transport_end_to_end(server):
    app = create_rpc_app(server)
    http = _asgi_client(app)
    client = RpcClient(HttpTransport("http://test/api/rpc", client=http), retry_attempts=0)
    try:
        assert await client.call("math.add", 20, 22) == 42
        with pytest.raises(RpcError) as exc_info:
            await client.call("api.nowhere")
        assert exc_info.value.kind is ErrorKind.FUNCTION_NOT_FOUND
    finally:
        await client.aclose()
        await http.aclose()


@pytest.mark.asyncio
async def test_http_transport_maps_http_status_to_network_error():
    def _handler(request):
        return httpx.Response(502, text="bad gateway")

    http = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    transport = HttpTransport("http://upstream/rpc", client=http)
    with pytest.raises(RpcError) as exc_info:
        await transport.send("{}")
    assert exc_info.value.kind is ErrorKind.NETWORK_ERROR
    assert exc_info.value.status_code == 502
    await http.aclose()


@pytest.mark.asyncio
async def test_http_transport_maps_connect_errors():
    def _handler(request):
        raise httpx.ConnectError("refused", request=request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    transport = HttpTransport("http://upstream/rpc", client=http)
    with pytest.raises(RpcError) as exc_info:
        await transport.send("{}")
    assert exc_info.value.kind is ErrorKind.CONNECTION_FAILED
    assert exc_info.value.status_code == 0
    await http.aclose()


@pytest.mark.asyncio
async def test_call_log_endpoint_encodes_timestamp_params(registry):
    async def _echo(value):
        return value

    registry.register("echo", _echo)
    server = RpcServer(registry, call_log=CallLog(5))
    app = create_rpc_app(server, ServerConfig(expose_call_log=True))
    when = datetime(2024, 1, 1, tzinfo=timezone.utc)
    async with _asgi_client(app) as http:
        rpc = await http.post("/api/rpc", content=encode({"id": "1", "method": "echo", "params": [when], "timestamp": 1}))
        logs = await http.get("/api/rpc/_logs")
    assert decode(rpc.text)["result"] == when
    assert logs.status_code == 200
    assert decode(logs.text)[0]["params"] == [when]
