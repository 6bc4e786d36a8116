"""call/serve commands: talk to a running RPC endpoint or host one."""

from __future__ import annotations

import asyncio
import importlib
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from seamrpc.cli.shared.config_utils import load_cli_config
from seamrpc.cli.shared.logging_utils import ensure_rotating_log_file
from seamrpc.client.client import RpcClient
from seamrpc.core.serialization import decode, encode
from seamrpc.server.dispatcher import RpcServer
from seamrpc.server.registry import FunctionRegistry
from seamrpc.utils.exceptions import RpcError


def parse_params(raw: list[str]) -> list[Any]:
    """Each argument is JSON (tagged dates allowed); bare words are taken as strings."""
    params: list[Any] = []
    for item in raw:
        try:
            params.append(decode(item))
        except RpcError:
            params.append(item)
    return params


def load_registrations(module_name: str, registry: FunctionRegistry) -> int:
    """Import a generated server registration module and register its functions."""
    module = importlib.import_module(module_name)
    register = getattr(module, "register_functions", None)
    if register is None:
        raise typer.BadParameter(f"{module_name} has no register_functions(registry)")
    register(registry)
    return len(registry)


def register_runtime_commands(app: typer.Typer, console: Console) -> None:
    """Register call and serve commands."""

    @app.command("call")
    def call(
        method: str = typer.Argument(..., help="Method identity, e.g. api.users.get_user"),
        params: list[str] = typer.Argument(None, help="Positional params as JSON"),
        url: str = typer.Option(None, "--url", "-u", help="RPC endpoint (default: client.baseUrl)"),
        timeout: float = typer.Option(None, "--timeout", "-t", help="Per-attempt timeout in seconds"),
        retries: int = typer.Option(None, "--retries", "-r", help="Additional attempts on transport failures"),
        config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    ) -> None:
        """Invoke one server function and print its result."""
        cfg = load_cli_config(config_path, console).client
        updates: dict[str, Any] = {}
        if url is not None:
            updates["base_url"] = url
        if timeout is not None:
            updates["timeout_seconds"] = timeout
        if retries is not None:
            updates["retry_attempts"] = retries
        if updates:
            cfg = cfg.model_copy(update=updates)

        async def run() -> Any:
            async with RpcClient.from_config(cfg) as client:
                return await client.call(method, *parse_params(params or []))

        try:
            result = asyncio.run(run())
        except RpcError as e:
            console.print(f"[red]{escape(str(e))}[/red] (status {e.status_code})")
            if e.server_stack:
                console.print(f"[dim]{escape(e.server_stack)}[/dim]")
            raise typer.Exit(1)
        console.print_json(encode(result))

    @app.command("serve")
    def serve(
        routes: str = typer.Argument(..., help="Generated registration module, e.g. app.generated.server_routes"),
        host: str = typer.Option("127.0.0.1", "--host", "-h", help="Bind host"),
        port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
        config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    ) -> None:
        """Host the registered functions behind the HTTP endpoint."""
        import uvicorn

        from seamrpc.server.http import create_rpc_app

        cfg = load_cli_config(config_path, console).server
        log_path = ensure_rotating_log_file("serve")
        registry = FunctionRegistry()
        try:
            count = load_registrations(routes, registry)
        except ImportError as e:
            console.print(f"[red]Cannot import {escape(routes)}:[/red] {e}")
            raise typer.Exit(1)

        server = RpcServer.from_config(cfg, registry)
        console.print(f"Serving {count} function(s) on http://{host}:{port}{cfg.path}")
        console.print(f"[dim]Logs: {log_path}[/dim]")
        uvicorn.run(create_rpc_app(server, cfg), host=host, port=port, log_level="warning")
