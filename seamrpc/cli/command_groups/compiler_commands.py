"""scan/generate commands: discovery and binding generation."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from seamrpc.cli.shared.config_utils import load_cli_config
from seamrpc.compiler.analyzer import ScanError, ScanOptions, discover_functions
from seamrpc.compiler.build import build_bindings
from seamrpc.compiler.generator import GeneratorOptions


def register_compiler_commands(app: typer.Typer, console: Console) -> None:
    """Register scan and generate commands."""

    @app.command("scan")
    def scan(
        server_dir: Path = typer.Argument(None, help="Directory holding server modules (default: compiler.serverDir)"),
        config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
        show_skipped: bool = typer.Option(False, "--skipped", help="Also list exported functions that are not eligible"),
        as_json: bool = typer.Option(False, "--json", help="Print descriptors as JSON"),
    ) -> None:
        """List the RPC-eligible functions found under the server directory."""
        cfg = load_cli_config(config_path, console).compiler
        root = server_dir or Path(cfg.server_dir)
        try:
            result = discover_functions(root, ScanOptions.from_config(cfg))
        except ScanError as e:
            _print_errors(console, e.errors)
            raise typer.Exit(1)

        if as_json:
            payload = {
                "functions": [d.to_dict() for d in result.functions],
                "errors": result.errors,
            }
            if show_skipped:
                payload["skipped"] = [d.to_dict() for d in result.skipped]
            console.print_json(json.dumps(payload))
            return

        table = Table(title=f"RPC functions in {root}")
        table.add_column("Method", style="cyan")
        table.add_column("Signature")
        table.add_column("Source", style="dim")
        rows = result.functions + (result.skipped if show_skipped else [])
        for d in rows:
            params = ", ".join(
                f"{p.name}: {p.type_tag}{' = ...' if p.optional else ''}" for p in d.parameters
            )
            method = d.identity if d.is_eligible else f"[yellow]{d.identity} (skipped)[/yellow]"
            table.add_row(method, escape(f"({params}) -> {d.return_type_tag}"), d.source_location)
        console.print(table)
        console.print(f"{len(result.functions)} eligible function(s)")
        if result.errors:
            _print_errors(console, result.errors)

    @app.command("generate")
    def generate(
        server_dir: Path = typer.Option(None, "--server-dir", "-s", help="Directory holding server modules"),
        output_dir: Path = typer.Option(None, "--output-dir", "-o", help="Directory for generated bindings"),
        server_package: str = typer.Option(None, "--server-package", help="Import prefix of the server modules"),
        config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    ) -> None:
        """Write client stubs, server registrations, contracts and the debug manifest."""
        cfg = load_cli_config(config_path, console).compiler
        generator_options = GeneratorOptions.from_config(cfg)
        if server_package is not None:
            generator_options = generator_options.model_copy(update={"server_package": server_package})
        try:
            report = build_bindings(
                server_dir or Path(cfg.server_dir),
                output_dir or Path(cfg.output_dir),
                scan_options=ScanOptions.from_config(cfg),
                generator_options=generator_options,
            )
        except ScanError as e:
            _print_errors(console, e.errors)
            raise typer.Exit(1)
        except ValueError as e:
            console.print(f"[red]Generation failed:[/red] {e}")
            raise typer.Exit(1)

        for name in report.written:
            console.print(f"[green]✓[/green] {report.output_dir / name}")
        for name in report.unchanged:
            console.print(f"[dim]- {report.output_dir / name} (unchanged)[/dim]")
        console.print(f"{report.function_count} function(s) bound")
        if report.discovery.errors:
            _print_errors(console, report.discovery.errors)


def _print_errors(console: Console, errors: list[str]) -> None:
    console.print(f"[yellow]{len(errors)} module(s) could not be scanned:[/yellow]")
    for error in errors:
        console.print(f"  [yellow]•[/yellow] {escape(error)}")
