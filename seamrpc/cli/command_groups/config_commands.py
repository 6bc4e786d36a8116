"""config command group: inspect and initialise the config file."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from seamrpc.cli.shared.config_utils import load_cli_config
from seamrpc.config.loader import convert_to_camel, get_config_path, save_config
from seamrpc.config.schema import Config


def register_config_commands(app: typer.Typer, console: Console) -> None:
    """Register the config command group."""
    config_app = typer.Typer(help="Config helpers (show/init/path)")
    app.add_typer(config_app, name="config")

    @config_app.command("show")
    def config_show(
        config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    ) -> None:
        """Print the effective config (file + SEAMRPC_* environment)."""
        cfg = load_cli_config(config_path, console)
        console.print_json(json.dumps(convert_to_camel(cfg.model_dump())))

    @config_app.command("init")
    def config_init(
        config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
        force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
    ) -> None:
        """Write a config file with default values."""
        path = config_path or get_config_path()
        if path.exists() and not force:
            console.print(f"[yellow]Config already exists:[/yellow] {path} (use --force to overwrite)")
            raise typer.Exit(1)
        save_config(Config(), path)
        console.print(f"[green]✓[/green] Wrote {path}")

    @config_app.command("path")
    def config_path_cmd() -> None:
        """Print the default config file location."""
        console.print(str(get_config_path()))
