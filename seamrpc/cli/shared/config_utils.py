"""Config loading for CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from seamrpc.config.loader import load_config
from seamrpc.config.schema import Config


def load_cli_config(config_path: Path | None, console: Console) -> Config:
    """Load config or exit with a readable message."""
    try:
        return load_config(config_path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
