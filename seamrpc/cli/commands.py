"""CLI commands for seamrpc.

Top-level commands: scan, generate (compiler), call, serve (runtime),
version, and the config command group.
"""

import typer
from rich.console import Console

from seamrpc import __logo__, __version__
from seamrpc.cli.command_groups.compiler_commands import register_compiler_commands
from seamrpc.cli.command_groups.config_commands import register_config_commands
from seamrpc.cli.command_groups.runtime_commands import register_runtime_commands
from seamrpc.cli.shared.logging_utils import configure_console_logging

app = typer.Typer(
    name="seamrpc",
    help=f"{__logo__} seamrpc - seamless RPC bindings for async Python functions",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} seamrpc v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs on stderr"),
):
    """seamrpc - seamless RPC bindings for async Python functions."""
    configure_console_logging(verbose)


@app.command()
def version():
    """Show the installed version."""
    console.print(f"{__logo__} seamrpc v{__version__}")


register_compiler_commands(app, console)
register_runtime_commands(app, console)
register_config_commands(app, console)


if __name__ == "__main__":
    app()
