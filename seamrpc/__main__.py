"""Entry point for ``python -m seamrpc``."""

from seamrpc.cli.commands import app

if __name__ == "__main__":
    app()
