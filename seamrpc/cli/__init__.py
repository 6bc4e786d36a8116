"""Command line interface for seamrpc."""
