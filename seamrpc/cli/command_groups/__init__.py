"""Command groups registered on the seamrpc CLI."""
