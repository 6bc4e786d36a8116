"""seamrpc - call server functions from client code as if they were local."""

__version__ = "0.1.0"
__logo__ = "🧵"
