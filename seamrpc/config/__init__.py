"""Configuration module for seamrpc."""

from seamrpc.config.loader import get_config_path, load_config, save_config
from seamrpc.config.schema import ClientConfig, CompilerConfig, Config, ServerConfig

__all__ = [
    "ClientConfig",
    "CompilerConfig",
    "Config",
    "ServerConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
