"""Configuration schema using Pydantic.

Persisted as camelCase JSON at ~/.seamrpc/config.json; every field can also
be set from the environment, e.g. SEAMRPC_CLIENT__TIMEOUT_SECONDS=5.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


class ClientConfig(BaseModel):
    """RPC client configuration."""
    base_url: str = "http://127.0.0.1:8000/api/rpc"
    timeout_seconds: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(default=3, ge=0)  # additional attempts after the first
    retry_delay_seconds: float = Field(default=1.0, ge=0)  # backoff base, doubled per retry
    headers: dict[str, str] = Field(default_factory=dict)


class ServerConfig(BaseModel):
    """RPC server configuration."""
    path: str = "/api/rpc"
    expose_diagnostics: bool = False  # send server stack traces to clients
    call_log_size: int = Field(default=1000, ge=0)  # 0 disables the call log
    expose_call_log: bool = False  # serve <path>/_logs and <path>/_stats


class CompilerConfig(BaseModel):
    """Function discovery and binding generation."""
    server_dir: str = "src/server"
    output_dir: str = "src/generated"
    server_package: str = ""  # import prefix of modules under server_dir, e.g. "app.server"
    client_module: str = "seamrpc.client"
    include: list[str] = Field(default_factory=list)  # subdirectories of server_dir; empty = all
    exclude: list[str] = Field(default_factory=list)  # directory names to skip
    fail_on_error: bool = False
    extra_types: list[str] = Field(default_factory=list)  # type names accepted as serializable


class Config(BaseSettings):
    """Root configuration for seamrpc.

    Environment variables outrank values passed in (those read from the
    config file), field by field.
    """
    client: ClientConfig = Field(default_factory=ClientConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    compiler: CompilerConfig = Field(default_factory=CompilerConfig)

    model_config = ConfigDict(
        env_prefix="SEAMRPC_",
        env_nested_delimiter="__"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings, dotenv_settings, file_secret_settings
