"""
Process-wide settings for the plugin.

Values come from the environment (prefix ``CLICKHOUSE_PLUGIN_``) or an
optional ``.env`` file. Per-instance connection settings are not here: they
arrive in the config map passed to ``initialize``.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CLICKHOUSE_PLUGIN_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Scheme used when the connection URL is composed from host/port fields
    DEFAULT_SCHEME: str = "clickhouse"
    # Seconds to wait when opening a connection to the server
    CONNECT_TIMEOUT: int = 10
    # Liveness probe run before reusing a cached engine
    PING_QUERY: str = "SELECT 1"
    PLUGIN_VERSION: str = "v0.1.0"


settings = Settings()  # type: ignore
