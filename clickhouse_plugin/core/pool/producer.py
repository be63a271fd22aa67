"""
Connection producer for the administrative endpoint.

Holds the decoded connection configuration and one lazily built pooled
engine. The engine is probed before every reuse; a stale engine is disposed
and replaced, never repaired. All access goes through ``lock``, which the
lifecycle manager also holds for the full duration of each operation.
"""

import logging
import re
import threading
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.engine import Engine

from clickhouse_plugin.core.connstring import ConnStringBuilder
from clickhouse_plugin.core.errors import (
    ConfigError,
    ConnectivityError,
    NotInitializedError,
)
from clickhouse_plugin.engines.sql.placeholders import query_helper

from .connect import PoolLimits, open_engine
from .health import health_check, ping

_log = logging.getLogger(__name__)

_DEFAULT_MAX_OPEN = 4

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


class ConnectionConfig(BaseModel):
    """Connection settings decoded from the initialize config map.

    Decoding is lax: numeric strings become ints and ``"true"``/``"1"``
    become booleans. Keys not listed here are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    connection_url: str = ""
    host: str = ""
    port: int = Field(default=0, ge=0, le=65535)
    username: str = ""
    password: str = ""
    database: str = ""
    tls: bool = False
    tls_skip_verify: bool = False
    max_open_connections: int = Field(default=0, ge=0)
    max_idle_connections: int = Field(default=0, ge=0)
    max_connection_lifetime: int = Field(default=0, ge=0)
    debug: bool = False

    @field_validator("max_connection_lifetime", mode="before")
    @classmethod
    def parse_duration(cls, v: Any) -> Any:
        """Accept seconds or a duration string such as ``30s``, ``5m``, ``1h``."""
        if isinstance(v, str):
            m = _DURATION_RE.match(v)
            if m is None:
                raise ValueError(f"invalid duration: {v!r}")
            return int(m.group(1)) * _DURATION_UNITS[m.group(2)]
        return v

    def pool_limits(self) -> PoolLimits:
        max_open = self.max_open_connections or _DEFAULT_MAX_OPEN
        max_idle = self.max_idle_connections or max_open
        return PoolLimits(
            max_open=max_open,
            max_idle=min(max_idle, max_open),
            max_lifetime=self.max_connection_lifetime,
        )


class ConnectionProducer:
    """Owns the configuration and the cached administrative engine."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.config = ConnectionConfig()
        self._conn: ConnStringBuilder | None = None
        self._limits = ConnectionConfig().pool_limits()
        self._engine: Engine | None = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def init(self, conf: dict[str, Any], verify_connection: bool = False) -> None:
        """
        Decode *conf*, resolve the connection URL and optionally verify it.

        - No ``connection_url``: compose one from host/port/...; both host and
          port are required.
        - ``connection_url`` given: ``{{username}}`` and ``{{password}}`` are
          replaced with the URL-escaped configured values.
        """
        with self.lock:
            try:
                config = ConnectionConfig.model_validate(conf)
            except ValidationError as e:
                raise ConfigError(f"failed to decode configuration: {e}") from e

            if not config.connection_url:
                builder = (
                    ConnStringBuilder()
                    .with_host(config.host)
                    .with_port(config.port)
                    .with_database(config.database)
                    .with_username(config.username)
                    .with_password(config.password)
                    .with_tls(config.tls, config.tls_skip_verify)
                    .with_debug(config.debug)
                )
                try:
                    builder.check()
                except ConfigError as e:
                    raise ConfigError(f"invalid connection configuration: {e}") from e
                config.connection_url = builder.build()
            else:
                config.connection_url = query_helper(
                    config.connection_url,
                    {
                        "username": quote(config.username, safe=""),
                        "password": quote(config.password, safe=""),
                    },
                )
                builder = ConnStringBuilder.from_conn_string(config.connection_url)

            # An engine built from a previous configuration is no longer valid.
            self._dispose()
            self.config = config
            self._conn = builder
            self._limits = config.pool_limits()
            self._initialized = True
            _log.info(
                "connection producer initialized host=%s port=%s database=%s tls=%s",
                builder.host,
                builder.port,
                builder.database,
                builder.tls,
            )

            if verify_connection:
                try:
                    engine = self.connection()
                    ping(engine)
                except ConnectivityError:
                    raise
                except Exception as e:
                    raise ConnectivityError(f"failed to verify connection: {e}") from e

    def connection(self) -> Engine:
        """Return a live engine, replacing the cached one if its probe fails."""
        with self.lock:
            if not self._initialized or self._conn is None:
                raise NotInitializedError("connection producer not initialized")

            if self._engine is not None:
                if health_check(self._engine):
                    return self._engine
                _log.warning("administrative connection is stale; reopening")
                self._dispose()

            try:
                self._engine = open_engine(self._conn, self._limits)
            except ConfigError:
                raise
            except Exception as e:
                raise ConnectivityError(
                    f"failed to open database connection: {e}"
                ) from e
            return self._engine

    def close(self) -> None:
        """Dispose the cached engine. Safe to call repeatedly."""
        with self.lock:
            self._dispose()

    def secret_values(self) -> dict[str, str]:
        """Map each known password to its mask, for error sanitizing."""
        with self.lock:
            secrets: dict[str, str] = {}
            for value in (
                self.config.password,
                self._conn.password if self._conn is not None else "",
            ):
                if value:
                    secrets[value] = "[password]"
                    escaped = quote(value, safe="")
                    if escaped != value:
                        secrets[escaped] = "[password]"
            return secrets

    def _dispose(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        engine.dispose()
