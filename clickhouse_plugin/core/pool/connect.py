"""
Engine construction for the administrative endpoint.

Maps the canonical connection URL onto a SQLAlchemy URL and driver options.
ClickHouse ``clickhouse://`` and ``tcp://`` URLs speak the native protocol
(port 9000, 9440 with TLS) through clickhouse-sqlalchemy / clickhouse-driver;
``http://`` and ``https://`` use the HTTP interface (port 8123 / 8443) through
clickhouse-connect. The ``mysql`` and ``postgresql`` schemes use pymysql and
psycopg for servers that speak those protocols.
"""

import ssl
from typing import Any, NamedTuple

import clickhouse_driver.errors
import sqlalchemy
from clickhouse_connect.driver.exceptions import ClickHouseError
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from clickhouse_plugin.core.config import settings
from clickhouse_plugin.core.connstring import ConnStringBuilder
from clickhouse_plugin.core.errors import ConfigError

_CLICKHOUSE_NATIVE = "clickhouse+native"
_CLICKHOUSE_HTTP = "clickhousedb"
_MYSQL = "mysql+pymysql"
_POSTGRES = "postgresql+psycopg"

_SCHEME_DRIVERS: dict[str, str] = {
    "clickhouse": _CLICKHOUSE_NATIVE,
    "tcp": _CLICKHOUSE_NATIVE,
    "http": _CLICKHOUSE_HTTP,
    "https": _CLICKHOUSE_HTTP,
    "mysql": _MYSQL,
    "postgres": _POSTGRES,
    "postgresql": _POSTGRES,
}

# Errors a driver can raise from connect or execute. The ClickHouse drivers
# raise their own exception types, which SQLAlchemy does not wrap.
DRIVER_ERRORS: tuple[type[BaseException], ...] = (
    SQLAlchemyError,
    ClickHouseError,
    clickhouse_driver.errors.Error,
    OSError,
)


class PoolLimits(NamedTuple):
    max_open: int
    max_idle: int
    max_lifetime: int  # seconds; 0 = unbounded


def _driver_for(scheme: str) -> str:
    try:
        return _SCHEME_DRIVERS[scheme.lower()]
    except KeyError:
        raise ConfigError(f"unsupported connection scheme: {scheme!r}") from None


def _native_query(conn: ConnStringBuilder) -> dict[str, str]:
    """
    clickhouse-driver builds its client from the DSN alone, so TLS and the
    connect timeout travel as URL query parameters.
    """
    query = {"connect_timeout": str(settings.CONNECT_TIMEOUT)}
    if conn.tls:
        query["secure"] = "True"
        query["verify"] = str(not conn.tls_skip_verify)
    return query


def _connect_args(driver: str, conn: ConnStringBuilder) -> dict[str, Any]:
    """Driver keyword arguments for TLS and timeouts."""
    if driver == _CLICKHOUSE_NATIVE:
        return {}

    timeout = settings.CONNECT_TIMEOUT
    args: dict[str, Any] = {"connect_timeout": timeout}
    skip = conn.tls_skip_verify

    if driver == _CLICKHOUSE_HTTP:
        if conn.tls or conn.scheme.lower() == "https":
            args["secure"] = True
            args["verify"] = not skip
    elif driver == _MYSQL:
        if conn.tls:
            args["ssl"] = {
                "check_hostname": not skip,
                "verify_mode": ssl.CERT_NONE if skip else ssl.CERT_REQUIRED,
            }
    elif driver == _POSTGRES:
        if conn.tls:
            args["sslmode"] = "require" if skip else "verify-full"
    return args


def build_url(conn: ConnStringBuilder) -> URL:
    """SQLAlchemy URL for *conn*; extra query params are passed through."""
    driver = _driver_for(conn.scheme)
    query = dict(conn.extra_params)
    if driver == _CLICKHOUSE_NATIVE:
        query = {**_native_query(conn), **query}
    return URL.create(
        driver,
        username=conn.username or None,
        password=conn.password or None,
        host=conn.host,
        port=conn.port or None,
        database=conn.database or None,
        query=query,
    )


def open_engine(conn: ConnStringBuilder, limits: PoolLimits) -> Engine:
    """
    Create a pooled engine. No connection is opened until first checkout.

    - max_idle -> pool_size (connections kept open between calls)
    - max_open - max_idle -> max_overflow
    - max_lifetime -> pool_recycle
    - debug -> echo (SQL logged through the ``sqlalchemy.engine`` logger)
    """
    url = build_url(conn)
    driver = url.drivername
    return sqlalchemy.create_engine(
        url,
        pool_size=limits.max_idle,
        max_overflow=max(limits.max_open - limits.max_idle, 0),
        pool_recycle=limits.max_lifetime if limits.max_lifetime > 0 else -1,
        echo=conn.debug,
        connect_args=_connect_args(driver, conn),
    )


def execute(conn: Connection, sql: str) -> None:
    """
    Run one final SQL fragment and commit.

    ``exec_driver_sql`` passes the text to the driver untouched, so colons and
    percent signs inside credentials are not read as bind parameters.
    """
    conn.exec_driver_sql(sql)
    conn.commit()
