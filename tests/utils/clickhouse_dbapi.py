"""
Fake clickhouse-connect DB-API connection.

Patched in for ``clickhouse_connect.dbapi.connect`` so a real ``clickhousedb``
SQLAlchemy engine runs against it. Failures raise clickhouse-connect's own
exception types, which SQLAlchemy passes through unwrapped.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from unittest.mock import patch

from clickhouse_connect.driver.exceptions import DatabaseError


class FakeCursor:
    description = None
    rowcount = -1
    lastrowid = None
    arraysize = 1

    def __init__(self, conn: "FakeDbapiConnection") -> None:
        self.conn = conn

    def execute(self, operation: str, parameters: object = None) -> None:
        self.conn.run(operation)

    def fetchall(self) -> list:
        return []

    def fetchone(self) -> None:
        return None

    def close(self) -> None:
        pass


class FakeDbapiConnection:
    """Records executed SQL; a statement containing *fail_on* is rejected."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.executed: list[str] = []

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def run(self, sql: str) -> None:
        if self.fail_on is not None and self.fail_on in sql:
            raise DatabaseError(f"Code: 497. DB::Exception: not enough privileges: {sql}")
        self.executed.append(sql)

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    def close(self) -> None:
        pass


@contextmanager
def patched_clickhouse_connect(
    conn: FakeDbapiConnection | None = None,
    *,
    error: BaseException | None = None,
) -> Iterator[FakeDbapiConnection]:
    """Route ``clickhouse_connect.dbapi.connect`` to *conn*, or raise *error*."""
    conn = conn or FakeDbapiConnection()
    kwargs = {"side_effect": error} if error is not None else {"return_value": conn}
    with patch("clickhouse_connect.dbapi.connect", **kwargs):
        yield conn


def driver_cause(err: BaseException) -> BaseException | None:
    """The driver exception behind *err*, looking through a SQLAlchemy wrapper."""
    cause = err.__cause__
    return getattr(cause, "orig", None) or cause
