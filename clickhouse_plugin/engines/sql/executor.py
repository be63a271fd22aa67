"""
Execute statement templates against the administrative engine.

Each statement is substituted, split into fragments and the fragments run in
order on one pooled connection. The first failure aborts the call; fragments
that already ran are not rolled back.
"""

import logging

from sqlalchemy.engine import Engine

from clickhouse_plugin.core.errors import ConnectivityError, ExecutionError
from clickhouse_plugin.core.pool.connect import DRIVER_ERRORS, execute
from clickhouse_plugin.engines.sql.placeholders import query_helper
from clickhouse_plugin.engines.sql.splitter import split_statements

_log = logging.getLogger(__name__)


def execute_statements(
    engine: Engine,
    statements: list[str],
    data: dict[str, str],
) -> int:
    """
    Run every fragment of every statement; return the number executed.

    Raises ExecutionError naming the failing fragment, or ConnectivityError if
    no connection could be checked out.
    """
    try:
        conn = engine.connect()
    except DRIVER_ERRORS as e:
        raise ConnectivityError(f"failed to open database connection: {e}") from e

    executed = 0
    with conn:
        for statement in statements:
            for fragment in split_statements(query_helper(statement, data)):
                try:
                    execute(conn, fragment)
                except DRIVER_ERRORS as e:
                    _log.debug(
                        "fragment %d failed after %d executed", executed + 1, executed
                    )
                    raise ExecutionError(fragment, e) from e
                executed += 1
    return executed
