"""
Templated SQL pipeline: placeholder substitution, statement splitting, execution.

Exports: query_helper, split_statements, execute_statements.
"""

from clickhouse_plugin.engines.sql.executor import execute_statements
from clickhouse_plugin.engines.sql.placeholders import query_helper
from clickhouse_plugin.engines.sql.splitter import split_statements

__all__ = [
    "execute_statements",
    "query_helper",
    "split_statements",
]
