"""
ClickHouse database secrets plugin.

Issues, rotates and revokes ephemeral database users on behalf of a secrets
host. Exports: new, ClickHouse, DatabaseErrorSanitizer.
"""

from clickhouse_plugin.middleware import DatabaseErrorSanitizer, new
from clickhouse_plugin.plugin import ClickHouse

__version__ = "0.1.0"

__all__ = [
    "ClickHouse",
    "DatabaseErrorSanitizer",
    "new",
]
