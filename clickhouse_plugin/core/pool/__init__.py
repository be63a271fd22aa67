"""
Administrative connection handling.

The Producer owns one pooled SQLAlchemy engine for the configured endpoint,
probing it before reuse and replacing it when stale.
"""

from .connect import PoolLimits, execute, open_engine
from .health import health_check, ping
from .producer import ConnectionConfig, ConnectionProducer

__all__ = [
    "ConnectionConfig",
    "ConnectionProducer",
    "PoolLimits",
    "execute",
    "health_check",
    "open_engine",
    "ping",
]
