"""
Liveness probe for the administrative engine.
"""

import logging

from sqlalchemy.engine import Engine

from clickhouse_plugin.core.config import settings

from .connect import execute

_log = logging.getLogger(__name__)


def ping(engine: Engine) -> None:
    """Check out a connection and run the ping query. Raises on failure."""
    with engine.connect() as conn:
        execute(conn, settings.PING_QUERY)


def health_check(engine: Engine) -> bool:
    """
    Return True if ``ping`` succeeds.
    """
    try:
        ping(engine)
        return True
    except Exception as e:
        _log.debug("ping failed: %s", type(e).__name__)
        return False
