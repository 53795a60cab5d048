"""
Placemarks Backend: Monitoring Query Base Class
=================================================

What:  Shared plumbing for services that read PostgreSQL monitoring
       functions (MaintenanceService, IndexMonitor).
How:   Holds the session factory and exposes `_fetch_rows()`, which runs
       `SELECT * FROM <function>()` and returns plain dicts. SQLAlchemy
       errors become DatabaseError with a message naming the operation.

The monitoring functions themselves are created by Alembic migration 001.
Only names from MONITORING_FUNCTIONS can be called; they are interpolated
into SQL, so the set is closed.
"""

import asyncio
import logging
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from placemarks.exceptions import DatabaseError

logger = logging.getLogger(__name__)

# asyncpg raises socket errors and timeouts unwrapped while connecting.
DATABASE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)

MONITORING_FUNCTIONS = frozenset({
    "check_table_bloat",
    "get_urgent_maintenance_tables",
    "get_autovacuum_settings",
    "analyze_index_usage",
    "get_unused_indexes",
    "suggest_missing_indexes",
    "get_index_size_summary",
})


class MonitoringQueries:
    """
    Base class for services backed by the monitoring SQL functions.

    Subclasses receive the app's session factory at construction; each call
    opens and closes its own session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _fetch_rows(self, function_name: str, failure_label: str) -> List[Dict[str, Any]]:
        """
        Run a set-returning monitoring function.

        Args:
            function_name:  One of MONITORING_FUNCTIONS.
            failure_label:  Prefix for the DatabaseError message,
                            e.g. "Failed to analyze index usage".

        Raises:
            DatabaseError: The query failed. Message is
                "<failure_label>: <driver message>".
        """
        if function_name not in MONITORING_FUNCTIONS:
            raise ValueError(f"Unknown monitoring function '{function_name}'")

        try:
            async with self._session_factory() as session:
                result = await session.execute(text(f"SELECT * FROM {function_name}()"))
                rows = [dict(row) for row in result.mappings().all()]
        except DATABASE_ERRORS as e:
            reason = str(getattr(e, "orig", None) or e)
            logger.error("%s: %s", failure_label, reason)
            raise DatabaseError(
                message=f"{failure_label}: {reason}",
                context={"function": function_name},
            ) from e

        logger.debug("%s() returned %d rows", function_name, len(rows))
        return rows
