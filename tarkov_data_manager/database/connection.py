"""
Pooled PostgreSQL access for the item store.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, pool, text
from sqlalchemy.engine import Connection

from tarkov_data_manager.config.settings import Config

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Process-wide connection pool.

    Jobs call into it from worker threads, so every call checks out its
    own pooled connection. Statements are ``text()`` queries with bound
    parameters.
    """

    _instance = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(DatabaseConnection, cls).__new__(cls)
        return cls._instance

    def __init__(self, connection_string: Optional[str] = None):
        if hasattr(self, 'engine'):
            return

        self.connection_string = connection_string or Config.get_db_url()
        self.engine = create_engine(
            self.connection_string,
            poolclass=pool.QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_pre_ping=True,
        )
        logger.info(f"Database pool ready for {Config.DB_HOST}:{Config.DB_PORT}/{Config.DB_NAME}")

    def fetch_all(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Rows of a read query as dictionaries."""
        with self.engine.connect() as connection:
            try:
                result = connection.execute(text(query), params or {})
                return [dict(row) for row in result.mappings().all()]
            except Exception as e:
                logger.error(f"Query failed: {e}")
                raise

    def fetch_one(self, query: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(query, params)
        return rows[0] if rows else None

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Connection whose statements commit together or not at all."""
        with self.engine.begin() as connection:
            yield connection


_db_instance = None


def get_db():
    """Get or create the process-wide connection pool."""
    global _db_instance
    if _db_instance is None:
        _db_instance = DatabaseConnection()
    return _db_instance
