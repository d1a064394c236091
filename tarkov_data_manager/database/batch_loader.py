"""
Chunked upserts for item rows.
"""

import logging
from typing import List, Dict, Any, Optional, Sequence
from sqlalchemy import text

from tarkov_data_manager.database.connection import get_db

logger = logging.getLogger(__name__)


def build_upsert(
    table: str,
    columns: Sequence[str],
    conflict_columns: Sequence[str],
    update_columns: Optional[Sequence[str]] = None,
) -> str:
    """
    ``INSERT ... ON CONFLICT`` statement with named placeholders.

    ``update_columns`` of None updates every non-key column; an empty list
    leaves existing rows untouched.
    """
    if update_columns is None:
        update_columns = [col for col in columns if col not in conflict_columns]
    if update_columns:
        action = 'DO UPDATE SET ' + ', '.join(f'{col} = EXCLUDED.{col}' for col in update_columns)
    else:
        action = 'DO NOTHING'
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({', '.join(f':{col}' for col in columns)}) "
        f"ON CONFLICT ({', '.join(conflict_columns)}) {action}"
    )


class BatchLoader:
    """
    Writes records in chunks, one transaction per chunk.

    Args:
        db: DatabaseConnection; the process-wide pool by default
        chunk_size: Records per statement execution
    """

    def __init__(self, db=None, chunk_size: int = 500):
        self.db = db or get_db()
        self.chunk_size = chunk_size

    def batch_upsert(
        self,
        table: str,
        records: List[Dict[str, Any]],
        conflict_columns: List[str],
        update_columns: Optional[List[str]] = None
    ) -> int:
        """
        Upsert ``records``, which must all share the first record's keys.

        Returns:
            Number of records written
        """
        if not records:
            return 0

        statement = text(build_upsert(table, list(records[0]), conflict_columns, update_columns))
        written = 0
        for start in range(0, len(records), self.chunk_size):
            chunk = records[start:start + self.chunk_size]
            try:
                with self.db.transaction() as conn:
                    conn.execute(statement, chunk)
            except Exception as e:
                logger.error(f"Upsert into {table} failed after {written} records: {e}")
                raise
            written += len(chunk)

        logger.debug(f"Upserted {written} records into {table}")
        return written
