"""Record store backed by a single CockroachDB/PostgreSQL key-value table."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

import asyncpg

from database import close as close_pool
from . import RecordStore, StoreError, WriteConflictError, escape_like

logger = logging.getLogger(__name__)

class PostgresRecordStore(RecordStore):
    """RecordStore over a `key TEXT PRIMARY KEY, value JSONB` table.

    The pool must have JSON codecs registered (see `database.init_db`).
    """

    def __init__(self, pool: asyncpg.Pool, table: str = 'kv_store'):
        """Initialize the store.

        Args:
            pool: asyncpg connection pool owned by the caller
            table: Name of the key-value table
        """
        self.pool = pool
        self.table = table

    async def get(self, key: str) -> Optional[Any]:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    f'SELECT value FROM {self.table} WHERE key = $1',
                    key
                )
        except asyncpg.PostgresError as e:
            logger.error(f"Error reading {key}: {e}")
            raise StoreError(f"Failed to read {key}: {e}")

    async def set(self, key: str, value: Any) -> None:
        try:
            async with self.pool.acquire() as conn:
                await self._upsert(conn, [(key, value)])
        except asyncpg.PostgresError as e:
            logger.error(f"Error writing {key}: {e}")
            raise StoreError(f"Failed to write {key}: {e}")

    async def delete(self, key: str) -> None:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    f'DELETE FROM {self.table} WHERE key = $1',
                    key
                )
        except asyncpg.PostgresError as e:
            logger.error(f"Error deleting {key}: {e}")
            raise StoreError(f"Failed to delete {key}: {e}")

    async def scan_by_prefix(self, prefix: str) -> List[Any]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f'''
                    SELECT value
                    FROM {self.table}
                    WHERE key LIKE $1 ESCAPE '\\'
                    ''',
                    escape_like(prefix) + '%'
                )
                return [row['value'] for row in rows]
        except asyncpg.PostgresError as e:
            logger.error(f"Error scanning {prefix}: {e}")
            raise StoreError(f"Failed to scan {prefix}: {e}")

    async def get_many(self, keys: Sequence[str]) -> List[Optional[Any]]:
        if not keys:
            return []
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f'SELECT key, value FROM {self.table} WHERE key = ANY($1::TEXT[])',
                    list(keys)
                )
        except asyncpg.PostgresError as e:
            logger.error(f"Error reading {len(keys)} keys: {e}")
            raise StoreError(f"Failed to read keys: {e}")
        found = {row['key']: row['value'] for row in rows}
        return [found.get(key) for key in keys]

    async def write_batch(
        self,
        sets: Optional[Dict[str, Any]] = None,
        deletes: Iterable[str] = (),
        expected: Optional[Dict[str, Any]] = None
    ) -> None:
        deletes = list(deletes)
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    if expected:
                        rows = await conn.fetch(
                            f'''
                            SELECT key, value
                            FROM {self.table}
                            WHERE key = ANY($1::TEXT[])
                            FOR UPDATE
                            ''',
                            list(expected)
                        )
                        current = {row['key']: row['value'] for row in rows}
                        for key, value in expected.items():
                            if current.get(key) != value:
                                raise WriteConflictError(key)

                    if sets:
                        await self._upsert(conn, list(sets.items()))

                    if deletes:
                        await conn.execute(
                            f'DELETE FROM {self.table} WHERE key = ANY($1::TEXT[])',
                            deletes
                        )
        except WriteConflictError:
            raise
        except asyncpg.exceptions.SerializationError as e:
            # CockroachDB aborts contended transactions with a retryable error
            logger.warning(f"Batch aborted by serialization conflict: {e}")
            raise WriteConflictError(', '.join(expected or sets or {}))
        except asyncpg.PostgresError as e:
            logger.error(f"Error applying batch: {e}")
            raise StoreError(f"Failed to apply batch: {e}")

    async def _upsert(self, conn, items: List[tuple]) -> None:
        await conn.executemany(
            f'''
            INSERT INTO {self.table} (key, value)
            VALUES ($1, $2)
            ON CONFLICT (key) DO UPDATE
            SET value = EXCLUDED.value,
                updated_at = now()
            ''',
            items
        )

    async def close(self) -> None:
        await close_pool(self.pool)
