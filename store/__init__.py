"""Record store: the key-value persistence layer for every marketplace entity.

This module provides:
1. The RecordStore contract (point reads, writes, deletes, prefix scans)
2. Batched reads and atomic multi-key batches with compare-and-set
3. Helpers that maintain and resolve pointer records (secondary indexes)

Backends live in `store.memory` and `store.postgres`.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from . import keys

logger = logging.getLogger(__name__)

class StoreError(Exception):
    """Base exception for record store failures."""
    pass

class WriteConflictError(StoreError):
    """Raised when a batch expectation does not match the stored value."""
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Record {key} changed concurrently")

def is_record(value: Any) -> bool:
    """True for primary records, False for pointer records (bare id strings)."""
    return isinstance(value, dict)

class RecordStore:
    """Flat key-value namespace with prefix enumeration.

    Subclasses implement the primitives; the index helpers below are built
    only on those primitives.
    """

    async def get(self, key: str) -> Optional[Any]:
        """Return the value stored at `key`, or None when absent."""
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> None:
        """Store `value` at `key`, overwriting unconditionally."""
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        """Remove `key`. Absent keys are ignored."""
        raise NotImplementedError

    async def scan_by_prefix(self, prefix: str) -> List[Any]:
        """Return every value whose key starts with `prefix`, in no particular order."""
        raise NotImplementedError

    async def get_many(self, keys: Sequence[str]) -> List[Optional[Any]]:
        """Return the values for `keys`, aligned with the input, None for misses."""
        raise NotImplementedError

    async def write_batch(
        self,
        sets: Optional[Dict[str, Any]] = None,
        deletes: Iterable[str] = (),
        expected: Optional[Dict[str, Any]] = None
    ) -> None:
        """Apply writes and deletes as one atomic unit.

        Args:
            sets: Mapping of key to new value
            deletes: Keys to remove
            expected: Mapping of key to the value it must currently hold
                (None meaning the key must be absent)

        Raises:
            WriteConflictError: If any expectation fails; nothing is written
        """
        raise NotImplementedError

    async def ping(self) -> bool:
        """Check that the backend is reachable."""
        await self.get('__ping__')
        return True

    async def close(self) -> None:
        """Release backend resources."""
        pass

    # Index maintenance

    async def put_indexed(
        self,
        key: str,
        record: Dict[str, Any],
        pointer_keys: Iterable[str],
        extra: Optional[Dict[str, Any]] = None,
        expected: Optional[Dict[str, Any]] = None
    ) -> None:
        """Write a primary record and its pointer records in one batch.

        Each pointer holds `record['id']`. `extra` carries further writes
        that belong to the same logical operation.
        """
        sets = {key: record}
        for pointer in pointer_keys:
            sets[pointer] = record['id']
        if extra:
            sets.update(extra)
        await self.write_batch(sets=sets, expected=expected)

    async def resolve_index(self, pointer_prefix: str, primary_prefix: str) -> List[Dict[str, Any]]:
        """Resolve "all records for a foreign key".

        Scans pointer records under `pointer_prefix`, then batch-reads the
        primaries at `primary_prefix + id`. Dangling pointers are skipped.
        """
        ids = [ref for ref in await self.scan_by_prefix(pointer_prefix) if isinstance(ref, str)]
        if not ids:
            return []
        records = await self.get_many([f'{primary_prefix}{ref}' for ref in ids])
        dangling = [ref for ref, record in zip(ids, records) if record is None]
        if dangling:
            logger.warning(f"Skipping {len(dangling)} dangling pointers under {pointer_prefix}")
        return [record for record in records if record is not None]

    async def scan_records(self, prefix: str) -> List[Dict[str, Any]]:
        """Prefix scan that drops pointer records sharing the prefix."""
        return [value for value in await self.scan_by_prefix(prefix) if is_record(value)]

    async def get_records(self, keys: Sequence[str]) -> Dict[str, Optional[Dict[str, Any]]]:
        """Batch-read `keys` into a key -> record mapping (duplicates read once)."""
        unique = list(dict.fromkeys(keys))
        if not unique:
            return {}
        values = await self.get_many(unique)
        return dict(zip(unique, values))

def escape_like(prefix: str) -> str:
    """Escape LIKE wildcards so a prefix matches literally."""
    return (
        prefix.replace('\\', '\\\\')
        .replace('%', '\\%')
        .replace('_', '\\_')
    )

# Export public interface
__all__ = [
    'RecordStore',
    'StoreError',
    'WriteConflictError',
    'is_record',
    'escape_like',
    'keys'
]
