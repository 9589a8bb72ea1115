"""In-process record store backed by a dict.

Values are deep-copied on the way in and out so callers never share
mutable state with the store, matching a serializing backend.
"""

import asyncio
import copy
from typing import Any, Dict, Iterable, List, Optional, Sequence

from . import RecordStore, WriteConflictError

class MemoryRecordStore(RecordStore):
    """Dict-backed RecordStore used for tests and local runs."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def scan_by_prefix(self, prefix: str) -> List[Any]:
        return [
            copy.deepcopy(value)
            for key, value in list(self._data.items())
            if key.startswith(prefix)
        ]

    async def get_many(self, keys: Sequence[str]) -> List[Optional[Any]]:
        return [copy.deepcopy(self._data.get(key)) for key in keys]

    async def write_batch(
        self,
        sets: Optional[Dict[str, Any]] = None,
        deletes: Iterable[str] = (),
        expected: Optional[Dict[str, Any]] = None
    ) -> None:
        async with self._lock:
            for key, value in (expected or {}).items():
                if self._data.get(key) != value:
                    raise WriteConflictError(key)
            for key, value in (sets or {}).items():
                self._data[key] = copy.deepcopy(value)
            for key in deletes:
                self._data.pop(key, None)

    def keys(self) -> List[str]:
        """Snapshot of stored keys, for inspection in tests."""
        return list(self._data)
