"""
Key-value database interface.

The account store only needs three operations on named tables of JSON-like
records. Production deployments plug in their own driver; InMemoryDatabase
backs development runs and the test suite.
"""

import asyncio
import copy
import logging
from collections import defaultdict
from typing import Any, Dict, List, Protocol

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class Database(Protocol):
    """Async table store used by AccountStore."""

    async def query(self, table: str, filters: Record) -> List[Record]:
        """Return every record in table whose fields equal all of filters."""
        ...

    async def insert(self, table: str, record: Record) -> Record:
        ...

    async def update(self, table: str, changes: Record, filters: Record) -> int:
        """Merge changes into matching records; return how many matched."""
        ...


class InMemoryDatabase:
    """
    Process-local Database implementation.

    Records are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, List[Record]] = defaultdict(list)
        self._lock = asyncio.Lock()

    @staticmethod
    def _matches(record: Record, filters: Record) -> bool:
        return all(record.get(key) == value for key, value in filters.items())

    async def query(self, table: str, filters: Record) -> List[Record]:
        async with self._lock:
            return [
                copy.deepcopy(record)
                for record in self._tables[table]
                if self._matches(record, filters)
            ]

    async def insert(self, table: str, record: Record) -> Record:
        async with self._lock:
            stored = copy.deepcopy(record)
            self._tables[table].append(stored)
            logger.debug(f"Inserted record into {table}", extra={"table": table})
            return copy.deepcopy(stored)

    async def update(self, table: str, changes: Record, filters: Record) -> int:
        async with self._lock:
            matched = 0
            for record in self._tables[table]:
                if self._matches(record, filters):
                    record.update(copy.deepcopy(changes))
                    matched += 1
            logger.debug(f"Updated {matched} record(s) in {table}", extra={"table": table})
            return matched
