"""In-memory record registries.

Registries are constructed by the relay at startup, injected into the
orchestrators by reference and cleared on shutdown.
"""

import logging
from collections.abc import Callable, Iterator
from typing import Any, Generic, Protocol, TypeVar

from devrelay_mcp.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class Identified(Protocol):
    @property
    def id(self) -> str: ...


T = TypeVar("T", bound=Identified)


class Registry(Generic[T]):
    """Insertion-ordered store of records keyed by their ``id``.

    With ``max_size`` set, adding a record to a full registry evicts the
    oldest record accepted by ``evictable``. Records that are never
    evictable (e.g. live sessions) can push the registry past the cap.
    """

    def __init__(
        self,
        name: str,
        not_found: Callable[[str], NotFoundError],
        max_size: int | None = None,
        evictable: Callable[[T], bool] | None = None,
    ):
        self.name = name
        self._not_found = not_found
        self.max_size = max_size
        self._evictable = evictable or (lambda _record: True)
        self._records: dict[str, T] = {}

    def add(self, record: T) -> T:
        if self.max_size is not None and len(self._records) >= self.max_size:
            self._evict_one()
        self._records[record.id] = record
        return record

    def get(self, record_id: str) -> T | None:
        return self._records.get(record_id)

    def require(self, record_id: str) -> T:
        """Get a record or raise the registry's not-found error."""
        record = self._records.get(record_id)
        if record is None:
            raise self._not_found(record_id)
        return record

    def replace(self, record: T) -> T:
        """Swap in a new version of an existing record, keeping its position."""
        if record.id not in self._records:
            raise self._not_found(record.id)
        self._records[record.id] = record
        return record

    def remove(self, record_id: str) -> T:
        record = self._records.pop(record_id, None)
        if record is None:
            raise self._not_found(record_id)
        return record

    def select(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        """Records in insertion order, optionally filtered."""
        if predicate is None:
            return list(self._records.values())
        return [r for r in self._records.values() if predicate(r)]

    def newest(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        """Records newest first, optionally filtered."""
        return list(reversed(self.select(predicate)))

    def count(self, predicate: Callable[[T], bool] | None = None) -> int:
        return len(self.select(predicate))

    def clear(self) -> int:
        """Drop all records, returning how many were held."""
        count = len(self._records)
        self._records.clear()
        return count

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._records.values()))

    def _evict_one(self) -> None:
        for record_id, record in self._records.items():
            if self._evictable(record):
                del self._records[record_id]
                logger.debug(f"Evicted {self.name} {record_id}")
                return


def describe(registries: dict[str, Registry[Any]]) -> dict[str, int]:
    """Record counts per registry, for health views."""
    return {name: len(registry) for name, registry in registries.items()}
