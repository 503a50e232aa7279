"""In-process fallback mapping store.

Used only when no durable store is configured or reachable. Honors the same
contract as the SQL store with weaker durability: mappings live as long as the
process does.

Key Behaviours
===============
- One lock per store instance spans "check existence" and "insert", so two
  concurrent allocations can never both observe absence and both insert.
- Reads take the same lock; the critical sections hold no awaits and are short.
- A threading lock is used so the guarantee also holds when the store is
  shared between threads running their own event loops.
"""

import threading

from shortlink.enums import StoreBackend
from shortlink.exceptions import CollisionError, NotFoundError
from shortlink.storage.base import MappingStore

__all__ = ["InMemoryMappingStore"]


class InMemoryMappingStore(MappingStore):
    backend = StoreBackend.MEMORY

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    async def insert_unique(self, domain: str, code: str, original_url: str) -> None:
        key = (domain, code)
        with self._lock:
            if key in self._data:
                raise CollisionError(domain, code)
            self._data[key] = original_url

    async def get(self, domain: str, code: str) -> str:
        with self._lock:
            original_url = self._data.get((domain, code))
        if original_url is None:
            raise NotFoundError(f"{domain}/{code}")
        return original_url

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def items(self) -> list[tuple[tuple[str, str], str]]:
        """Snapshot of all stored mappings."""
        with self._lock:
            return list(self._data.items())
