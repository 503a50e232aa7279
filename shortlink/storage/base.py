"""Abstract base class for mapping stores.

This class establishes a consistent contract for every store that can own the
canonical (domain, code) -> original_url mappings, regardless of the backend
(SQL database or the in-process fallback).

Responsibilities:
    - Insert a mapping under a true (domain, code) uniqueness constraint.
    - Retrieve a mapping by (domain, code).
    - Translate backend-specific failures into the shortlink exception taxonomy.

Example:
    >>> from shortlink.storage.memory import InMemoryMappingStore
    >>> store = InMemoryMappingStore()
    >>> await store.insert_unique("shortenurl.org", "a1B2c3D4e", "https://example.com")
    >>> await store.get("shortenurl.org", "a1B2c3D4e")
    'https://example.com'
"""

from abc import ABC, abstractmethod

from shortlink.enums import StoreBackend

__all__ = ["MappingStore"]


class MappingStore(ABC):
    """Interface for mapping stores.

    Methods:
        insert_unique(domain, code, original_url) -> None:
            Persist a new mapping.
            Raises CollisionError if (domain, code) already exists.
            Raises StoreUnavailableError on any other failure.

        get(domain, code) -> str:
            Return the original URL for (domain, code).
            Raises NotFoundError if no mapping exists.
            Raises StoreUnavailableError on any other failure.

    NOTE:
        - Uniqueness must be enforced by the store itself. Callers never
          check-then-insert across two calls.
        - Mappings are immutable; there is no update or delete.
    """

    backend: StoreBackend

    @abstractmethod
    async def insert_unique(self, domain: str, code: str, original_url: str) -> None:
        """Insert a new mapping.

        Raises:
            CollisionError:
                If a mapping with the same (domain, code) already exists.

            StoreUnavailableError:
                If there is any other error in the store.
        """

    @abstractmethod
    async def get(self, domain: str, code: str) -> str:
        """Retrieve the original URL for (domain, code).

        Raises:
            NotFoundError:
                If no mapping exists.

            StoreUnavailableError:
                If there is any other error in the store.
        """

    async def ping(self) -> bool:
        """Return True if the store is reachable."""
        return True

    async def close(self) -> None:
        """Release backend resources."""
