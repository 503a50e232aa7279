"""Exceptions raised by the allocation and lookup core.

Classes:
    ShortlinkError:
        Generic base class for all shortlink exceptions.

    InvalidInputError:
        Raised when a request field is missing or empty after normalization.

    CollisionError:
        Raised by a store when the candidate code is already taken for the domain.
        Internal only: the allocation loop absorbs it and retries.

    ExhaustedRetriesError:
        Raised when every allocation attempt collided.

    NotFoundError:
        Raised when no mapping exists for a (domain, code) pair.

    StoreUnavailableError:
        Raised when the durable store is unreachable or fails unexpectedly.

    CacheDegradedError:
        Raised inside the cache adapter for any cache failure. Never leaves it.

    EntropyUnavailableError:
        Raised when the OS random source fails and the clock fallback is disabled.

Example:
    >>> from shortlink.exceptions import NotFoundError
    >>> raise NotFoundError("shortenurl.org/abcdefghi")
    Traceback (most recent call last):
        ...
    shortlink.exceptions.NotFoundError: shortenurl.org/abcdefghi
"""

__all__ = [
    "ShortlinkError",
    "InvalidInputError",
    "CollisionError",
    "ExhaustedRetriesError",
    "NotFoundError",
    "StoreUnavailableError",
    "CacheDegradedError",
    "EntropyUnavailableError",
]


class ShortlinkError(Exception):
    """Generic base class for shortlink exceptions."""

    pass


class InvalidInputError(ShortlinkError, ValueError):
    """Exception raised when a request field is missing or malformed."""

    pass


class CollisionError(ShortlinkError):
    """Exception raised when a (domain, code) pair is already taken."""

    def __init__(self, domain: str, code: str):
        super().__init__(f"Code '{code}' already taken for domain '{domain}'")
        self.domain = domain
        self.code = code


class ExhaustedRetriesError(ShortlinkError):
    """Exception raised when allocation could not find a free code."""

    def __init__(self, domain: str, attempts: int):
        super().__init__(f"No free code for domain '{domain}' after {attempts} attempts")
        self.domain = domain
        self.attempts = attempts


class NotFoundError(ShortlinkError):
    """Exception raised when a mapping does not exist."""

    pass


class StoreUnavailableError(ShortlinkError):
    """Exception raised when the durable store fails.

    e.g. connection issues, timeouts, constraint failures other than a code collision.
    """

    pass


class CacheDegradedError(ShortlinkError):
    """Exception raised when a cache operation fails or times out."""

    pass


class EntropyUnavailableError(ShortlinkError):
    """Exception raised when no secure random byte could be drawn."""

    pass
