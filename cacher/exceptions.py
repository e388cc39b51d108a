"""
Cacher exception hierarchy.

A cache miss is not an error: get_data() returns None for it. Exceptions
are reserved for failures talking to the store and for set_ttl() on a key
that does not exist.
"""

from typing import Optional


class CacherError(Exception):
    """Base class for all cacher errors."""


class ConfigurationError(CacherError):
    """Invalid cacher settings."""


class StoreError(CacherError):
    """
    A command against the store failed.

    The underlying driver exception is available as ``cause`` (and as
    ``__cause__`` when raised with ``from``).
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class StoreConnectionError(StoreError):
    """The store could not be reached or the logical database not selected."""


class SerializationError(StoreError):
    """A value could not be encoded as JSON."""


class NotFoundError(CacherError):
    """Raised by set_ttl() when there is no entry to refresh."""

    def __init__(self, key: str):
        super().__init__(f"no cache entry for key '{key}'")
        self.key = key


__all__ = [
    "CacherError",
    "ConfigurationError",
    "StoreError",
    "StoreConnectionError",
    "SerializationError",
    "NotFoundError",
]
