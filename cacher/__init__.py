"""
Cacher: JSON caching over Redis.

Provides async get/set/expire/delete of JSON values under a configurable
key prefix, plus read-through fills on a miss.

Usage:
    from cacher import Cacher, cached

    cacher = Cacher().init({"address": "127.0.0.1", "port": 6379, "database_index": 1})

    # Direct cache access
    await cacher.set_data("user:123", {"name": "a"}, 300)
    user = await cacher.get_data("user:123")

    # Read-through
    user = await cacher.get_data_with_fallback("user:123", 300, load_user)

    # Decorator-based caching
    @cached(cacher, "user:{0}", ttl=300)
    async def get_user(user_id: int):
        return await load_user(user_id)
"""

from cacher.client import Cacher
from cacher.config import CacherSettings, get_settings
from cacher.decorators import cached
from cacher.exceptions import (
    CacherError,
    ConfigurationError,
    NotFoundError,
    SerializationError,
    StoreConnectionError,
    StoreError,
)

__version__ = "1.0.0"

__all__ = [
    "Cacher",
    "CacherSettings",
    "get_settings",
    "cached",
    "CacherError",
    "ConfigurationError",
    "NotFoundError",
    "SerializationError",
    "StoreConnectionError",
    "StoreError",
]
