"""
Async JSON cache client backed by Redis.

Provides:
- JSON get/set/expire/delete under a configurable key prefix
- Read-through fill via get_data_with_fallback()
- Optional single-flight de-duplication of concurrent fills

Usage:
    from cacher import Cacher

    cacher = Cacher().init({"address": "127.0.0.1", "port": 6379})
    await cacher.set_data("user:1", {"name": "a"}, 15)
    user = await cacher.get_data("user:1")

    user = await cacher.get_data_with_fallback("user:1", 300, load_user)
"""

import asyncio
import inspect
import json
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Optional, TypeVar, Union

from cacher.config import CacherSettings, get_settings
from cacher.connection import ConnectionFactory
from cacher.exceptions import NotFoundError, SerializationError, StoreError
from cacher.keys import namespaced_key
from cacher.logging import LazyLogger, LogContext

logger = LazyLogger("cacher")

T = TypeVar("T")

Fallback = Callable[[], Union[Awaitable[T], T]]


class Cacher:
    """
    Redis cache client for JSON values.

    Settings are immutable; init() and set_cache_prefix() swap in a new
    settings value rather than mutating the current one.

    Features:
    - One client per operation, pooled unless use_pool is off
    - Misses and malformed entries read back as None
    - Cache-write failures after a successful fallback are logged, not raised
    """

    def __init__(
        self,
        settings: Optional[CacherSettings] = None,
        connections: Optional[ConnectionFactory] = None,
    ):
        self.settings = settings or get_settings()
        self._connections = connections or ConnectionFactory(self.settings)
        # Borrowed connections (with_prefix children) are closed by their owner
        self._owns_connections = connections is None
        self._retired: list[ConnectionFactory] = []
        self._inflight: dict[str, asyncio.Task] = {}

    async def __aenter__(self) -> "Cacher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Configuration
    # =========================================================================

    def init(self, config: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "Cacher":
        """
        Lay caller-supplied settings over the current ones.

        Args:
            config: Mapping such as {"address": "127.0.0.1", "port": 6379, "database_index": 1}
            **overrides: Same keys as keyword arguments

        Returns:
            This cacher, for chaining
        """
        self.settings = self.settings.merge(config, **overrides)
        if self._owns_connections:
            self._retired.append(self._connections)
        self._connections = ConnectionFactory(self.settings)
        self._owns_connections = True
        logger.debug(
            "cacher_initialized",
            host=self.settings.address,
            port=self.settings.port,
            db=self.settings.database_index,
        )
        return self

    def set_cache_prefix(self, prefix: str) -> None:
        """Replace the key namespace prefix (default "cacher")."""
        self.settings = self.settings.merge(prefix=prefix)

    def with_prefix(self, prefix: str) -> "Cacher":
        """Return a new cacher using another prefix over the same connections."""
        return Cacher(self.settings.merge(prefix=prefix), connections=self._connections)

    def key_for(self, key: str) -> str:
        """Namespaced key sent to the store for a logical key."""
        return namespaced_key(self.settings.prefix, key, self.settings.hash_keys)

    # =========================================================================
    # Data Operations
    # =========================================================================

    async def get_data(self, key: str) -> Any | None:
        """
        Get a JSON value from cache.

        Args:
            key: Logical cache key

        Returns:
            Decoded value, or None on a miss or a malformed entry

        Raises:
            StoreError: The read failed
        """
        storage_key = self.key_for(key)
        async with self._connections.connection() as client:
            raw = await client.get(storage_key)

        if raw is None:
            logger.debug("cache_miss", key=storage_key)
            return None

        value = self._decode(storage_key, raw)
        if value is not None:
            logger.debug("cache_hit", key=storage_key)
        return value

    @staticmethod
    def _decode(storage_key: str, raw: Union[bytes, str]) -> Any | None:
        # Payloads come back as raw bytes; anything not UTF-8 JSON is a miss
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("cache_decode_error", key=storage_key, error=str(e))
            return None

    async def set_data(self, key: str, value: Any, ttl: int) -> None:
        """
        Store a JSON value with an expiry.

        Every entry expires; there is no way to write one without a TTL.
        The TTL goes to SETEX unchanged, so the store decides what a zero
        or negative value means.

        Args:
            key: Logical cache key
            value: JSON-serializable value
            ttl: Seconds until the store expires the entry (required)

        Raises:
            SerializationError: value is not JSON-serializable
            StoreError: The write failed
        """
        storage_key = self.key_for(key)
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"cannot serialize value for '{key}': {e}", cause=e) from e

        async with self._connections.connection() as client:
            await client.setex(storage_key, ttl, serialized)
        logger.debug("cache_set", key=storage_key, ttl=ttl)

    async def set_ttl(self, key: str, ttl: int) -> Any:
        """
        Reset the expiry of an existing entry.

        Args:
            key: Logical cache key
            ttl: New seconds-to-live; 0 expires the entry at once

        Returns:
            The entry's decoded value (None if the stored payload is malformed)

        Raises:
            NotFoundError: There is no entry for key
            StoreError: The read or the expiry update failed
        """
        storage_key = self.key_for(key)
        async with self._connections.connection() as client:
            raw = await client.get(storage_key)
            if raw is None:
                raise NotFoundError(key)
            await client.expire(storage_key, ttl)
        logger.debug("cache_ttl_refreshed", key=storage_key, ttl=ttl)
        return self._decode(storage_key, raw)

    async def delete_data(self, key: str) -> None:
        """Delete an entry; deleting a missing key is not an error."""
        storage_key = self.key_for(key)
        async with self._connections.connection() as client:
            await client.delete(storage_key)
        logger.debug("cache_deleted", key=storage_key)

    async def get_data_with_fallback(self, key: str, ttl: int, fallback: Fallback) -> Any:
        """
        Get from cache or call fallback and cache the result.

        Args:
            key: Logical cache key
            ttl: Seconds-to-live for a freshly computed entry
            fallback: Zero-argument callable returning the value (or an awaitable of it)

        Returns:
            Cached or computed value

        Raises:
            StoreError: The initial read failed; fallback is not called
            Exception: Whatever fallback raises
        """
        value = await self.get_data(key)
        if value is not None:
            return value

        if not self.settings.single_flight:
            return await self._fill(key, ttl, fallback)

        storage_key = self.key_for(key)
        task = self._inflight.get(storage_key)
        if task is None:
            task = asyncio.ensure_future(self._fill(key, ttl, fallback))
            self._inflight[storage_key] = task
            task.add_done_callback(lambda _: self._inflight.pop(storage_key, None))
        return await asyncio.shield(task)

    async def _fill(self, key: str, ttl: int, fallback: Fallback) -> Any:
        with LogContext(cache_key=key):
            result = fallback()
            if inspect.isawaitable(result):
                result = await result

            # A stored null reads back as a miss, so there is nothing to gain
            if result is None:
                return None

            try:
                await self.set_data(key, result, ttl)
            except StoreError as e:
                logger.warning("cache_fill_failed", error=str(e), error_type=type(e).__name__)
            return result

    # =========================================================================
    # Key Inspection
    # =========================================================================

    async def exists(self, key: str) -> bool:
        """Check if an entry exists."""
        async with self._connections.connection() as client:
            return bool(await client.exists(self.key_for(key)))

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds (-2 missing, -1 no expiry)."""
        async with self._connections.connection() as client:
            return int(await client.ttl(self.key_for(key)))

    # =========================================================================
    # Health Check / Lifecycle
    # =========================================================================

    async def health_check(self) -> dict[str, Any]:
        """
        Get store health status.

        Returns:
            Dictionary with health information
        """
        status: dict[str, Any] = {
            "address": self.settings.address,
            "port": self.settings.port,
            "db": self.settings.database_index,
            "prefix": self.settings.prefix,
            "pooled": self.settings.use_pool,
        }
        try:
            async with self._connections.connection() as client:
                await client.ping()
            status["status"] = "healthy"
        except StoreError as e:
            status["status"] = "unavailable"
            status["error"] = str(e)
        return status

    async def close(self) -> None:
        """Release the pooled connections this cacher created."""
        owned = list(self._retired)
        if self._owns_connections:
            owned.append(self._connections)
        for connections in owned:
            await connections.aclose()
        self._retired.clear()


__all__ = ["Cacher", "Fallback"]
