"""
Store connection helper.

Hands out redis.asyncio clients for the configured address and logical
database, one per operation:

- use_pool=True: clients share a ConnectionPool (default)
- use_pool=False: every operation opens its own connection and closes it
  when the operation finishes, success or failure

Driver exceptions raised inside an operation are translated into the
cacher error taxonomy.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from cacher.config import CacherSettings
from cacher.exceptions import StoreConnectionError, StoreError
from cacher.logging import LazyLogger

logger = LazyLogger("cacher.connection")

ClientFactory = Callable[[], "redis.Redis"]


class ConnectionFactory:
    """
    Creates store clients for one set of settings.

    Usage:
        connections = ConnectionFactory(settings)
        async with connections.connection() as client:
            await client.get("cacher:user:1")
        await connections.aclose()
    """

    def __init__(
        self,
        settings: CacherSettings,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.settings = settings
        self._client_factory = client_factory
        self._pool: Optional[redis.ConnectionPool] = None

    def _connection_kwargs(self) -> dict:
        return {
            "host": self.settings.address,
            "port": self.settings.port,
            "db": self.settings.database_index,
            "password": self.settings.password,
            "socket_timeout": self.settings.socket_timeout,
            "socket_connect_timeout": self.settings.socket_connect_timeout,
            "decode_responses": False,
        }

    @property
    def pool(self) -> redis.ConnectionPool:
        """Shared connection pool, created on first use."""
        if self._pool is None:
            self._pool = redis.ConnectionPool(
                max_connections=self.settings.max_connections,
                **self._connection_kwargs(),
            )
            logger.debug(
                "redis_pool_created",
                host=self.settings.address,
                port=self.settings.port,
                db=self.settings.database_index,
            )
        return self._pool

    def new_client(self) -> "redis.Redis":
        """Create a client for a single operation."""
        if self._client_factory is not None:
            return self._client_factory()
        if self.settings.use_pool:
            return redis.Redis(connection_pool=self.pool)
        return redis.Redis(single_connection_client=True, **self._connection_kwargs())

    @asynccontextmanager
    async def connection(self) -> AsyncIterator["redis.Redis"]:
        """
        Yield a client for one operation and close it afterwards.

        Raises:
            StoreConnectionError: Store unreachable, timed out, or database not selectable
            StoreError: Any other command failure
        """
        client = self.new_client()
        try:
            yield client
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning(
                "redis_connection_failed",
                host=self.settings.address,
                port=self.settings.port,
                error=str(e),
            )
            raise StoreConnectionError(
                f"cannot reach store at {self.settings.address}:{self.settings.port}: {e}",
                cause=e,
            ) from e
        except RedisError as e:
            raise StoreError(f"store command failed: {e}", cause=e) from e
        finally:
            await client.aclose()

    async def aclose(self) -> None:
        """Disconnect every pooled connection."""
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
            logger.debug("redis_pool_closed")


__all__ = ["ClientFactory", "ConnectionFactory"]
