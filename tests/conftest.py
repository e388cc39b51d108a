"""
Pytest fixtures for cacher tests.

Uses an in-memory async stand-in for the Redis client so tests run
without a server. Expiry is driven by a fake clock instead of sleeping.
"""

import math
from typing import Optional

import pytest
import structlog
from redis.exceptions import ResponseError

from cacher.client import Cacher
from cacher.config import build_settings
from cacher.connection import ConnectionFactory


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _to_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


class FakeRedis:
    """
    Minimal async Redis double covering the commands cacher issues.

    Values are held and returned as bytes, like a client created with
    decode_responses=False.

    Set ``fail_with`` to an exception to make every command raise it.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.data: dict[str, tuple[bytes, Optional[float]]] = {}
        self.commands: list[tuple] = []
        self.close_count = 0
        self.fail_with: Optional[Exception] = None

    def _record(self, *command) -> None:
        self.commands.append(command)
        if self.fail_with is not None:
            raise self.fail_with

    def _live(self, key: str) -> Optional[tuple[bytes, Optional[float]]]:
        entry = self.data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and expires_at <= self.clock.now:
            del self.data[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[bytes]:
        self._record("GET", key)
        entry = self._live(key)
        return entry[0] if entry else None

    async def setex(self, key: str, ttl: int, value: str | bytes) -> bool:
        self._record("SETEX", key, ttl, value)
        if ttl <= 0:
            raise ResponseError("invalid expire time in 'setex' command")
        self.data[key] = (_to_bytes(value), self.clock.now + ttl)
        return True

    async def expire(self, key: str, ttl: int) -> bool:
        self._record("EXPIRE", key, ttl)
        entry = self._live(key)
        if entry is None:
            return False
        if ttl <= 0:
            del self.data[key]
        else:
            self.data[key] = (entry[0], self.clock.now + ttl)
        return True

    async def delete(self, *keys: str) -> int:
        self._record("DEL", *keys)
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                del self.data[key]
                deleted += 1
        return deleted

    async def exists(self, *keys: str) -> int:
        self._record("EXISTS", *keys)
        return sum(1 for key in keys if self._live(key) is not None)

    async def ttl(self, key: str) -> int:
        self._record("TTL", key)
        entry = self._live(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return math.ceil(entry[1] - self.clock.now)

    async def ping(self) -> bool:
        self._record("PING")
        return True

    async def aclose(self) -> None:
        self.close_count += 1

    def raw_set(self, key: str, value: str | bytes, ttl: Optional[float] = None) -> None:
        """Write directly into the store, bypassing cacher."""
        expires_at = self.clock.now + ttl if ttl is not None else None
        self.data[key] = (_to_bytes(value), expires_at)


@pytest.fixture(autouse=True)
def _clear_log_context():
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def settings():
    """Settings with defaults, independent of the environment's prefix."""
    return build_settings({"address": "127.0.0.1", "port": 6379, "database_index": 1, "prefix": "cacher"})


@pytest.fixture
def connections(settings, fake_redis):
    return ConnectionFactory(settings, client_factory=lambda: fake_redis)


@pytest.fixture
def cacher(settings, connections):
    return Cacher(settings, connections=connections)
