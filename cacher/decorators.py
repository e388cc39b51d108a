"""
Caching decorator for async functions.

Routes calls through Cacher.get_data_with_fallback(), so a hit skips the
function and a miss runs it and stores the result.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar, Union

from cacher.client import Cacher
from cacher.keys import SEPARATOR, hash_key
from cacher.logging import LazyLogger

logger = LazyLogger("cacher.decorators")

T = TypeVar("T")

KeyTemplate = Union[str, Callable[..., str]]


def _format_key(template: str, args: tuple, kwargs: dict) -> str:
    """
    Fill a key template from the decorated function's arguments.

    "user:{0}" takes the first positional argument and "user:{user_id}"
    the keyword argument of that name. A template naming something the
    call does not supply keeps its text and gets a short digest of the
    arguments appended, so different calls still land on different keys.
    """
    try:
        return template.format(*args, **kwargs)
    except (IndexError, KeyError):
        digest = hash_key(repr((args, sorted(kwargs.items()))))[:8]
        return f"{template}{SEPARATOR}{digest}"


def _resolve_key(key_template: KeyTemplate, args: tuple, kwargs: dict) -> str:
    if callable(key_template):
        return key_template(*args, **kwargs)
    return _format_key(key_template, args, kwargs)


def cached(
    cacher: Cacher,
    key_template: KeyTemplate,
    ttl: int = 300,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for caching async function results as JSON.

    Args:
        cacher: Cacher used for reads and writes
        key_template: Cache key template string or callable that returns key
            - String: Supports {0}, {1}, {arg_name} placeholders
            - Callable: Function that takes same args and returns key string
        ttl: Time-to-live in seconds (default: 5 minutes)

    Usage:
        @cached(cacher, "user:{0}", ttl=60)
        async def load_user(user_id: int):
            return await db.fetch_user(user_id)

        await load_user.invalidate(1)

    Notes:
        - Store errors on the initial read propagate; write errors are logged
        - Result must be JSON-serializable
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            cache_key = _resolve_key(key_template, args, kwargs)
            return await cacher.get_data_with_fallback(
                cache_key, ttl, lambda: func(*args, **kwargs)
            )

        async def invalidate(*args: Any, **kwargs: Any) -> None:
            """Invalidate cache for specific arguments."""
            cache_key = _resolve_key(key_template, args, kwargs)
            logger.debug("cache_invalidate", key=cache_key)
            await cacher.delete_data(cache_key)

        wrapper.cache_key_template = key_template  # type: ignore[attr-defined]
        wrapper.cache_ttl = ttl  # type: ignore[attr-defined]
        wrapper.invalidate = invalidate  # type: ignore[attr-defined]
        return wrapper

    return decorator


__all__ = ["cached"]
