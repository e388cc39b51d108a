"""
Cache key namespacing.

Every logical key is stored as ``{prefix}:{key}`` so that several
applications can share one logical database without collisions.

Examples:
    - namespaced_key("cacher", "user:1") -> "cacher:user:1"
    - namespaced_key("appcache", "user:1", hash_keys=True)
      -> "appcache:<md5 of 'user:1'>"
"""

import hashlib

SEPARATOR = ":"


def hash_key(key: str) -> str:
    """MD5 hex digest of a logical key."""
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def namespaced_key(prefix: str, key: str, hash_keys: bool = False) -> str:
    """
    Derive the key sent to the store from a logical key.

    Args:
        prefix: Namespace prefix (e.g. "cacher")
        key: Logical key supplied by the caller
        hash_keys: Replace the logical key with its MD5 digest

    Returns:
        Namespaced key string
    """
    if not key:
        raise ValueError("cache key cannot be empty")
    if hash_keys:
        key = hash_key(key)
    return f"{prefix}{SEPARATOR}{key}"


__all__ = ["SEPARATOR", "hash_key", "namespaced_key"]
