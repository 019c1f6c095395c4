import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable

import redis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 120


class ResponseCache:
    """Key/value store for already-mapped upstream results."""

    def get(self, key: str):
        """
        Return the cached value for a key.

        Args:
            key (str): Cache key.

        Returns:
            Any: Stored value, or None on a miss or after expiry.
        """
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl_seconds: float = DEFAULT_TTL_SECONDS):
        """
        Store a value for a key.

        Args:
            key (str): Cache key.
            value (Any): JSON-compatible value.
            ttl_seconds (float): Lifetime of the entry.
        """
        raise NotImplementedError


class MemoryResponseCache(ResponseCache):
    """
    Process-wide cache with lazy expiry.

    Entries are checked for expiry only when read. Stored values are returned
    as-is, so callers must not mutate them. ``max_entries`` bounds the map by
    dropping the oldest insertions first; 0 keeps it unbounded.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS, max_entries: int = 0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self.max_entries = max(int(max_entries or 0), 0)
        self.clock = clock
        self._entries = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str):
        """
        Return a live entry, dropping it when it has expired.

        Args:
            key (str): Cache key.

        Returns:
            Any: Stored value or None.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None):
        """
        Store or replace an entry, evicting the oldest ones past ``max_entries``.

        Args:
            key (str): Cache key.
            value (Any): Value to store.
            ttl_seconds (float | None): Lifetime, ``default_ttl`` when None.
        """
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self.clock() + ttl, value)
            if self.max_entries:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def __len__(self):
        with self._lock:
            return len(self._entries)


class RedisResponseCache(ResponseCache):
    """Cache backed by redis ``SETEX`` with JSON payloads."""

    def __init__(self, redis_client: redis.Redis, prefix: str = "items", default_ttl: float = DEFAULT_TTL_SECONDS):
        self.redis_client = redis_client
        self.prefix = prefix
        self.default_ttl = default_ttl

    def _key(self, key: str):
        return f"{self.prefix}:{key}" if self.prefix else key

    def get(self, key: str):
        """
        Read and decode a JSON entry; redis errors count as a miss.

        Args:
            key (str): Cache key without the prefix.

        Returns:
            Any: Decoded value or None.
        """
        try:
            cached = self.redis_client.get(self._key(key))
        except redis.RedisError as exc:
            logger.warning("redis get failed for %s: %s", key, exc)
            return None
        if not cached:
            return None
        try:
            return json.loads(cached)
        except json.JSONDecodeError:
            return None

    def set(self, key: str, value: Any, ttl_seconds: float | None = None):
        """
        Store a value as JSON with ``SETEX``; redis errors are logged and ignored.

        Args:
            key (str): Cache key without the prefix.
            value (Any): JSON-compatible value.
            ttl_seconds (float | None): Lifetime, ``default_ttl`` when None.
        """
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        try:
            self.redis_client.setex(self._key(key), max(int(ttl), 1), json.dumps(value))
        except redis.RedisError as exc:
            logger.warning("redis set failed for %s: %s", key, exc)


def create_response_cache(backend: str, ttl_seconds: float = DEFAULT_TTL_SECONDS, max_entries: int = 0, redis_client: redis.Redis | None = None):
    """
    Build the configured cache implementation.

    Args:
        backend (str): ``memory`` or ``redis``.
        ttl_seconds (float): Default time-to-live.
        max_entries (int): Bound for the memory cache, 0 for unbounded.
        redis_client (Redis | None): Client used by the redis backend.

    Returns:
        ResponseCache: Cache instance.
    """
    normalized = (backend or "memory").strip().lower()
    if normalized == "redis":
        if redis_client is None:
            raise ValueError("redis cache backend requires a redis client")
        return RedisResponseCache(redis_client, default_ttl=ttl_seconds)
    if normalized != "memory":
        logger.warning("unknown cache backend %r, using memory", backend)
    return MemoryResponseCache(default_ttl=ttl_seconds, max_entries=max_entries)
