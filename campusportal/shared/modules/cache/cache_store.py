"""
Namespaced, TTL-aware cache store over a Redis-protocol server (Redis or DragonflyDB).

Values are stored as UTF-8 JSON so any process (or a redis-cli session) can read
them, and are rebuilt into the caller's type on the way out.
"""
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from functools import lru_cache
from typing import Any, Optional, Type, TypeVar, Union

import redis
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError, to_json

from shared.modules.cache.cache_key_generator import CacheKeyGenerator
from shared.modules.errors import (
    DeserializationError,
    NotFound,
    SerializationError,
    StoreError,
)

T = TypeVar("T")
TTL = Union[timedelta, int, float, None]

# SCAN + DEL loop executed server-side so a flush is one atomic round trip
FLUSH_NAMESPACE_SCRIPT = """
local cursor = "0"
local deleted = 0
repeat
    local result = redis.call("SCAN", cursor, "MATCH", ARGV[1], "COUNT", 500)
    cursor = result[1]
    local keys = result[2]
    if #keys > 0 then
        deleted = deleted + redis.call("DEL", unpack(keys))
    end
until cursor == "0"
return deleted
"""


@lru_cache(maxsize=64)
def _adapter(destination) -> TypeAdapter:
    return TypeAdapter(destination)


class CacheStore(ABC):
    """Abstract cache interface used by the fetch-or-populate orchestrator and repositories."""

    @abstractmethod
    def get(self, key: str, destination: Type[T]) -> T:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any, ttl: TTL) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def invalidate(self, *keys: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def flush(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def health_check(self) -> bool:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # JSON codec, shared with the orchestrator
    # -------------------------------------------------------------------------

    @staticmethod
    def encode(value: Any) -> bytes:
        try:
            return to_json(value)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise SerializationError(f"failed to marshal value of type {type(value).__name__}: {e}") from e

    @staticmethod
    def decode(blob: Union[bytes, str], destination: Type[T]) -> T:
        try:
            return _adapter(destination).validate_json(blob)
        except PydanticValidationError as e:
            raise DeserializationError(f"cached value does not fit {getattr(destination, '__name__', destination)}: {e}") from e


class RedisCacheStore(CacheStore):
    """
    Cache store backed by a redis.Redis client.

    The client (and its connection pool) is safe to share between request threads.
    Every key is prefixed with the instance namespace so several deployments can
    share one physical server, and flush() only ever touches this namespace.
    """

    def __init__(self, client: redis.Redis, prefix: str, logger: Optional[logging.Logger] = None):
        self.client = client
        self.keys = CacheKeyGenerator(prefix)
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def prefix(self) -> str:
        return self.keys.prefix

    def build_key(self, key: str) -> str:
        return self.keys.build(key)

    def set(self, key: str, value: Any, ttl: TTL) -> None:
        data = self.encode(value)
        try:
            self.client.set(self.build_key(key), data, ex=_ttl_seconds(ttl))
        except redis.RedisError as e:
            raise StoreError(f"failed to write cache key {key}: {e}") from e

    def get(self, key: str, destination: Type[T]) -> T:
        try:
            data = self.client.get(self.build_key(key))
        except redis.RedisError as e:
            raise StoreError(f"failed to read cache key {key}: {e}") from e
        if data is None:
            raise NotFound(f"key not found: {key}")
        return self.decode(data, destination)

    def delete(self, key: str) -> int:
        return self.invalidate(key)

    def invalidate(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return self.client.delete(*[self.build_key(key) for key in keys])
        except redis.RedisError as e:
            raise StoreError(f"failed to delete cache keys {list(keys)}: {e}") from e

    def flush(self) -> int:
        pattern = self.keys.pattern()
        try:
            deleted = self.client.eval(FLUSH_NAMESPACE_SCRIPT, 0, pattern)
        except redis.RedisError as e:
            raise StoreError(f"failed to flush namespace {self.prefix}: {e}") from e
        self.logger.info(f"Flushed {deleted} keys under {pattern}")
        return int(deleted)

    def health_check(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            self.logger.warning(f"Cache health check failed: {e}")
            return False

    def close(self):
        self.client.close()


def _ttl_seconds(ttl: TTL) -> Optional[int]:
    """redis-py rejects zero or negative expirations, so those mean 'no expiry'."""
    if ttl is None:
        return None
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds <= 0:
        return None
    return max(1, int(seconds))
