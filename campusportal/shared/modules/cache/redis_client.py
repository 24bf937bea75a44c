"""
Process-wide Redis client and cache store bootstrap.
"""
import logging
import os
import threading
from typing import Optional

import redis

from shared.modules.cache.cache_store import RedisCacheStore
from shared.modules.errors import CacheInitializationError

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_initialized = False
_instance: Optional[RedisCacheStore] = None
_init_error: Optional[CacheInitializationError] = None


def create_redis_client(host=None, port=None, password=None, db=None, socket_timeout=None) -> redis.Redis:
    """
    Build a redis client for the cache server (Redis or DragonflyDB).
    Falls back to the CACHE_* environment variables for anything not passed in.
    """
    host = host or os.environ.get("CACHE_HOST", "localhost")
    port = port or int(os.environ.get("CACHE_PORT", 6379))
    password = password or os.environ.get("CACHE_PASSWORD") or None
    db = db if db is not None else int(os.environ.get("CACHE_DB", 0))
    socket_timeout = socket_timeout or float(os.environ.get("CACHE_SOCKET_TIMEOUT", 2.0))
    return redis.Redis(
        host=host,
        port=port,
        password=password,
        db=db,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        decode_responses=True,
    )


def connect_cache_store(client: redis.Redis, prefix: str) -> RedisCacheStore:
    """Ping the server and wrap the client; raises CacheInitializationError when unreachable."""
    try:
        client.ping()
    except redis.RedisError as e:
        raise CacheInitializationError(f"failed to connect to cache at {_describe(client)}: {e}") from e
    logger.info(f"Connected to cache at {_describe(client)} (prefix={prefix})")
    return RedisCacheStore(client, prefix)


def init_cache_store(prefix: str, client: Optional[redis.Redis] = None, **client_options) -> RedisCacheStore:
    """
    Initialize the process-wide cache store exactly once.

    Concurrent and repeated callers all observe the same instance, or the same
    initialization error. Callers must be ready to run without a cache when this
    raises.
    """
    global _initialized, _instance, _init_error
    with _lock:
        if not _initialized:
            try:
                _instance = connect_cache_store(client or create_redis_client(**client_options), prefix)
            except CacheInitializationError as e:
                _init_error = e
            _initialized = True
    if _init_error is not None:
        raise _init_error
    return _instance


def reset_cache_store():
    """Close and forget the process-wide instance (shutdown and tests)."""
    global _initialized, _instance, _init_error
    with _lock:
        if _instance is not None:
            _instance.close()
        _initialized = False
        _instance = None
        _init_error = None


def _describe(client: redis.Redis) -> str:
    kwargs = client.connection_pool.connection_kwargs
    return f"{kwargs.get('host')}:{kwargs.get('port')}/{kwargs.get('db')}"
