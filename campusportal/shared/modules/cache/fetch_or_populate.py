"""
Cache-aside read path.

FetchOrPopulate decides, per read, whether a value comes from the cache or from
the authoritative store, and best-effort populates the cache on a miss. Cache
trouble is never surfaced to the caller; fetch errors always are.
"""
import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from shared.modules.cache.cache_store import TTL, CacheStore
from shared.modules.cache.results import FetchResult, FetchSource
from shared.modules.deadline import Deadline
from shared.modules.errors import DeadlineExceeded, NotFound, OperationCancelled, PortalError
from shared.modules.log.error_logger import (
    CACHE_FAILED_TO_READ,
    CACHE_FAILED_TO_WRITE,
    log_error_with_level,
)
from shared.modules.metrics import CACHE_DEGRADED_TOTAL, CACHE_HITS_TOTAL, CACHE_MISSES_TOTAL

T = TypeVar("T")

# how often a waiting caller re-checks its own deadline
WAIT_POLL_INTERVAL = 0.05


class LeaderAbandoned(Exception):
    """Handed to waiters when the fetching caller gave up on its own deadline or cancel."""


class FetchOrPopulate:
    """
    Orchestrates cache-aside reads against a CacheStore.

    Concurrent misses for the same key are collapsed: the first caller fetches,
    later callers wait on its in-flight future and decode the same payload into
    their own destination type. Waiters are only ever stopped by their own
    deadline; if the fetching caller is cancelled or runs out of time, a waiter
    takes over and fetches for itself.
    """

    def __init__(self, cache_store: CacheStore, logger: Optional[logging.Logger] = None):
        self.cache_store = cache_store
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._in_flight: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def get_or_fetch(
        self,
        key: str,
        destination: Type[T],
        fetch_fn: Callable[[], Any],
        ttl: TTL,
        deadline: Optional[Deadline] = None,
    ) -> FetchResult[T]:
        deadline = deadline or Deadline()
        deadline.check()
        entity = key.split(":", 1)[0]

        cache_error = None
        try:
            value = self.cache_store.get(key, destination)
            CACHE_HITS_TOTAL.labels(entity=entity).inc()
            return FetchResult(value=value, source=FetchSource.CACHE)
        except NotFound:
            CACHE_MISSES_TOTAL.labels(entity=entity).inc()
        except PortalError as e:
            log_error_with_level(self.logger, "warning", CACHE_FAILED_TO_READ, e, key=key)
            CACHE_DEGRADED_TOTAL.labels(entity=entity, operation="read").inc()
            cache_error = e

        while True:
            deadline.check()

            with self._lock:
                future = self._in_flight.get(key)
                is_leader = future is None
                if is_leader:
                    future = Future()
                    self._in_flight[key] = future

            if is_leader:
                break

            try:
                payload = self._wait_for(future, deadline)
            except LeaderAbandoned:
                self.logger.debug(f"Fetch for {key} abandoned by its caller, retrying")
                continue
            return FetchResult(
                value=self.cache_store.decode(payload, destination),
                source=FetchSource.COALESCED,
                cache_error=cache_error,
            )

        try:
            payload, write_error = self._fetch_and_populate(key, fetch_fn, ttl)
        except (OperationCancelled, DeadlineExceeded) as e:
            # the leader's own signal; waiters retry under theirs
            self._release(key, future, error=LeaderAbandoned(str(e)))
            raise
        except BaseException as e:
            self._release(key, future, error=e)
            raise
        self._release(key, future, payload=payload)

        if write_error is not None:
            CACHE_DEGRADED_TOTAL.labels(entity=entity, operation="write").inc()
        return FetchResult(
            value=self.cache_store.decode(payload, destination),
            source=FetchSource.STORE,
            cache_error=write_error or cache_error,
        )

    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def _release(self, key: str, future: Future, payload=None, error: Optional[BaseException] = None):
        # drop the entry before waking waiters so a retrying waiter never finds the settled future
        with self._lock:
            self._in_flight.pop(key, None)
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(payload)

    def _fetch_and_populate(self, key: str, fetch_fn: Callable[[], Any], ttl: TTL):
        """
        Run the fetch and best-effort write the result back.

        A value that cannot be encoded is a fetch failure, not a cache failure:
        the encoded payload is what every waiter decodes, so there is nothing to
        hand back without it.
        """
        fetched = fetch_fn()
        if fetched is None:
            raise NotFound(f"no document for cache key {key}")

        payload = self.cache_store.encode(fetched)

        write_error = None
        try:
            self.cache_store.set(key, fetched, ttl)
        except PortalError as e:
            log_error_with_level(self.logger, "warning", CACHE_FAILED_TO_WRITE, e, key=key)
            write_error = e
        return payload, write_error

    @staticmethod
    def _wait_for(future: Future, deadline: Deadline):
        while True:
            deadline.check()
            try:
                return future.result(timeout=deadline.slice(WAIT_POLL_INTERVAL))
            except FutureTimeoutError:
                continue
