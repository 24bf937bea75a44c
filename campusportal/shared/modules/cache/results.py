"""
Outcome types for cache-aside reads and repository writes.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FetchSource(str, Enum):
    CACHE = "cache"
    STORE = "store"
    # value produced by another caller's in-flight fetch for the same key
    COALESCED = "coalesced"


@dataclass
class FetchResult(Generic[T]):
    """Outcome of a cache-aside read: the value plus any tolerated cache failure."""

    value: T
    source: FetchSource
    cache_error: Optional[Exception] = None

    @property
    def cache_ok(self) -> bool:
        return self.cache_error is None


@dataclass
class WriteResult(Generic[T]):
    """
    Outcome of a repository write.

    The primary (document store) write always succeeded when a WriteResult is
    returned; `cache_error` records a failed best-effort cache write or
    invalidation so callers and tests can see it without reading logs.
    """

    value: T
    cache_error: Optional[Exception] = None

    @property
    def cache_ok(self) -> bool:
        return self.cache_error is None
