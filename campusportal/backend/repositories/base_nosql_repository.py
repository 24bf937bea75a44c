"""
Base repository for MongoDB collections fronted by the cache.

Handles are injected at construction instead of being pulled from the Flask
context, so repositories work the same in request handlers, background
threads and tests.
"""
import logging
from contextlib import contextmanager
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional, Type, TypeVar

import pymongo
from bson import ObjectId
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from shared.modules.cache.cache_key_generator import CacheKeyGenerator
from shared.modules.cache.cache_store import CacheStore
from shared.modules.cache.fetch_or_populate import FetchOrPopulate
from shared.modules.deadline import Deadline
from shared.modules.errors import (
    AlreadyExists,
    DeadlineExceeded,
    InvalidCredentials,
    NotFound,
    PortalError,
    StoreError,
)
from shared.modules.log.error_logger import (
    AUTH_REJECTED,
    CACHE_FAILED_TO_DELETE,
    CACHE_FAILED_TO_WRITE,
    log_error_with_level,
)

T = TypeVar("T")


class BaseNoSqlRepository:
    """
    Common plumbing for cache-aside repositories.

    Subclasses set `collection_name`, implement `_from_doc`/`_to_doc` and build
    their own logical cache keys. When `cache` is None every read goes straight
    to MongoDB and the fetch-or-populate orchestrator is never constructed.
    """

    collection_name: str = ""

    def __init__(
        self,
        db: Database,
        cache: Optional[CacheStore] = None,
        cache_ttl: timedelta = timedelta(minutes=5),
        fetcher: Optional[FetchOrPopulate] = None,
    ):
        self.db = db
        self.cache = cache
        self.cache_ttl = cache_ttl
        if cache is not None:
            self.fetcher = fetcher or FetchOrPopulate(cache)
        else:
            self.fetcher = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def collection(self) -> Collection:
        return self.db[self.collection_name]

    # -------------------------------------------------------------------------
    # Document store access
    # -------------------------------------------------------------------------

    @contextmanager
    def _document_store(self, deadline: Optional[Deadline], action: str):
        """
        Bound a MongoDB call by the caller's deadline and translate driver errors.
        """
        deadline = deadline or Deadline()
        deadline.check()
        remaining = deadline.remaining()
        if remaining == 0:
            raise DeadlineExceeded(f"{action}: no time left")
        try:
            with pymongo.timeout(remaining):
                yield
        except DuplicateKeyError as e:
            raise AlreadyExists(f"{action}: duplicate key {e.details.get('keyValue') if e.details else ''}") from e
        except PyMongoError as e:
            if e.timeout:
                raise DeadlineExceeded(f"{action}: timed out: {e}") from e
            raise StoreError(f"{action}: {e}") from e

    def _find_one(self, filter: Dict[str, Any], deadline: Optional[Deadline], action: str) -> Optional[Dict[str, Any]]:
        with self._document_store(deadline, action):
            return self.collection.find_one(filter)

    # -------------------------------------------------------------------------
    # Cache-aside helpers
    # -------------------------------------------------------------------------

    def _read_through(
        self,
        key: str,
        destination: Type[T],
        fetch_fn: Callable[[], Optional[T]],
        deadline: Optional[Deadline] = None,
    ) -> T:
        if self.fetcher is None:
            value = fetch_fn()
            if value is None:
                raise NotFound(f"no document for {key}")
            return value

        result = self.fetcher.get_or_fetch(key, destination, fetch_fn, self.cache_ttl, deadline)
        self.logger.debug(f"Read {key} from {result.source.value}")
        return result.value

    def _cache_entity(self, key: str, value: Any) -> Optional[PortalError]:
        """Best-effort cache write. Returns the failure instead of raising it."""
        if self.cache is None:
            return None
        try:
            self.cache.set(key, value, self.cache_ttl)
        except PortalError as e:
            log_error_with_level(self.logger, "warning", CACHE_FAILED_TO_WRITE, e, key=key)
            return e
        return None

    def _invalidate(self, *keys: str) -> Optional[PortalError]:
        """Best-effort invalidation. Returns the failure instead of raising it."""
        if self.cache is None or not keys:
            return None
        try:
            self.cache.invalidate(*keys)
        except PortalError as e:
            log_error_with_level(self.logger, "warning", CACHE_FAILED_TO_DELETE, e, keys=list(keys))
            return e
        return None

    def _reject_credentials(self, subject: str, reason: str):
        """Log why a credential check failed and raise the generic error."""
        log_error_with_level(self.logger, "info", AUTH_REJECTED, subject=subject, reason=reason.replace(" ", "_"))
        raise InvalidCredentials()

    @staticmethod
    def _key(*parts: str) -> str:
        return CacheKeyGenerator.logical(*parts)

    # -------------------------------------------------------------------------
    # Document conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _object_id(value: str) -> Optional[ObjectId]:
        """ObjectId for a valid 24-char hex string, otherwise None."""
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        return None

    @staticmethod
    def _prepare_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
        """Convert enums to their stored values for a $set update."""
        processed = {}
        for key, value in updates.items():
            if isinstance(value, Enum):
                processed[key] = value.value
            else:
                processed[key] = value
        return processed

    @classmethod
    def _from_doc(cls, doc: Dict[str, Any]) -> Any:
        raise NotImplementedError("Subclasses must implement _from_doc method")

    @classmethod
    def _to_doc(cls, model: Any) -> Dict[str, Any]:
        raise NotImplementedError("Subclasses must implement _to_doc method")

    def ensure_indexes(self):
        """Create the unique indexes the repository relies on for AlreadyExists."""
        raise NotImplementedError("Subclasses must implement ensure_indexes")
