from datetime import timedelta
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from backend.repositories.base_nosql_repository import BaseNoSqlRepository
from shared.modules.auth.passwords import (
    burn_password_check,
    check_password,
    hash_password,
    validate_password_strength,
)
from shared.modules.cache.cache_store import CacheStore
from shared.modules.cache.fetch_or_populate import FetchOrPopulate
from shared.modules.cache.results import WriteResult
from shared.modules.clock import utcnow
from shared.modules.deadline import Deadline
from shared.modules.errors import NotFound, ValidationError
from shared.modules.user.models.user import User

USER_CACHE_TTL = timedelta(minutes=15)

UPDATABLE_FIELDS = {
    "first_name",
    "last_name",
    "email",
    "phone",
    "role",
}


class UserRepository(BaseNoSqlRepository):
    """
    Users collection with cache-aside reads keyed by `user:<identifier>`.

    An identifier that parses as an ObjectId is always looked up by `_id`; only
    identifiers that are not valid ObjectIds are treated as `user_id` values.
    """

    collection_name = "users"

    def __init__(
        self,
        db: Database,
        cache: Optional[CacheStore] = None,
        cache_ttl: timedelta = USER_CACHE_TTL,
        fetcher: Optional[FetchOrPopulate] = None,
    ):
        super().__init__(db, cache, cache_ttl, fetcher)

    @classmethod
    def id_key(cls, identifier: str) -> str:
        return cls._key("user", identifier)

    def ensure_indexes(self):
        self.collection.create_index("user_id", unique=True)
        self.collection.create_index("email", unique=True)

    def create_user(self, user: User, password: Optional[str] = None, deadline: Optional[Deadline] = None) -> WriteResult[str]:
        """
        Insert a user, defaulting `user_id` to the hex ObjectId, and best-effort
        cache it under every identifier that resolves to it. Returns the document id.
        """
        if user is None:
            raise ValidationError("nil user provided")

        if password is not None:
            validate_password_strength(password)
            user.password = hash_password(password)

        now = utcnow()
        user.created_at = now
        user.updated_at = now
        if not user.id:
            user.id = str(ObjectId())
        elif self._object_id(user.id) is None:
            raise ValidationError(f"invalid user id: {user.id}")
        if not user.user_id:
            user.user_id = user.id

        with self._document_store(deadline, "create user"):
            self.collection.insert_one(self._to_doc(user))

        cache_error = None
        for identifier in self._lookup_identifiers(user):
            cache_error = self._cache_entity(self.id_key(identifier), user) or cache_error
        self.logger.info(f"Created user {user.user_id}")
        return WriteResult(value=user.id, cache_error=cache_error)

    def get_user_by_id(self, identifier: str, deadline: Optional[Deadline] = None) -> User:
        return self._read_through(
            self.id_key(identifier),
            User,
            lambda: self._fetch_user(identifier, deadline),
            deadline,
        )

    def update_user(self, identifier: str, updates: Dict[str, Any], deadline: Optional[Deadline] = None) -> WriteResult[User]:
        if not updates:
            raise ValidationError("no fields to update")
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"fields cannot be updated: {sorted(unknown)}")

        return self._apply_update(identifier, self._prepare_updates(updates), deadline)

    def reset_password(self, identifier: str, new_password: str, deadline: Optional[Deadline] = None) -> WriteResult[User]:
        """Validate and hash a new password; the hash is the only way a password reaches the store."""
        validate_password_strength(new_password)
        return self._apply_update(identifier, {"password": hash_password(new_password)}, deadline)

    def _apply_update(self, identifier: str, changes: Dict[str, Any], deadline: Optional[Deadline]) -> WriteResult[User]:
        changes["updated_at"] = utcnow()

        with self._document_store(deadline, "update user"):
            before = self.collection.find_one_and_update(
                self._filter(identifier),
                {"$set": changes},
                return_document=ReturnDocument.BEFORE,
            )
        if before is None:
            raise NotFound(f"user not found: {identifier}")

        cache_error = self._invalidate(*self._keys_for(before, identifier))
        return WriteResult(value=self._from_doc({**before, **changes}), cache_error=cache_error)

    def delete_user(self, identifier: str, deadline: Optional[Deadline] = None) -> WriteResult[None]:
        with self._document_store(deadline, "delete user"):
            deleted = self.collection.find_one_and_delete(self._filter(identifier))
        if deleted is None:
            raise NotFound(f"user not found: {identifier}")

        cache_error = self._invalidate(*self._keys_for(deleted, identifier))
        self.logger.info(f"Deleted user {identifier}")
        return WriteResult(value=None, cache_error=cache_error)

    def verify_password(self, identifier: str, plain_password: str, deadline: Optional[Deadline] = None) -> User:
        """Same rules as student credentials: one generic InvalidCredentials for every failure."""
        try:
            user = self.get_user_by_id(identifier, deadline)
        except NotFound:
            burn_password_check(plain_password)
            self._reject_credentials(identifier, "user not found")

        if not user.password:
            burn_password_check(plain_password)
            self._reject_credentials(identifier, "password not set for this account")

        if not check_password(plain_password, user.password):
            self._reject_credentials(identifier, "invalid password")

        return user

    def _filter(self, identifier: str) -> Dict[str, Any]:
        oid = self._object_id(identifier)
        if oid is not None:
            return {"_id": oid}
        return {"user_id": identifier}

    def _lookup_identifiers(self, user: User) -> List[str]:
        """Identifiers that resolve to this user, each one usable as a cache key."""
        identifiers = [user.id]
        if user.user_id != user.id and self._object_id(user.user_id) is None:
            identifiers.append(user.user_id)
        return identifiers

    def _fetch_user(self, identifier: str, deadline: Optional[Deadline]) -> Optional[User]:
        doc = self._find_one(self._filter(identifier), deadline, "find user")
        return self._from_doc(doc) if doc else None

    def _keys_for(self, doc: Dict[str, Any], identifier: str) -> List[str]:
        # the same user can be cached under its hex id, its user_id and whatever identifier was used
        keys = []
        for value in (str(doc["_id"]), doc.get("user_id"), identifier):
            if value and self.id_key(value) not in keys:
                keys.append(self.id_key(value))
        return keys

    @classmethod
    def _from_doc(cls, doc: Dict[str, Any]) -> User:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return User.model_validate(doc)

    @classmethod
    def _to_doc(cls, user: User) -> Dict[str, Any]:
        doc = user.model_dump(exclude={"id"})
        doc["_id"] = ObjectId(user.id)
        return doc
