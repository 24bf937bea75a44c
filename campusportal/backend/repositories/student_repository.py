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
from shared.modules.student.models.student import STUDENT_ROLE, Student

STUDENT_CACHE_TTL = timedelta(minutes=5)

UPDATABLE_FIELDS = {
    "first_name",
    "last_name",
    "department",
    "email",
    "is_active",
    "password_hash",
    "last_login",
}


class StudentRepository(BaseNoSqlRepository):
    """
    Students collection with cache-aside reads.

    Cache keys are `student:<student_id>` and `student:email:<email>`. Writes go
    to MongoDB first and then delete (never rewrite) every key that may hold
    the old document.
    """

    collection_name = "students"

    def __init__(
        self,
        db: Database,
        cache: Optional[CacheStore] = None,
        cache_ttl: timedelta = STUDENT_CACHE_TTL,
        fetcher: Optional[FetchOrPopulate] = None,
    ):
        super().__init__(db, cache, cache_ttl, fetcher)

    @classmethod
    def id_key(cls, student_id: str) -> str:
        return cls._key("student", student_id)

    @classmethod
    def email_key(cls, email: str) -> str:
        return cls._key("student", "email", email)

    def ensure_indexes(self):
        self.collection.create_index("student_id", unique=True)
        self.collection.create_index("email", unique=True)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_student(self, student: Student, password: str, deadline: Optional[Deadline] = None) -> WriteResult[str]:
        """
        Validate the password, persist the student and best-effort cache it.

        Server-side fields (id, role, timestamps, password hash, exam lists) are
        filled in on `student`. Returns the new document id.
        """
        if student is None:
            raise ValidationError("nil student is provided")

        validate_password_strength(password)

        now = utcnow()
        student.id = str(ObjectId())
        student.role = STUDENT_ROLE
        student.created_at = now
        student.updated_at = now
        student.is_active = True
        student.password_hash = hash_password(password)
        student.required_exams = []
        student.completed_exams = []

        with self._document_store(deadline, "create student"):
            self.collection.insert_one(self._to_doc(student))

        cache_error = self._cache_entity(self.id_key(student.student_id), student)
        self.logger.info(f"Created student {student.student_id} ({student.id})")
        return WriteResult(value=student.id, cache_error=cache_error)

    def update_student(
        self, student_id: str, updates: Dict[str, Any], deadline: Optional[Deadline] = None
    ) -> WriteResult[Student]:
        """
        Partial $set update, then invalidate the cached copies.
        Raises NotFound when no student has this student_id.
        """
        if not updates:
            raise ValidationError("no fields to update")
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"fields cannot be updated: {sorted(unknown)}")

        changes = self._prepare_updates(updates)
        changes["updated_at"] = utcnow()

        with self._document_store(deadline, "update student"):
            before = self.collection.find_one_and_update(
                {"student_id": student_id},
                {"$set": changes},
                return_document=ReturnDocument.BEFORE,
            )
        if before is None:
            raise NotFound(f"student not found: {student_id}")

        after = {**before, **changes}
        cache_error = self._invalidate(*self._keys_for(before, after))
        return WriteResult(value=self._from_doc(after), cache_error=cache_error)

    def delete_student(self, student_id: str, deadline: Optional[Deadline] = None) -> WriteResult[None]:
        with self._document_store(deadline, "delete student"):
            deleted = self.collection.find_one_and_delete({"student_id": student_id})
        if deleted is None:
            raise NotFound(f"student not found: {student_id}")

        cache_error = self._invalidate(*self._keys_for(deleted))
        self.logger.info(f"Deleted student {student_id}")
        return WriteResult(value=None, cache_error=cache_error)

    def reset_password(self, student_id: str, new_password: str, deadline: Optional[Deadline] = None) -> WriteResult[Student]:
        validate_password_strength(new_password)
        return self.update_student(student_id, {"password_hash": hash_password(new_password)}, deadline)

    def record_login(self, student_id: str, deadline: Optional[Deadline] = None) -> WriteResult[Student]:
        return self.update_student(student_id, {"last_login": utcnow()}, deadline)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_student_by_id(self, student_id: str, deadline: Optional[Deadline] = None) -> Student:
        return self._read_through(
            self.id_key(student_id),
            Student,
            lambda: self._fetch_student("student_id", student_id, deadline),
            deadline,
        )

    def get_student_by_email(self, email: str, deadline: Optional[Deadline] = None) -> Student:
        return self._read_through(
            self.email_key(email),
            Student,
            lambda: self._fetch_student("email", email, deadline),
            deadline,
        )

    def get_student_from_db(self, student_id: str, deadline: Optional[Deadline] = None) -> Student:
        """Read straight from MongoDB, bypassing the cache."""
        student = self._fetch_student("student_id", student_id, deadline)
        if student is None:
            raise NotFound(f"student not found: {student_id}")
        return student

    def verify_password(self, student_id: str, plain_password: str, deadline: Optional[Deadline] = None) -> Student:
        """
        Check credentials for a student.

        Unknown student, deactivated account, missing hash and wrong password all
        raise the same InvalidCredentials; the reason only goes to the log. An
        inactive account is distinguishable to callers through `is_active` alone.
        """
        try:
            student = self.get_student_by_id(student_id, deadline)
        except NotFound:
            burn_password_check(plain_password)
            self._reject_credentials(student_id, "student not found")

        if not student.is_active:
            burn_password_check(plain_password)
            self._reject_credentials(student_id, "account is deactivated")

        if not student.password_hash:
            burn_password_check(plain_password)
            self._reject_credentials(student_id, "password not set for this account")

        if not check_password(plain_password, student.password_hash):
            self._reject_credentials(student_id, "invalid password")

        return student

    def _fetch_student(self, field: str, value: str, deadline: Optional[Deadline]) -> Optional[Student]:
        doc = self._find_one({field: value}, deadline, f"find student by {field}")
        return self._from_doc(doc) if doc else None

    def _keys_for(self, *docs: Dict[str, Any]) -> List[str]:
        keys = []
        for doc in docs:
            for key in (self.id_key(doc["student_id"]), self.email_key(doc["email"])):
                if key not in keys:
                    keys.append(key)
        return keys

    # -------------------------------------------------------------------------
    # Document conversion
    # -------------------------------------------------------------------------

    @classmethod
    def _from_doc(cls, doc: Dict[str, Any]) -> Student:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        doc["required_exams"] = [str(exam_id) for exam_id in doc.get("required_exams") or []]
        doc["completed_exams"] = [
            {**exam, "exam_id": str(exam["exam_id"])} for exam in doc.get("completed_exams") or []
        ]
        return Student.model_validate(doc)

    @classmethod
    def _to_doc(cls, student: Student) -> Dict[str, Any]:
        doc = student.model_dump(exclude={"id"})
        doc["_id"] = ObjectId(student.id)
        doc["required_exams"] = [cls._require_object_id(exam_id) for exam_id in student.required_exams]
        for exam in doc["completed_exams"]:
            exam["exam_id"] = cls._require_object_id(exam["exam_id"])
        return doc

    @classmethod
    def _require_object_id(cls, value: str) -> ObjectId:
        oid = cls._object_id(value)
        if oid is None:
            raise ValidationError(f"invalid exam reference: {value}")
        return oid
