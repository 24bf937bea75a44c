"""
Shared fixtures: in-memory stores, cache stores and repositories wired to them.
"""
import os

import pytest

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")

from backend.repositories.student_repository import StudentRepository
from backend.repositories.user_repository import UserRepository
from shared.modules.cache.cache_store import RedisCacheStore
from shared.modules.student.models.student import Student
from shared.modules.user.models.user import User
from tests.fakes import FakeDatabase, FakeRedis


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def cache_store(redis_client):
    return RedisCacheStore(redis_client, prefix="test")


@pytest.fixture
def mongo_db():
    return FakeDatabase()


@pytest.fixture
def student_repository(mongo_db, cache_store):
    repository = StudentRepository(mongo_db, cache_store)
    repository.ensure_indexes()
    return repository


@pytest.fixture
def uncached_student_repository(mongo_db):
    repository = StudentRepository(mongo_db, None)
    repository.ensure_indexes()
    return repository


@pytest.fixture
def user_repository(mongo_db, cache_store):
    repository = UserRepository(mongo_db, cache_store)
    repository.ensure_indexes()
    return repository


@pytest.fixture
def make_student():
    def _make(student_id="S1", email="a@x.com", **overrides):
        fields = {"first_name": "Ada", "last_name": "Lovelace", "department": "CS"}
        fields.update(overrides)
        return Student(student_id=student_id, email=email, **fields)

    return _make


@pytest.fixture
def make_user():
    def _make(email="grace@x.com", **overrides):
        fields = {"first_name": "Grace", "last_name": "Hopper", "phone": "555-0100"}
        fields.update(overrides)
        return User(email=email, **fields)

    return _make
