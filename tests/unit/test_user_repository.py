"""
Unit tests for UserRepository: identifier resolution, caching and credentials.
"""
import pytest
from bson import ObjectId

from shared.modules.errors import (
    AlreadyExists,
    InvalidCredentials,
    NotFound,
    ValidationError,
)
from shared.modules.user.enums.user_role_enum import UserRole

PASSWORD = "Secret123"


@pytest.fixture
def created(user_repository, make_user):
    user = make_user()
    user_repository.create_user(user, PASSWORD)
    return user


class TestCreateUser:
    def test_user_id_defaults_to_object_id(self, user_repository, make_user, redis_client):
        user = make_user()

        result = user_repository.create_user(user)

        assert result.cache_ok
        assert ObjectId.is_valid(result.value)
        assert user.user_id == user.id == result.value
        assert f"test:user:{user.id}" in redis_client.data
        assert 0 < redis_client.ttl_of(f"test:user:{user.id}") <= 15 * 60

    def test_explicit_user_id_is_kept(self, user_repository, make_user, redis_client):
        user = make_user(user_id="grace")

        user_repository.create_user(user)

        assert user.user_id == "grace"
        assert "test:user:grace" in redis_client.data

    def test_password_is_hashed(self, user_repository, created, mongo_db):
        stored = mongo_db["users"].docs[0]

        assert stored["password"] and stored["password"] != PASSWORD

    def test_weak_password_is_rejected(self, user_repository, make_user, mongo_db):
        with pytest.raises(ValidationError):
            user_repository.create_user(make_user(), "short")

        assert mongo_db["users"].docs == []

    def test_invalid_id_is_rejected(self, user_repository, make_user):
        with pytest.raises(ValidationError):
            user_repository.create_user(make_user(id="not-an-object-id"))

    def test_duplicate_email_is_rejected(self, user_repository, created, make_user):
        with pytest.raises(AlreadyExists):
            user_repository.create_user(make_user())


class TestReadUser:
    def test_lookup_by_object_id(self, user_repository, created):
        assert user_repository.get_user_by_id(created.id).email == "grace@x.com"

    def test_lookup_by_user_id(self, user_repository, make_user):
        user_repository.create_user(make_user(user_id="grace"))

        assert user_repository.get_user_by_id("grace").email == "grace@x.com"

    def test_object_id_shaped_identifier_never_falls_back_to_user_id(self, user_repository, make_user):
        # a user_id that happens to look like an ObjectId is only reachable through _id
        lookalike = str(ObjectId())
        user_repository.create_user(make_user(user_id=lookalike))

        with pytest.raises(NotFound):
            user_repository.get_user_by_id(lookalike)

    def test_second_read_comes_from_cache(self, user_repository, created, mongo_db, redis_client):
        redis_client.data.clear()
        collection = mongo_db["users"]
        collection.calls.clear()

        first = user_repository.get_user_by_id(created.id)
        second = user_repository.get_user_by_id(created.id)

        assert collection.calls == ["find_one"]
        assert first.model_dump() == second.model_dump() == created.model_dump()

    def test_unknown_user(self, user_repository):
        with pytest.raises(NotFound):
            user_repository.get_user_by_id("nobody")


class TestUpdateUser:
    def test_update_invalidates_every_key_for_the_user(self, user_repository, make_user, redis_client):
        user = make_user(user_id="grace")
        user_repository.create_user(user)
        user_repository.get_user_by_id(user.id)
        assert {"test:user:grace", f"test:user:{user.id}"} <= set(redis_client.data)

        result = user_repository.update_user("grace", {"phone": "555-0199", "role": UserRole.TEACHER})

        assert result.cache_ok
        assert result.value.phone == "555-0199"
        assert result.value.role == "TEACHER"
        assert redis_client.data == {}
        assert user_repository.get_user_by_id(user.id).role == "TEACHER"

    def test_unknown_field_is_rejected(self, user_repository, created):
        with pytest.raises(ValidationError):
            user_repository.update_user(created.id, {"created_at": "now"})

    def test_update_unknown_user(self, user_repository):
        with pytest.raises(NotFound):
            user_repository.update_user("nobody", {"phone": "1"})


class TestDeleteUser:
    def test_delete_then_read_is_not_found(self, user_repository, created, redis_client):
        user_repository.delete_user(created.id)

        assert redis_client.data == {}
        with pytest.raises(NotFound):
            user_repository.get_user_by_id(created.id)

    def test_delete_unknown_user(self, user_repository):
        with pytest.raises(NotFound):
            user_repository.delete_user("nobody")


class TestCredentials:
    def test_correct_password(self, user_repository, created):
        assert user_repository.verify_password(created.id, PASSWORD).email == "grace@x.com"

    def test_wrong_password(self, user_repository, created):
        with pytest.raises(InvalidCredentials):
            user_repository.verify_password(created.id, "Wrong1234")

    def test_unknown_user(self, user_repository):
        with pytest.raises(InvalidCredentials):
            user_repository.verify_password("nobody", PASSWORD)

    def test_account_without_password(self, user_repository, make_user):
        user = make_user()
        user_repository.create_user(user)

        with pytest.raises(InvalidCredentials):
            user_repository.verify_password(user.id, PASSWORD)


class TestResetPassword:
    @pytest.mark.parametrize("field", ["password", "token", "access_token"])
    def test_secrets_cannot_be_written_through_update(self, user_repository, created, mongo_db, field):
        with pytest.raises(ValidationError):
            user_repository.update_user(created.id, {field: "Newpass99"})

        assert mongo_db["users"].docs[0].get(field) != "Newpass99"

    def test_reset_stores_a_hash(self, user_repository, created, mongo_db, redis_client):
        user_repository.get_user_by_id(created.id)

        result = user_repository.reset_password(created.id, "Newpass99")

        stored = mongo_db["users"].docs[0]["password"]
        assert stored and stored != "Newpass99"
        assert result.cache_ok
        assert redis_client.data == {}
        assert user_repository.verify_password(created.id, "Newpass99").email == "grace@x.com"
        with pytest.raises(InvalidCredentials):
            user_repository.verify_password(created.id, PASSWORD)

    def test_reset_enforces_strength(self, user_repository, created):
        with pytest.raises(ValidationError):
            user_repository.reset_password(created.id, "weak")

    def test_reset_unknown_user(self, user_repository):
        with pytest.raises(NotFound):
            user_repository.reset_password("nobody", "Newpass99")
