"""
Unit tests for the namespaced Redis cache store.
"""
import json
from datetime import timedelta
from typing import Dict

import fakeredis
import pytest

from shared.modules.cache.cache_key_generator import CacheKeyGenerator
from shared.modules.cache.cache_store import RedisCacheStore
from shared.modules.errors import DeserializationError, NotFound, SerializationError, StoreError
from shared.modules.student.models.student import Student
from tests.fakes import FakeRedis


class TestCacheKeyGenerator:
    def test_build_prefixes_key(self):
        assert CacheKeyGenerator("app").build("student:S1") == "app:student:S1"

    def test_empty_prefix_rejected(self):
        with pytest.raises(ValueError):
            CacheKeyGenerator("")

    def test_pattern_escapes_glob_characters(self):
        assert CacheKeyGenerator("app").pattern() == "app:*"
        assert CacheKeyGenerator("a*b?[c]").pattern() == "a\\*b\\?\\[c\\]:*"

    def test_logical_joins_parts(self):
        assert CacheKeyGenerator.logical("student", "email", "a@x.com") == "student:email:a@x.com"


class TestRedisCacheStore:
    def test_set_stores_json_under_namespaced_key(self, cache_store, redis_client):
        cache_store.set("greeting", {"hello": "world"}, timedelta(minutes=5))

        assert json.loads(redis_client.data["test:greeting"]) == {"hello": "world"}
        assert 0 < redis_client.ttl_of("test:greeting") <= 300

    def test_get_round_trips_model(self, cache_store, make_student):
        student = make_student(id="64b7f0c2a1b2c3d4e5f60718", password_hash="hash")

        cache_store.set("student:S1", student, 60)

        assert cache_store.get("student:S1", Student).model_dump() == student.model_dump()

    def test_get_into_dict_shape(self, cache_store):
        cache_store.set("counts", {"a": 1}, 60)

        assert cache_store.get("counts", Dict[str, int]) == {"a": 1}

    def test_missing_key_raises_not_found(self, cache_store):
        with pytest.raises(NotFound):
            cache_store.get("nope", dict)

    def test_expired_key_raises_not_found(self, cache_store, redis_client):
        cache_store.set("short", {"a": 1}, 60)
        redis_client.expire_all()

        with pytest.raises(NotFound):
            cache_store.get("short", dict)

    def test_shape_mismatch_raises_deserialization_error(self, cache_store):
        cache_store.set("student:S1", {"unexpected": True}, 60)

        with pytest.raises(DeserializationError):
            cache_store.get("student:S1", Student)

    def test_unencodable_value_raises_serialization_error(self, cache_store, redis_client):
        with pytest.raises(SerializationError):
            cache_store.set("bad", object(), 60)
        assert "set" not in redis_client.calls

    def test_connection_failure_raises_store_error(self, cache_store, redis_client):
        redis_client.down = True

        with pytest.raises(StoreError):
            cache_store.get("anything", dict)
        with pytest.raises(StoreError):
            cache_store.set("anything", {"a": 1}, 60)
        with pytest.raises(StoreError):
            cache_store.invalidate("anything")

    def test_invalidate_is_idempotent(self, cache_store):
        cache_store.set("a", 1, 60)
        cache_store.set("b", 2, 60)

        assert cache_store.invalidate("a", "b", "missing") == 2
        assert cache_store.invalidate("a", "b") == 0
        assert cache_store.delete("a") == 0

    def test_invalidate_without_keys_is_a_no_op(self, cache_store, redis_client):
        assert cache_store.invalidate() == 0
        assert "delete" not in redis_client.calls

    def test_zero_ttl_stores_without_expiry(self, cache_store, redis_client):
        cache_store.set("forever", 1, 0)

        assert redis_client.ttl_of("test:forever") is None

    def test_flush_only_touches_own_namespace(self, redis_client):
        ours = RedisCacheStore(redis_client, prefix="tenant-a")
        theirs = RedisCacheStore(redis_client, prefix="tenant-b")
        for index in range(3):
            ours.set(f"student:{index}", {"i": index}, 60)
            theirs.set(f"student:{index}", {"i": index}, 60)
        redis_client.set("tenant-abc:student:0", "{}")

        assert ours.flush() == 3

        assert not [name for name in redis_client.data if name.startswith("tenant-a:")]
        assert theirs.get("student:1", dict) == {"i": 1}
        assert "tenant-abc:student:0" in redis_client.data

    def test_flush_failure_raises_store_error(self, cache_store, redis_client):
        redis_client.down = True

        with pytest.raises(StoreError):
            cache_store.flush()

    def test_health_check(self, cache_store, redis_client):
        assert cache_store.health_check() is True

        redis_client.down = True

        assert cache_store.health_check() is False

    def test_same_physical_store_different_prefixes_do_not_collide(self):
        client = FakeRedis()
        one = RedisCacheStore(client, prefix="one")
        two = RedisCacheStore(client, prefix="two")

        one.set("key", {"owner": "one"}, 60)
        two.set("key", {"owner": "two"}, 60)

        assert one.get("key", dict) == {"owner": "one"}
        assert two.get("key", dict) == {"owner": "two"}


class TestFlushScript:
    """The namespace flush executed as real Lua by an in-process Redis server."""

    @pytest.fixture
    def lua_redis(self):
        return fakeredis.FakeRedis(decode_responses=True)

    def test_flush_walks_every_scan_page(self, lua_redis):
        store = RedisCacheStore(lua_redis, prefix="a")
        # more keys than one SCAN ... COUNT 500 page
        for index in range(1200):
            lua_redis.set(f"a:student:{index}", "{}")
        lua_redis.set("b:k", "{}")
        lua_redis.set("ab:k", "{}")

        assert store.flush() == 1200

        assert lua_redis.keys("a:*") == []
        assert sorted(lua_redis.keys("*")) == ["ab:k", "b:k"]

    def test_flush_treats_glob_characters_in_the_prefix_literally(self, lua_redis):
        store = RedisCacheStore(lua_redis, prefix="t*")
        store.set("student:S1", {"a": 1}, 60)
        lua_redis.set("tx:student:S1", "{}")

        assert store.flush() == 1

        assert lua_redis.keys("*") == ["tx:student:S1"]

    def test_flush_of_empty_namespace(self, lua_redis):
        assert RedisCacheStore(lua_redis, prefix="a").flush() == 0
