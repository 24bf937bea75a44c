from datetime import timedelta

import pytest
from pydantic import ValidationError

from backend.config import AppConfig


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "ENVIRONMENT",
        "JWT_SECRET",
        "CACHE_ENABLED",
        "CACHE_PREFIX",
        "STUDENT_CACHE_TTL_MINUTES",
        "USER_CACHE_TTL_MINUTES",
        "HTTP_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_development_defaults(clean_env):
    config = AppConfig.from_env()

    assert config.environment == "development"
    assert config.auth.jwt_secret
    assert config.cache.enabled
    assert config.cache.student_ttl == timedelta(minutes=5)
    assert config.cache.user_ttl == timedelta(minutes=15)
    assert config.request_timeout_seconds == 10.0


def test_secret_required_outside_development(clean_env):
    clean_env.setenv("ENVIRONMENT", "production")

    with pytest.raises(ValidationError):
        AppConfig.from_env()


def test_values_are_parsed_from_strings(clean_env):
    clean_env.setenv("JWT_SECRET", "s3cret")
    clean_env.setenv("CACHE_ENABLED", "false")
    clean_env.setenv("STUDENT_CACHE_TTL_MINUTES", "1")
    clean_env.setenv("HTTP_PORT", "9000")

    config = AppConfig.from_env()

    assert config.cache.enabled is False
    assert config.cache.student_ttl == timedelta(minutes=1)
    assert config.http_port == 9000


@pytest.mark.parametrize("name, value", [("HTTP_PORT", "70000"), ("STUDENT_CACHE_TTL_MINUTES", "0"), ("CACHE_PREFIX", "")])
def test_invalid_values_fail_at_startup(clean_env, name, value):
    clean_env.setenv(name, value)

    with pytest.raises(ValidationError):
        AppConfig.from_env()
