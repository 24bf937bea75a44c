"""
Application configuration read from environment variables.

Every setting has a development default; pydantic validates the values once at
startup so a bad port or TTL fails fast instead of on the first request.
"""
import os
from datetime import timedelta

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class CacheConfig(BaseModel):
    enabled: bool = True
    host: str = "localhost"
    port: int = Field(6379, gt=0, lt=65536)
    password: str = ""
    db: int = Field(0, ge=0)
    prefix: str = Field("campusportal", min_length=1)
    socket_timeout: float = Field(2.0, gt=0)
    student_ttl_minutes: int = Field(5, gt=0)
    user_ttl_minutes: int = Field(15, gt=0)

    @property
    def student_ttl(self) -> timedelta:
        return timedelta(minutes=self.student_ttl_minutes)

    @property
    def user_ttl(self) -> timedelta:
        return timedelta(minutes=self.user_ttl_minutes)


class AuthConfig(BaseModel):
    jwt_secret: str = Field(..., min_length=1)
    jwt_expires_in: int = Field(24 * 60 * 60, gt=0)


class AppConfig(BaseModel):
    environment: str = "development"
    mongo_uri: str = "mongodb://localhost:27017/campusportal"
    request_timeout_seconds: float = Field(10.0, gt=0)
    log_level: str = "INFO"
    http_host: str = "0.0.0.0"
    http_port: int = Field(8000, gt=0, lt=65536)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    auth: AuthConfig

    @classmethod
    def from_env(cls) -> "AppConfig":
        environment = os.environ.get("ENVIRONMENT", "development")
        jwt_secret = os.environ.get("JWT_SECRET", "")
        if not jwt_secret and environment == "development":
            jwt_secret = "development-only-secret"

        return cls(
            environment=environment,
            mongo_uri=os.environ.get("MONGO_URI", "mongodb://localhost:27017/campusportal"),
            request_timeout_seconds=os.environ.get("REQUEST_TIMEOUT_SECONDS", 10.0),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            http_host=os.environ.get("HTTP_HOST", "0.0.0.0"),
            http_port=os.environ.get("HTTP_PORT", 8000),
            cache=CacheConfig(
                enabled=_env_bool("CACHE_ENABLED", True),
                host=os.environ.get("CACHE_HOST", "localhost"),
                port=os.environ.get("CACHE_PORT", 6379),
                password=os.environ.get("CACHE_PASSWORD", ""),
                db=os.environ.get("CACHE_DB", 0),
                prefix=os.environ.get("CACHE_PREFIX", "campusportal"),
                socket_timeout=os.environ.get("CACHE_SOCKET_TIMEOUT", 2.0),
                student_ttl_minutes=os.environ.get("STUDENT_CACHE_TTL_MINUTES", 5),
                user_ttl_minutes=os.environ.get("USER_CACHE_TTL_MINUTES", 15),
            ),
            auth=AuthConfig(
                jwt_secret=jwt_secret,
                jwt_expires_in=os.environ.get("JWT_EXPIRES_IN", 24 * 60 * 60),
            ),
        )
