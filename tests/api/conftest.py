import pytest

from backend.app import create_app
from backend.config import AppConfig, AuthConfig
from backend.database.context import EXTENSION_KEY
from shared.modules.cache.cache_store import RedisCacheStore

SECRET = "test-secret-key-for-testing-only"


@pytest.fixture
def app(mongo_db, redis_client):
    config = AppConfig(environment="test", auth=AuthConfig(jwt_secret=SECRET))
    app = create_app(config, mongo_db=mongo_db, cache_store=RedisCacheStore(redis_client, "test"))
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture
def auth_header(services):
    def _header(subject, role="student", email="a@x.com", kind=None):
        kind = kind or ("student" if role == "student" else "user")
        token = services["token_service"].generate_token(subject, kind, email, role)
        return {"Authorization": f"Bearer {token}"}

    return _header
