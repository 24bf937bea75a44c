import time

import jwt
import pytest

from backend.auth.token_service import InvalidToken, TokenService

SECRET = "test-secret-key-for-testing-only"


@pytest.fixture
def token_service():
    return TokenService(SECRET, expires_in=3600)


def test_round_trip_carries_claims(token_service):
    token = token_service.generate_token("S1", "student", "a@x.com", "student", {"name": "Ada Lovelace"})

    claims = token_service.validate_token(token)

    assert claims["sub"] == "S1"
    assert claims["kind"] == "student"
    assert claims["email"] == "a@x.com"
    assert claims["role"] == "student"
    assert claims["name"] == "Ada Lovelace"
    assert claims["exp"] - claims["iat"] == 3600


def test_standard_claims_cannot_be_overridden(token_service):
    overrides = {"sub": "admin", "kind": "user", "role": "TEACHER"}
    token = token_service.generate_token("S1", "student", "a@x.com", "student", overrides)

    claims = token_service.validate_token(token)

    assert claims["sub"] == "S1"
    assert claims["kind"] == "student"
    assert claims["role"] == "student"


def test_expired_token(token_service):
    expired = jwt.encode({"sub": "S1", "kind": "student", "exp": int(time.time()) - 10}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidToken, match="expired"):
        token_service.validate_token(expired)


def test_wrong_secret(token_service):
    forged = TokenService("another-secret", 3600).generate_token("S1", "student", "a@x.com", "TEACHER")

    with pytest.raises(InvalidToken):
        token_service.validate_token(forged)


def test_token_without_subject(token_service):
    token = jwt.encode({"exp": int(time.time()) + 60}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidToken):
        token_service.validate_token(token)


@pytest.mark.parametrize("token", ["", "not-a-jwt"])
def test_garbage_tokens(token_service, token):
    with pytest.raises(InvalidToken):
        token_service.validate_token(token)


def test_empty_secret_is_rejected():
    with pytest.raises(ValueError):
        TokenService("")


def test_token_without_kind(token_service):
    # a subject without its account kind could match a student and a user alike
    token = jwt.encode({"sub": "S1", "exp": int(time.time()) + 60}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidToken):
        token_service.validate_token(token)
