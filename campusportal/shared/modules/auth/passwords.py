"""
Password strength rules and hashing.

Hashes are produced and checked with werkzeug.security, which compares digests
in constant time.
"""
from functools import lru_cache

from werkzeug.security import check_password_hash, generate_password_hash

from shared.modules.errors import ValidationError

MIN_PASSWORD_LENGTH = 8


def validate_password_strength(password: str) -> None:
    """Raise ValidationError unless the password has 8+ chars, a digit and an uppercase letter."""
    if not password:
        raise ValidationError("password is required")

    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters long")

    has_digit = any(char.isdigit() for char in password)
    has_upper = any(char.isupper() for char in password)
    if not has_digit or not has_upper:
        raise ValidationError("password must contain at least one number and one uppercase letter")


def hash_password(password: str) -> str:
    if not password:
        raise ValidationError("password cannot be empty")
    return generate_password_hash(password)


def check_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return generate_password_hash("dummy-password-for-timing")


def burn_password_check(password: str) -> None:
    """Spend the same time as a real check when there is no account to check against."""
    check_password_hash(_dummy_hash(), password or "")
