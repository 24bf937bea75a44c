import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from shared.modules.errors import PortalError

ALGORITHM = "HS256"


class InvalidToken(PortalError):
    """Missing, malformed, badly signed or expired access token."""


class TokenService:
    """
    Issues and validates HS256 access tokens.

    The subject is the account's natural key, scoped by the `kind` claim so a
    student and a user with the same key never pass for each other. Profile
    fields ride along as extra claims so handlers don't need a lookup for them.
    """

    def __init__(self, secret: str, expires_in: int = 24 * 60 * 60):
        if not secret:
            raise ValueError("JWT secret cannot be empty")
        self.secret = secret
        self.expires_in = expires_in
        self.logger = logging.getLogger(self.__class__.__name__)

    def generate_token(
        self, subject: str, kind: str, email: str, role: str, additional_claims: Optional[Dict[str, Any]] = None
    ) -> str:
        """`kind` names the account collection `subject` belongs to ("student" or "user")."""
        now = datetime.now(timezone.utc)
        claims = dict(additional_claims or {})
        claims.update(
            {
                "sub": subject,
                "kind": kind,
                "email": email,
                "role": role,
                "iat": now,
                "exp": now + timedelta(seconds=self.expires_in),
            }
        )
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def validate_token(self, token: str) -> Dict[str, Any]:
        if not token:
            raise InvalidToken("token string is empty")
        try:
            return jwt.decode(token, self.secret, algorithms=[ALGORITHM], options={"require": ["exp", "sub", "kind"]})
        except jwt.ExpiredSignatureError as e:
            raise InvalidToken("token has expired") from e
        except jwt.InvalidTokenError as e:
            self.logger.info(f"Rejected token: {e}")
            raise InvalidToken("invalid token") from e
