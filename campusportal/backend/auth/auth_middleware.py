import logging
from functools import wraps
from typing import Any, Dict, Optional

from flask import g, jsonify, request

from backend.auth.token_service import InvalidToken
from backend.factories.service_factory import ServiceFactory

logger = logging.getLogger(__name__)

STAFF_ROLE = "TEACHER"

# token `kind` claims: which collection the subject is a key of
STUDENT_KIND = "student"
USER_KIND = "user"


def _extract_token():
    header = request.headers.get("Authorization") or request.cookies.get("auth_token") or ""
    header = header.strip()
    if header[:7].lower() == "bearer ":
        return header[7:].strip()
    return header


def require_auth(roles=None):
    """
    Reject requests without a valid bearer token (Authorization header or the
    auth_token cookie). Claims end up on `g.claims`. When `roles` is given the
    token's role must be one of them.
    """

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            token = _extract_token()
            if not token:
                return jsonify({"error": "authorization header required", "code": "MISSING_AUTH_HEADER"}), 401
            try:
                claims = ServiceFactory.token_service().validate_token(token)
            except InvalidToken as e:
                logger.info(f"Auth failed for {request.method} {request.path} from {request.remote_addr}: {e}")
                return jsonify({"error": str(e), "code": "INVALID_TOKEN"}), 401

            if roles and (claims.get("role") not in roles or (claims.get("role") == STAFF_ROLE and not is_staff(claims))):
                return jsonify({"error": "insufficient permissions", "code": "FORBIDDEN"}), 403

            g.claims = claims
            return view(*args, **kwargs)

        return wrapped

    return decorator


def optional_claims() -> Optional[Dict[str, Any]]:
    """Claims of a valid token on a public route, or None for anonymous callers."""
    token = _extract_token()
    if not token:
        return None
    try:
        return ServiceFactory.token_service().validate_token(token)
    except InvalidToken as e:
        logger.info(f"Ignoring invalid token on {request.method} {request.path}: {e}")
        return None


def is_staff(claims: Optional[Dict[str, Any]] = None) -> bool:
    # staff accounts only exist in the users collection
    claims = claims if claims is not None else (g.get("claims") or {})
    return claims.get("role") == STAFF_ROLE and claims.get("kind") == USER_KIND


def is_self_or_staff(subject: str, kind: str) -> bool:
    claims = g.get("claims") or {}
    is_self = claims.get("sub") == subject and claims.get("kind") == kind
    return is_self or is_staff(claims)
