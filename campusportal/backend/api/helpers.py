"""
Shared helpers for the API blueprints: request deadlines and error responses.
"""
import logging

from flask import jsonify, request

from backend.database.context import DatabaseContext
from shared.modules.deadline import Deadline
from shared.modules.errors import (
    AlreadyExists,
    InvalidCredentials,
    NotFound,
    OperationCancelled,
    PortalError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = [
    (ValidationError, 400),
    (InvalidCredentials, 401),
    (NotFound, 404),
    (AlreadyExists, 409),
    (OperationCancelled, 499),
    (StoreError, 503),
]


def request_deadline() -> Deadline:
    return Deadline(DatabaseContext.get_config().request_timeout_seconds)


def error_response(error: PortalError):
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            if status >= 500:
                logger.error(f"{request.method} {request.path} failed: {error}")
            return jsonify({"error": str(error)}), status
    logger.exception(f"{request.method} {request.path} failed: {error}")
    return jsonify({"error": str(error)}), 500


def validation_response(error):
    """400 for a pydantic validation failure on the request body."""
    return jsonify({"error": "validation failed", "error_details": error.errors(include_url=False, include_context=False)}), 400
