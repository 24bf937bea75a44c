"""
Shared logging utilities.

Error codes are grouped by the store they come from so log lines can be
filtered by type (DATABASE_ERROR, CACHE_ERROR, ...) and then by code.
"""
import logging
import os
from dataclasses import dataclass

DATABASE_ERROR = "DATABASE_ERROR"
CACHE_ERROR = "CACHE_ERROR"
AUTH_ERROR = "AUTH_ERROR"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class ErrorCode:
    type: str
    code: str
    msg: str


# mongo
MONGO_FAILED_TO_CONNECT = ErrorCode(DATABASE_ERROR, "MONGODB_CONNECTION_ERROR", "failed to connect to mongodb")
MONGO_FAILED_TO_CREATE_INDEX = ErrorCode(DATABASE_ERROR, "MONGODB_INDEX_ERROR", "failed to create index")

# cache
CACHE_FAILED_TO_INIT = ErrorCode(CACHE_ERROR, "CACHE_CONNECTION_ERROR", "failed to init cache")
CACHE_FAILED_TO_READ = ErrorCode(CACHE_ERROR, "CACHE_READ_ERROR", "failed to read from cache")
CACHE_FAILED_TO_WRITE = ErrorCode(CACHE_ERROR, "CACHE_WRITE_ERROR", "failed to write to cache")
CACHE_FAILED_TO_DELETE = ErrorCode(CACHE_ERROR, "CACHE_DELETE_ERROR", "failed to delete cache key")

# auth
AUTH_REJECTED = ErrorCode(AUTH_ERROR, "AUTH_REJECTED", "credential verification rejected")
JWT_FAILED_TO_GENERATE = ErrorCode(AUTH_ERROR, "JWT_GEN_FAILED_ERROR", "failed to generate JWT token")


def configure_logging(level=None):
    """Configure the root logger once at process start."""
    level = level or os.environ.get("LOG_LEVEL", "INFO")
    logging.basicConfig(level=level, format=LOG_FORMAT)


def log_error_with_level(logger: logging.Logger, level: str, error_code: ErrorCode, err=None, **fields):
    """
    Log an error with its catalog code and any extra context fields.

    Args:
        logger: Logger to write to
        level: "debug", "info", "warning", "error" or "critical"
        error_code: Entry from the catalog above
        err: Optional exception that caused the error
        **fields: Extra key/value context appended to the line
    """
    extra = " ".join(f"{key}={value}" for key, value in fields.items())
    message = f"{error_code.type} error_code={error_code.code} error_msg=\"{error_code.msg}\""
    if err is not None:
        message += f" error=\"{err}\""
    if extra:
        message += f" {extra}"
    logger.log(logging.getLevelName(level.upper()), message)
