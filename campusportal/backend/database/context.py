"""
Application context accessors for the shared handles.

The handles are created once in create_app and kept on the Flask app, so they
are reachable from request handlers and from any thread that pushes an
application context.
"""
from typing import Any, Dict, Optional

from flask import current_app
from pymongo.database import Database

from shared.modules.cache.cache_store import CacheStore

EXTENSION_KEY = "campusportal"


class DatabaseContext:
    """Flask context accessors for the database, cache and repository handles."""

    @staticmethod
    def handles() -> Dict[str, Any]:
        return current_app.extensions[EXTENSION_KEY]

    @staticmethod
    def get_mongo_db() -> Database:
        return DatabaseContext.handles()["db"]

    @staticmethod
    def get_cache_store() -> Optional[CacheStore]:
        """The cache store, or None when the cache is disabled or failed to start."""
        return DatabaseContext.handles()["cache"]

    @staticmethod
    def get_config():
        return DatabaseContext.handles()["config"]
