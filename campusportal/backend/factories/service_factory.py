"""
Service Factory for creating repositories and services with their dependencies injected.
"""
from typing import Optional

from pymongo.database import Database

from backend.auth.token_service import TokenService
from backend.config import AppConfig
from backend.database.context import DatabaseContext
from backend.repositories.student_repository import StudentRepository
from backend.repositories.user_repository import UserRepository
from shared.modules.cache.cache_store import CacheStore
from shared.modules.cache.fetch_or_populate import FetchOrPopulate


class ServiceFactory:
    """
    Builds repositories with explicit database and cache handles.

    `build_services` runs once per app so every request shares the same
    repositories, and with them the same in-flight fetch map.
    """

    @staticmethod
    def create_student_repository(
        db: Database, cache: Optional[CacheStore], config: AppConfig, fetcher: Optional[FetchOrPopulate] = None
    ) -> StudentRepository:
        return StudentRepository(db, cache, config.cache.student_ttl, fetcher)

    @staticmethod
    def create_user_repository(
        db: Database, cache: Optional[CacheStore], config: AppConfig, fetcher: Optional[FetchOrPopulate] = None
    ) -> UserRepository:
        return UserRepository(db, cache, config.cache.user_ttl, fetcher)

    @staticmethod
    def create_token_service(config: AppConfig) -> TokenService:
        return TokenService(config.auth.jwt_secret, config.auth.jwt_expires_in)

    @staticmethod
    def build_services(db: Database, cache: Optional[CacheStore], config: AppConfig) -> dict:
        fetcher = FetchOrPopulate(cache) if cache is not None else None
        return {
            "student_repository": ServiceFactory.create_student_repository(db, cache, config, fetcher),
            "user_repository": ServiceFactory.create_user_repository(db, cache, config, fetcher),
            "token_service": ServiceFactory.create_token_service(config),
        }

    # -------------------------------------------------------------------------
    # Request-time accessors
    # -------------------------------------------------------------------------

    @staticmethod
    def student_repository() -> StudentRepository:
        return DatabaseContext.handles()["student_repository"]

    @staticmethod
    def user_repository() -> UserRepository:
        return DatabaseContext.handles()["user_repository"]

    @staticmethod
    def token_service() -> TokenService:
        return DatabaseContext.handles()["token_service"]
