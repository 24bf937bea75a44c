import atexit
import logging

from flask import Flask
from flask_pymongo import PyMongo
from pymongo.errors import PyMongoError

from backend.api.health_controller import bp as health_controller_bp
from backend.api.metrics_controller import bp as metrics_controller_bp
from backend.api.metrics_controller import init_request_metrics
from backend.api.student_controller import bp as student_controller_bp
from backend.api.user_controller import bp as user_controller_bp
from backend.config import AppConfig
from backend.database.context import EXTENSION_KEY
from backend.factories.service_factory import ServiceFactory
from shared.modules.cache.redis_client import init_cache_store, reset_cache_store
from shared.modules.errors import CacheInitializationError
from shared.modules.log.error_logger import (
    CACHE_FAILED_TO_INIT,
    MONGO_FAILED_TO_CREATE_INDEX,
    configure_logging,
    log_error_with_level,
)

logger = logging.getLogger(__name__)

mongo = PyMongo()

# sentinel so tests can pass cache_store=None to run without a cache
_INIT_FROM_CONFIG = object()


def init_cache(config: AppConfig):
    """
    Connect to the cache server, or return None so the app runs against MongoDB alone.
    """
    if not config.cache.enabled:
        logger.info("Cache disabled by configuration")
        return None
    try:
        cache_store = init_cache_store(
            config.cache.prefix,
            host=config.cache.host,
            port=config.cache.port,
            password=config.cache.password or None,
            db=config.cache.db,
            socket_timeout=config.cache.socket_timeout,
        )
    except CacheInitializationError as e:
        log_error_with_level(logger, "error", CACHE_FAILED_TO_INIT, e)
        logger.warning("Running without cache: every read goes to MongoDB")
        return None
    atexit.register(reset_cache_store)
    return cache_store


def create_app(config: AppConfig = None, mongo_db=None, cache_store=_INIT_FROM_CONFIG) -> Flask:
    """
    Build the Flask app with its MongoDB, cache and repository handles.

    `mongo_db` and `cache_store` are normally created from `config`; passing them
    in lets tests run the app against test doubles.
    """
    config = config or AppConfig.from_env()
    configure_logging(config.log_level)

    app = Flask(__name__)

    if mongo_db is None:
        app.config["MONGO_URI"] = config.mongo_uri
        mongo.init_app(app, tz_aware=True)
        mongo_db = mongo.db

    if cache_store is _INIT_FROM_CONFIG:
        cache_store = init_cache(config)

    services = ServiceFactory.build_services(mongo_db, cache_store, config)
    for repository in (services["student_repository"], services["user_repository"]):
        try:
            repository.ensure_indexes()
        except PyMongoError as e:
            log_error_with_level(logger, "error", MONGO_FAILED_TO_CREATE_INDEX, e, collection=repository.collection_name)

    app.extensions[EXTENSION_KEY] = {
        "config": config,
        "db": mongo_db,
        "cache": cache_store,
        **services,
    }

    app.register_blueprint(health_controller_bp)
    app.register_blueprint(student_controller_bp)
    app.register_blueprint(user_controller_bp)
    app.register_blueprint(metrics_controller_bp)
    init_request_metrics(app)

    logger.info(f"App ready (environment={config.environment}, cache={'on' if cache_store else 'off'})")
    return app


if __name__ == "__main__":
    app_config = AppConfig.from_env()
    create_app(app_config).run(host=app_config.http_host, port=app_config.http_port, debug=False, threaded=True)
