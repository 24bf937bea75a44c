import logging

from flask import Blueprint, jsonify
from pymongo.errors import PyMongoError

from backend.database.context import DatabaseContext
from shared.modules.log.error_logger import MONGO_FAILED_TO_CONNECT, log_error_with_level

bp = Blueprint("health_controller", __name__, url_prefix="/api/v1")
logger = logging.getLogger(__name__)


@bp.route("/ping", methods=["GET"])
def ping():
    return jsonify({"msg": "pong"}), 200


@bp.route("/health", methods=["GET"])
def health():
    """
    Liveness of both stores. Only MongoDB being down makes the service unhealthy;
    the cache is optional.
    """
    try:
        DatabaseContext.get_mongo_db().command("ping")
        mongo_status = "healthy"
    except PyMongoError as e:
        log_error_with_level(logger, "error", MONGO_FAILED_TO_CONNECT, e)
        mongo_status = "unhealthy"

    cache = DatabaseContext.get_cache_store()
    if cache is None:
        cache_status = "disabled"
    else:
        cache_status = "healthy" if cache.health_check() else "unhealthy"

    status_code = 200 if mongo_status == "healthy" else 503
    return jsonify({"mongodb": mongo_status, "cache": cache_status}), status_code
