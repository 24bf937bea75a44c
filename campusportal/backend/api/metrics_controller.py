import time

from flask import Blueprint, Flask, Response, g, request
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from shared.modules.metrics import HTTP_REQUEST_DURATION_SECONDS, HTTP_REQUESTS_TOTAL

bp = Blueprint("metrics_controller", __name__)


@bp.route("/metrics", methods=["GET"])
def metrics():
    return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)


def _endpoint() -> str:
    # the route template keeps label cardinality bounded
    return request.url_rule.rule if request.url_rule is not None else "unmatched"


def init_request_metrics(app: Flask):
    """Count and time every request by method, route template and status."""

    @app.before_request
    def start_timer():
        g.request_started_at = time.perf_counter()

    @app.after_request
    def record_request(response):
        started_at = g.pop("request_started_at", None)
        endpoint = _endpoint()
        if started_at is not None:
            HTTP_REQUEST_DURATION_SECONDS.labels(method=request.method, endpoint=endpoint).observe(
                time.perf_counter() - started_at
            )
        HTTP_REQUESTS_TOTAL.labels(method=request.method, endpoint=endpoint, status_code=str(response.status_code)).inc()
        return response
