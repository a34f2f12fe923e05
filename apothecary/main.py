# apothecary/main.py
import logging
import time

from flask import Flask, g, jsonify, request, session
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from apothecary.blueprints import ALL_BLUEPRINTS
from apothecary.config import Config
from apothecary.database import close_db, get_db, init_database
from apothecary.errors import ServiceError
from apothecary.models import User
from apothecary.observability import (
    check_database_health,
    configure_logging,
    increment_counter,
    observe_latency,
)
from apothecary.observability.logging_config import ensure_request_id
from apothecary.schemas import first_error_message

app = Flask(__name__)
Config.configure_app(app)
configure_logging(app)
for blueprint in ALL_BLUEPRINTS:
    app.register_blueprint(blueprint)

logger = logging.getLogger(__name__)

try:
    init_database()
    logger.info("Database tables initialized successfully")
except SQLAlchemyError as e:
    logger.exception("Error initializing database: %s", e)


def _endpoint_label() -> str:
    return request.endpoint or request.path


@app.before_request
def before_request_logging():
    g.current_user = None
    if 'user_id' in session:
        db = get_db()
        g.current_user = db.query(User).filter_by(userID=session['user_id']).first()
    g.request_started_at = time.perf_counter()
    g.request_id = ensure_request_id()
    increment_counter(
        "http_requests_total",
        labels={"method": request.method, "endpoint": _endpoint_label()},
    )


@app.after_request
def after_request_logging(response):
    started = getattr(g, 'request_started_at', None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000
        observe_latency(
            "http_request_latency_ms",
            duration_ms,
            labels={
                "method": request.method,
                "endpoint": _endpoint_label(),
                "status": str(response.status_code),
            },
        )
    if response.status_code >= 500:
        increment_counter(
            "http_errors_total",
            labels={
                "method": request.method,
                "endpoint": _endpoint_label(),
                "status": str(response.status_code),
            },
        )
        logger.error("Request finished with error status %s", response.status_code)
    else:
        logger.info("Request finished", extra={"status_code": response.status_code})
    response.headers[Config.REQUEST_ID_HEADER] = getattr(g, "request_id", "")
    return response


@app.teardown_appcontext
def teardown_db(exception):
    close_db(exception)


@app.errorhandler(ServiceError)
def handle_service_error(error: ServiceError):
    get_db().rollback()
    logger.warning(
        "Request rejected: %s",
        error.message,
        extra={"status_code": error.status_code, "error_type": type(error).__name__},
    )
    return jsonify(error.to_dict()), error.status_code


@app.errorhandler(ValidationError)
def handle_validation_error(error: ValidationError):
    logger.info("Invalid request payload", extra={"error_count": error.error_count()})
    return jsonify({"error": first_error_message(error)}), 400


@app.errorhandler(Exception)
def handle_unexpected_error(error: Exception):
    # Let werkzeug HTTP errors (404, 405...) keep their own responses
    if hasattr(error, "code") and hasattr(error, "get_response"):
        return error
    logger.exception("Unhandled error while processing request")
    if request.path.startswith("/api/"):
        return jsonify({"error": "Internal server error"}), 500
    return "Internal server error", 500


@app.route('/health', methods=['GET'])
def health():
    db_status = check_database_health()
    overall = "UP" if db_status.get("status") == "UP" else "DEGRADED"
    status_code = 200 if overall == "UP" else 503
    return jsonify({
        "status": overall,
        "components": {
            "database": db_status
        }
    }), status_code
