from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from flask import Flask, g, has_request_context, request, session

from apothecary.config import Config

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}
_CONTEXT_ATTRS = ("request_id", "endpoint", "method", "user_id", "user_role")

# Longest client-supplied request id echoed back
_MAX_REQUEST_ID_LENGTH = 64

_TEXT_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

# Chatty third-party loggers kept at WARNING unless SQL echo is on
_QUIET_LOGGERS = ("sqlalchemy.engine", "werkzeug")


def _current_role() -> Optional[str]:
    user = getattr(g, "current_user", None)
    role = getattr(user, "role", None)
    return getattr(role, "value", role)


class RequestContextFilter(logging.Filter):
    """Stamp each record with the request id, route and the signed-in account."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if has_request_context():
            record.request_id = getattr(g, "request_id", None) or "-"
            record.endpoint = request.endpoint or request.path
            record.method = request.method
            record.user_id = session.get("user_id")
            record.user_role = _current_role()
        else:
            record.request_id = "-"
            record.endpoint = None
            record.method = None
            record.user_id = None
            record.user_role = None
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": Config.APP_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in _CONTEXT_ATTRS:
            payload[attr] = getattr(record, attr, None)

        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and key not in _CONTEXT_ATTRS
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(app: Flask) -> None:
    """
    Install one stdout handler on the root logger.

    JSON lines when STRUCTURED_LOGS_ENABLED is set, otherwise a plain text
    format that still carries the request id.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    if Config.STRUCTURED_LOGS_ENABLED:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(Config.LOG_LEVEL)
    # Replace handlers so a reloaded app does not log every line twice
    root_logger.handlers = [handler]
    app.logger.handlers = []
    app.logger.propagate = True

    if not Config.SQL_ECHO:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.debug(
        "Logging configured",
        extra={"structured": Config.STRUCTURED_LOGS_ENABLED, "env": Config.APP_ENV},
    )


def ensure_request_id() -> str:
    """Return the active request id, adopting a sane incoming header or minting a new one."""
    if getattr(g, "request_id", None):
        return g.request_id
    incoming = (request.headers.get(Config.REQUEST_ID_HEADER) or "").strip()
    if not incoming or len(incoming) > _MAX_REQUEST_ID_LENGTH:
        incoming = str(uuid4())
    g.request_id = incoming
    return g.request_id
