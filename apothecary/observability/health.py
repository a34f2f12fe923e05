from __future__ import annotations

import logging
from typing import Dict

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from apothecary.database import engine

logger = logging.getLogger(__name__)


def check_database_health() -> Dict[str, str]:
    """Run ``SELECT 1`` against the configured engine."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return {"status": "UP", "database": engine.dialect.name}
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed", extra={"error": str(exc)})
        return {"status": "DOWN", "database": engine.dialect.name, "detail": str(exc)}
