"""Centralized application configuration for all environments."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Final

from dotenv import load_dotenv

BASE_DIR: Final[Path] = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

# Runtime env takes priority over file values
load_dotenv(dotenv_path=ENV_PATH, override=False)


def _str_to_bool(value: str | bool | None, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _determine_database_url() -> str:
    """
    Return a connection string using the following precedence:
    1. Explicit DATABASE_URL
    2. Individual DB_* components (for PostgreSQL)
    3. Local SQLite fallback (for onboarding / tests)
    """
    explicit_url = os.getenv("DATABASE_URL")
    if explicit_url:
        return explicit_url

    username = os.getenv("DB_USERNAME")
    password = os.getenv("DB_PASSWORD")
    host = os.getenv("DB_HOST")
    port = os.getenv("DB_PORT")
    name = os.getenv("DB_NAME")

    if all([username, password, host, port, name]):
        driver = os.getenv("DB_DRIVER", "postgresql+psycopg2")
        return f"{driver}://{username}:{password}@{host}:{port}/{name}"

    fallback_path = BASE_DIR / "db" / "apothecary.db"
    fallback_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{fallback_path.as_posix()}"


class Config:
    """Default runtime configuration shared across Flask, services, and scripts."""

    APP_NAME: Final[str] = os.getenv("APP_NAME", "Apothecary")
    APP_ENV: Final[str] = os.getenv("APP_ENV", "development")

    SECRET_KEY: Final[str] = os.getenv("SECRET_KEY", "change-me-in-prod")
    DEBUG: Final[bool] = _str_to_bool(os.getenv("FLASK_DEBUG"), default=APP_ENV == "development")
    TESTING: Final[bool] = _str_to_bool(os.getenv("FLASK_TESTING"), default=False)

    FLASK_RUN_HOST: Final[str] = os.getenv("FLASK_RUN_HOST", "0.0.0.0")
    FLASK_RUN_PORT: Final[int] = int(os.getenv("FLASK_RUN_PORT", "5000"))

    # Database
    DATABASE_URL: Final[str] = _determine_database_url()
    SQL_ECHO: Final[bool] = _str_to_bool(os.getenv("SQL_ECHO"), default=False)
    DB_POOL_SIZE: Final[int] = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: Final[int] = int(os.getenv("DB_MAX_OVERFLOW", "20"))

    # Compound builder
    COMPOUND_DEFAULT_BOTTLE_ML: Final[float] = float(os.getenv("COMPOUND_DEFAULT_BOTTLE_ML", "100"))
    FORMULA_TOTAL_TOLERANCE: Final[float] = float(os.getenv("FORMULA_TOTAL_TOLERANCE", "0.5"))
    GUIDED_ASSESSMENT_MAX_AGE_DAYS: Final[int] = int(os.getenv("GUIDED_ASSESSMENT_MAX_AGE_DAYS", "30"))
    MAX_RECOMMENDED_HERBS: Final[int] = int(os.getenv("MAX_RECOMMENDED_HERBS", "5"))
    MIN_RECOMMENDED_HERBS: Final[int] = int(os.getenv("MIN_RECOMMENDED_HERBS", "3"))
    COMPOUND_LIST_LIMIT: Final[int] = int(os.getenv("COMPOUND_LIST_LIMIT", "50"))
    BATCH_LIST_LIMIT: Final[int] = int(os.getenv("BATCH_LIST_LIMIT", "100"))

    # Checkout
    FREE_SHIPPING_THRESHOLD: Final[float] = float(os.getenv("FREE_SHIPPING_THRESHOLD", "50"))
    FLAT_SHIPPING_FEE: Final[float] = float(os.getenv("FLAT_SHIPPING_FEE", "5.99"))
    TAX_RATE: Final[float] = float(os.getenv("TAX_RATE", "0.08"))
    MAX_ORDER_ITEMS: Final[int] = int(os.getenv("MAX_ORDER_ITEMS", "50"))
    CATALOG_PAGE_SIZE: Final[int] = int(os.getenv("CATALOG_PAGE_SIZE", "10"))
    CATALOG_MAX_PAGE_SIZE: Final[int] = int(os.getenv("CATALOG_MAX_PAGE_SIZE", "50"))
    REVIEW_PAGE_SIZE: Final[int] = int(os.getenv("REVIEW_PAGE_SIZE", "20"))
    REVIEW_MAX_PAGE_SIZE: Final[int] = int(os.getenv("REVIEW_MAX_PAGE_SIZE", "50"))

    # Observability
    STRUCTURED_LOGS_ENABLED: Final[bool] = _str_to_bool(os.getenv("STRUCTURED_LOGS_ENABLED"), default=True)
    LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO")
    REQUEST_ID_HEADER: Final[str] = os.getenv("REQUEST_ID_HEADER", "X-Request-ID")
    OBSERVABILITY_ENABLED: Final[bool] = _str_to_bool(os.getenv("OBSERVABILITY_ENABLED"), default=True)
    MAX_RECORDED_EVENTS: Final[int] = int(os.getenv("MAX_RECORDED_EVENTS", "100"))
    ANALYTICS_MONTHS: Final[int] = int(os.getenv("ANALYTICS_MONTHS", "6"))

    @classmethod
    def configure_app(cls, app: Any) -> None:
        """Apply core configuration to a Flask app instance."""
        app.config["SECRET_KEY"] = cls.SECRET_KEY
        app.config["ENV"] = cls.APP_ENV
        app.config["DEBUG"] = cls.DEBUG
        app.config["TESTING"] = cls.TESTING
        app.config["SQLALCHEMY_DATABASE_URI"] = cls.DATABASE_URL
        app.config["SQLALCHEMY_ECHO"] = cls.SQL_ECHO
        app.config["COMPOUND_DEFAULT_BOTTLE_ML"] = cls.COMPOUND_DEFAULT_BOTTLE_ML
        app.config["GUIDED_ASSESSMENT_MAX_AGE_DAYS"] = cls.GUIDED_ASSESSMENT_MAX_AGE_DAYS
        app.config["STRUCTURED_LOGS_ENABLED"] = cls.STRUCTURED_LOGS_ENABLED
        app.config["OBSERVABILITY_ENABLED"] = cls.OBSERVABILITY_ENABLED
