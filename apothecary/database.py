# apothecary/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from flask import g

from apothecary.config import Config

engine_kwargs = {
    "echo": Config.SQL_ECHO,
    "future": True,
    "pool_pre_ping": True,
}

if Config.DATABASE_URL.startswith("sqlite"):
    # Flask serves requests on worker threads; sqlite connections are thread-bound by default
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_size"] = Config.DB_POOL_SIZE
    engine_kwargs["max_overflow"] = Config.DB_MAX_OVERFLOW

engine = create_engine(Config.DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)

Base = declarative_base()


def get_db():
    if 'db' not in g:
        g.db = SessionLocal()
    return g.db


def close_db(e=None):
    db = g.pop('db', None)
    if db is not None:
        if e is not None:
            db.rollback()
        db.close()


def init_database() -> None:
    """Create any missing tables for the registered models."""
    # Imported for its side effect of registering every mapped class on Base
    import apothecary.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
