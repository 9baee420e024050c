# FILE: recall/db.py
import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from recall.config import DATABASE_URL


def make_engine(url: str = DATABASE_URL):
    """SQLite engine usable from FastAPI's threadpool."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, echo=False)


engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def _ensure_sqlite_dir(bind) -> None:
    database = bind.url.database
    if bind.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(os.path.dirname(database) or ".").mkdir(parents=True, exist_ok=True)


def init_db(bind=None):
    """Create all tables. Call once at startup."""
    # Import models so Base.metadata knows about them
    from recall.corpus import models  # noqa: F401

    bind = bind or engine
    _ensure_sqlite_dir(bind)
    Base.metadata.create_all(bind=bind)
