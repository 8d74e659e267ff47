# filehub/core/database.py
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import get_settings
from ..domain.db_models import Base

_engine = None
_SessionLocal = None


def _enable_sqlite_fks(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str, **kwargs) -> Engine:
    """Create an engine; SQLite connections get foreign keys switched on."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_fks)
    return engine


def get_engine():
    """Get or create database engine"""
    global _engine
    if _engine is None:
        settings = get_settings()
        # Ensure directory exists for SQLite
        if settings.DB_URL.startswith("sqlite:///") and ":memory:" not in settings.DB_URL:
            db_path = settings.DB_URL.replace("sqlite:///", "")
            os.makedirs(os.path.dirname(db_path) if os.path.dirname(db_path) else ".", exist_ok=True)
        _engine = make_engine(settings.DB_URL, pool_pre_ping=True)
    return _engine


def get_session_local():
    """Get or create session factory"""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def init_db(engine: Engine | None = None):
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine or get_engine())


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Run a block as a single unit of work on an existing session."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
