import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models to ensure they are registered with SQLModel metadata
from .models import Account, AuthSession, Task, User, Verification  # noqa: F401

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None

SessionLocal = sessionmaker(class_=Session, autocommit=False, autoflush=False, expire_on_commit=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # In-memory databases only live as long as their single connection
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=False, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
    )


def init_engine(database_url: str) -> Engine:
    """Create the engine for ``database_url`` and bind the session factory to it."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = _create_engine(database_url)
    SessionLocal.configure(bind=_engine)
    logger.info("Database engine initialised (%s)", make_url(database_url).get_backend_name())
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database engine is not initialised")
    return _engine


def dispose_engine() -> None:
    """Close every pooled connection."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        logger.info("Database connection pool closed")
    _engine = None


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_session():
    """Get a database session (context manager style).

    This is a convenience function for use outside of FastAPI dependencies.
    Usage:
        with get_session() as session:
            # do something with session
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(bind=get_engine())
