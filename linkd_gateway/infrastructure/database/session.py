"""Database engine and session management"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session
from linkd_gateway.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Engine for the back-office database.

    Postgres gets a bounded pool (max 20 connections, recycled hourly).
    SQLite, used for local runs and tests, is opened for cross-thread use since
    FastAPI serves sync routes from a threadpool.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a session per request; callers commit, the session is always closed"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
