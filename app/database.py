"""
Database Configuration Module

SQLAlchemy 2.0 setup for the Book Review API.

We use SYNCHRONOUS SQLAlchemy: the recommendation core only issues a
handful of read queries per request, so a plain session-per-request is
enough and keeps the scoring code easy to test against SQLite.

Session Management Pattern
==========================
1. Request arrives -> create a new session
2. Every scorer in that request reads through the same session
3. Close session when request ends

This is implemented using FastAPI's dependency injection (get_db).
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings

settings = get_settings()


# =============================================================================
# Database Engine
# =============================================================================
# - pool_pre_ping: Test connection health before using (prevents stale connections)
# - echo: Log all SQL statements in debug mode

engine = create_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=settings.debug,
)


# =============================================================================
# Session Factory
# =============================================================================
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# =============================================================================
# Base Model Class
# =============================================================================
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

        class Book(Base):
            __tablename__ = "books"
            ...
    """
    pass


# =============================================================================
# Dependency Injection
# =============================================================================
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI.

    Code before yield creates the session, the route handler uses it,
    and the finally block closes it even if the handler raised.

    Yields:
        SQLAlchemy Session instance
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

