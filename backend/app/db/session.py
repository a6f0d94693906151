"""
Database Session Management Module
==================================

Responsible for:
- Creating the database engine
- Managing session lifecycle
- Providing the session dependency for FastAPI routes
"""

from typing import Any, Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.logging import get_logger

# Initialize logger
logger = get_logger(__name__)


# ==========================
# Database Engine
# ==========================

def _engine_options() -> dict[str, Any]:
    if settings.is_sqlite:
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in settings.DATABASE_URL:
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "connect_args": {
            "connect_timeout": 10,
            "application_name": "incident-case-service",
        },
    }


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,  # Validate connections before use
    echo=settings.DEBUG,
    **_engine_options(),
)


@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection, connection_record):
    """Enable foreign keys on SQLite and log new connections."""
    if settings.is_sqlite:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    logger.debug("db_connect")


# ==========================
# Session Factory
# ==========================

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Objects stay readable after commit
)


# ==========================
# Dependency for FastAPI
# ==========================

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    Ensures:
    - Session is opened per request
    - Session is properly closed after request completes
    - Transactions are rolled back on error

    Yields:
        SQLAlchemy Session object
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("db_session_error", error=str(e))
        db.rollback()
        raise
    finally:
        db.close()


# ==========================
# Database Health Check
# ==========================

def check_database_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("db_health_check_failed", error=str(e))
        return False


def get_db_session() -> Session:
    """
    Get a database session for non-FastAPI contexts.

    Use this for background jobs such as the SLA sweep.
    Remember to close the session when done.
    """
    return SessionLocal()
