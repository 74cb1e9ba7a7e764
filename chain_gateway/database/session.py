"""
Database session management
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .models import Base

# Database configuration
DATABASE_DIR = Path(__file__).parent.parent / "data"
DEFAULT_DATABASE_URL = f"sqlite:///{DATABASE_DIR}/chain_gateway.db"

engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def _create_engine(database_url: str) -> Engine:
    # Use StaticPool for SQLite to avoid threading issues
    if database_url.startswith("sqlite"):
        if database_url.startswith(f"sqlite:///{DATABASE_DIR}"):
            DATABASE_DIR.mkdir(parents=True, exist_ok=True)
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False  # Set to True for SQL debugging
        )
    return create_engine(database_url, echo=False)


def configure_database(database_url: Optional[str] = None) -> Engine:
    """
    Bind the session factory to a database

    Args:
        database_url: SQLAlchemy URL (defaults to DATABASE_URL or a local SQLite file)

    Returns:
        The new engine
    """
    global engine

    if engine is not None:
        engine.dispose()

    engine = _create_engine(database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))
    SessionLocal.configure(bind=engine)
    return engine


def get_engine() -> Engine:
    """Current engine (configured from the environment on first use)"""
    if engine is None:
        configure_database()
    return engine


def init_db():
    """Initialize database tables"""
    Base.metadata.create_all(bind=get_engine())


@contextmanager
def get_session() -> Session:
    """
    Get database session with automatic cleanup

    Usage:
        with get_session() as session:
            record = session.query(ExecutionRecord).first()
    """
    get_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
