"""
Database connection and initialization utilities.
"""

import logging
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from notra.config import DATABASE_URL, DB_ECHO

logger = logging.getLogger(__name__)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {},
    echo=DB_ECHO  # Set DB_ECHO=true for SQL logging
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Initialize database - create all tables."""
    from notra.db.models import Base
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at: {DATABASE_URL}")


def get_session() -> Session:
    """Get a new database session."""
    return SessionLocal()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Example:
        @app.get("/things")
        async def list_things(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
