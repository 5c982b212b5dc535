"""
Engine and session setup for the SQL store backend.
"""

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from app.config import settings
from app.models.database import Base

logger = logging.getLogger(__name__)

_url = make_url(settings.database_url)
_is_sqlite = _url.get_backend_name() == "sqlite"

# File-based SQLite needs its directory to exist before the first connect
if _is_sqlite and _url.database and _url.database != ":memory:":
    os.makedirs(os.path.dirname(os.path.abspath(_url.database)), exist_ok=True)

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    echo=False
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Request-scoped session, closed when the request ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create any missing tables."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready ({_url.get_backend_name()})")
