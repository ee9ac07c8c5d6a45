"""
Database handle for the tracking store.

The engine and session factory live on an explicit ``Database`` object that
is built once at process start (see ``main.lifespan``) and closed on
shutdown. Nothing here is created at import time.
"""

import logging
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def _configure_sqlite(dbapi_connection, connection_record):
    """WAL journaling lets readers proceed while one writer commits."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the SQLAlchemy engine and session factory.
    
    Usage:
        database = Database(settings.database_url)
        database.create_tables()
        with database.session() as db:
            ...
        database.close()
    """
    
    def __init__(self, url: str, echo: bool = False):
        self.url = url
        connect_args = {}
        if url.startswith("sqlite"):
            # Concurrent writers wait on the lock instead of failing
            connect_args = {"check_same_thread": False, "timeout": 30}
        
        self.engine = create_engine(url, echo=echo, connect_args=connect_args)
        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )
    
    def create_tables(self) -> None:
        """Create all tables registered on Base"""
        # Models must be imported so they register with Base
        from tracking_app import models  # noqa: F401
        
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables ready (%s)", self.engine.url.render_as_string(hide_password=True))
    
    def drop_tables(self) -> None:
        Base.metadata.drop_all(bind=self.engine)
    
    def session(self) -> Session:
        return self.SessionLocal()
    
    def close(self) -> None:
        """Dispose of pooled connections"""
        self.engine.dispose()
        logger.info("Database connections closed")


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session from the app's Database handle"""
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
