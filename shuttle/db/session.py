"""Engine/session lifecycle.

The API creates one ``Database`` in its lifespan and keeps it on
``app.state.database``; Celery workers create theirs on process init. Request
handlers receive sessions through ``get_db``.
"""
import logging
from collections.abc import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from shuttle.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
    }


class Database:
    def __init__(self, url: str | None = None, engine: Engine | None = None):
        if engine is None:
            url = url or settings.DATABASE_URL
            engine = create_engine(url, **_engine_kwargs(url))
        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        logger.info("Database engine ready (%s)", self.engine.url.get_backend_name())

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
