import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError
from shuttle.db.session import Database
from shuttle.services.departure_generator import generate_rolling_window
from shuttle.services.email_service import process_pending_emails

logger = logging.getLogger(__name__)

_database: Database | None = None


def init_database(database: Database | None = None) -> Database:
    """Set up this process's engine (worker_process_init); tests pass their own."""
    global _database
    _database = database or Database()
    return _database


def close_database() -> None:
    global _database
    if _database is not None:
        _database.dispose()
        _database = None


def _session() -> Session:
    if _database is None:
        # worker_process_init does not fire for solo/threads pools
        init_database()
    return _database.session()


def generate_departures(days: int | None = None) -> dict:
    """Rolling-window departure generation. Run every 6 hours via Celery beat."""
    db = _session()
    try:
        try:
            result = generate_rolling_window(db, days=days)
        except ProgrammingError:
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        db.commit()
        if result.failed:
            logger.warning("Departure generation had %s failures: %s", result.failed, result.errors)
        return result.as_dict()
    finally:
        db.close()


def process_email_queue(limit: int = 50) -> dict:
    """Process queued/failed emails (retry send). Run periodically via Celery beat."""
    db = _session()
    try:
        try:
            return process_pending_emails(db, limit=limit)
        except ProgrammingError:
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()
